#!/usr/bin/env python3
"""
Simple runner script for contentguard.

Usage:
    python run.py check --user USER_ID article.html
    python run.py reputation USER_ID
"""

import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from contentguard import main

if __name__ == "__main__":
    sys.exit(main())
