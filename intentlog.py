#!/usr/bin/env python3
"""intentlog CLI entry point.

This file allows running intentlog directly:
    python intentlog.py

For installed usage, use:
    intent
"""

import sys
from intentlog.cli import main

if __name__ == "__main__":
    sys.exit(main())
