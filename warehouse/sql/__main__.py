#!/usr/bin/env python3
"""
Make the sql package executable as a module.

This allows running: python -m warehouse.sql [command] [args...]
"""

import sys

from .cli import main

if __name__ == '__main__':
    sys.exit(main())
