"""
Run the casebook console.

Usage:
    python -m casebook.interface [--scenario PATH] [--policy advance|halt]
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
