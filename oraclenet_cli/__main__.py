"""
Module execution entry point.

Allows running with: python -m oraclenet_cli
"""

import sys
from oraclenet_cli.main import main

if __name__ == "__main__":
    sys.exit(main())
