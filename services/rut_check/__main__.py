"""
Entry point for running the RUT check service as a module.

Usage:
    python -m services.rut_check validate 12.345.678-5
"""

import sys

from .main import main

if __name__ == "__main__":
    sys.exit(main())
