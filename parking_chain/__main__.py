# File: parking_chain/__main__.py
"""Allows `python -m parking_chain <file>`"""

import sys

from .main import main


sys.exit(main())
