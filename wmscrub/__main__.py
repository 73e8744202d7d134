"""
Entry point for running wm-scrub as a module.

Usage:
    python -m wmscrub [options] file.pdf
"""

import sys

from wmscrub.cli import main

if __name__ == "__main__":
    sys.exit(main())
