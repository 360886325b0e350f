#!/usr/bin/env python3
"""Run the computation dependency updater daemon.

Usage::

    python scripts/run_compdepends.py                  # app from settings
    python scripts/run_compdepends.py -a depupdater -F # full eval on startup
    python scripts/run_compdepends.py -T               # regression-test mode
"""

import sys
from pathlib import Path

# Ensure project root is on sys.path so ``compdepends.*`` imports work when
# this script is invoked directly.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from compdepends.daemon.cli import main

if __name__ == "__main__":
    sys.exit(main())
