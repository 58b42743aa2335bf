#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Entry point for ``python -m m68k_regtrack``; see :mod:`m68k_regtrack.main`."""

import sys

from m68k_regtrack.main import main

if __name__ == "__main__":
    sys.exit(main())
