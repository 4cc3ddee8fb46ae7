#!/usr/bin/env python3
"""
Entry point for baremetal-csi CLI tool.
"""

import sys

from baremetal_csi.cli.cli import main

if __name__ == "__main__":
    sys.exit(main())
