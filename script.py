#!/usr/bin/env python3
"""
Entry point matching the old shell script: prints the banner and runs the
router-setup CLI, defaulting to the setup command when none is given.
"""
import sys
from alpinerouter.cli import cli
from alpinerouter.utils import display_banner

if __name__ == "__main__":
    display_banner()

    args = sys.argv[1:] or ["setup"]
    cli(args)
