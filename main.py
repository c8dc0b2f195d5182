#!/usr/bin/env python3
"""
Entry point for the IPTC writer script.
"""

import sys
from iptc_writer.cli import run_cli


def main():
    """Main entry point for the script."""
    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
