"""Entry point for python -m photosorter."""

import sys

from photosorter.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
