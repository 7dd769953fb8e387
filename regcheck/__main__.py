"""Entry point for ``python -m regcheck``; same behaviour as the ``regcheck`` script."""

import sys

from regcheck.cli import main

if __name__ == "__main__":
    sys.exit(main())
