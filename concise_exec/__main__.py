"""Allow ``python -m concise_exec``."""

import sys

from concise_exec.cli import main

if __name__ == "__main__":
    sys.exit(main())
