"""Process Entry Point - Root Module.

This is the root-level entry point. It imports from the petwatch package.
"""

import sys

from petwatch.main import main

if __name__ == "__main__":
    sys.exit(main())
