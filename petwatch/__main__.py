import sys

from petwatch.main import main

sys.exit(main())
