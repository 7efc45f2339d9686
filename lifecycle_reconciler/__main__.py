import sys

from lifecycle_reconciler.cli import main

sys.exit(main())
