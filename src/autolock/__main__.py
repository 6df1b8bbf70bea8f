"""Allow ``python -m autolock``."""

import sys

from autolock.cli.main import main

sys.exit(main())
