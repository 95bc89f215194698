"""Allow ``python -m nbox``."""

import sys

from nbox.cli import main

sys.exit(main())
