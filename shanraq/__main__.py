"""Allow ``python -m shanraq``."""

import sys

from .cli import main


sys.exit(main())
