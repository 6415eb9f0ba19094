"""Allow ``python -m hookgate``; the installed hook scripts rely on it."""

import sys

from .cli import main

sys.exit(main())
