"""Allow running the release notifier with ``python -m release_notifier``."""

import sys

from .main import main

sys.exit(main())
