"""Allow running as `python -m forkguard`."""

import sys

from .cli import main

sys.exit(main())
