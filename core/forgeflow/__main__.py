"""Allow running ForgeFlow as a module: ``python -m forgeflow run flow.json``."""

import sys

from forgeflow.cli import main

sys.exit(main())
