"""Allow ``python -m tenderdraft.cli`` execution."""

import sys

from tenderdraft.cli.ingest import main

sys.exit(main())
