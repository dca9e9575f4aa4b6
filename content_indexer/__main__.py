import sys

from content_indexer.cli import main

sys.exit(main())
