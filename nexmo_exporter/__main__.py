import sys

from nexmo_exporter.cli import main

sys.exit(main())
