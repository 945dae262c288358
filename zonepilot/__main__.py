import sys

from zonepilot.cli import main

sys.exit(main())
