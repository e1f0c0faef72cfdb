import sys

from shapelayer.cli import main

sys.exit(main())
