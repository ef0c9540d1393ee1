import sys

from gcusage.cli import main

sys.exit(main())
