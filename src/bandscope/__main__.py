import sys

from bandscope.cli import main

sys.exit(main())
