import sys

from .bld import main

sys.exit(main())
