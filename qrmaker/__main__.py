import sys

from qrmaker.cli import main

sys.exit(main())
