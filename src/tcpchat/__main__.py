# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

# Make the tcpchat package executable: python -m tcpchat <local port>


import sys

from tcpchat.scripts.server import main

if __name__ == "__main__":
    sys.exit(main())
