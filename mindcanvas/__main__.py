"""Entry point for running MindCanvas as a module: python -m mindcanvas"""

import sys
from .ui import main

if __name__ == "__main__":
    sys.exit(main())
