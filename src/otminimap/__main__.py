# src/otminimap/__main__.py
import sys

from otminimap.cli import main

if __name__ == "__main__":
    sys.exit(main())
