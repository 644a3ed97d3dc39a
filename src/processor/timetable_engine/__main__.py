"""Main module for running the timetable engine."""

import sys

from timetable_engine.cli import main

if __name__ == "__main__":
    sys.exit(main())
