"""Entry point for running validation as a module.

Usage:
    python -m walkforward_validator --file data/spy.csv --sweep lookback=15,18,20,22,25
"""

from .cli import main

if __name__ == "__main__":
    exit(main())
