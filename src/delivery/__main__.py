"""
Entry point for running Fluency as a module.

Usage:
    python -m src.delivery stats
    python -m src.delivery simulate --rounds 5
    python -m src.delivery --help
"""
from .cli import main

if __name__ == "__main__":
    main()
