"""
Package entry point: `python -m taskgraph`.
"""

from .main import main

if __name__ == "__main__":
    main()
