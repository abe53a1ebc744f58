"""Entry point for running modrepl as a module.

Usage:
    python -m modrepl path/to/module.py
"""

from modrepl.cli import main

if __name__ == "__main__":
    main()
