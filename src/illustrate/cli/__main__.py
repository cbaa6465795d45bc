"""CLI entry point for illustrate.cli module.

Enables execution via: python -m illustrate.cli
"""

from illustrate.cli.main import main

if __name__ == "__main__":
    main()
