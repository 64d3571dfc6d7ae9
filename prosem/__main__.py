"""
Package entry point.

Allows running the application via:

    python -m prosem

This simply forwards execution to prosem.cli.main().
"""

from prosem.cli import main

if __name__ == "__main__":
    main()
