"""
Entry point for running sdkenv as a module.

Usage: python -m sdkenv [command] [options]
"""

from sdkenv.cli.parser import main

if __name__ == "__main__":
    main()
