"""
Allow running ubimkvol as ``python -m ubimkvol``.
"""

from ubimkvol.cli.main import main

if __name__ == "__main__":
    main()
