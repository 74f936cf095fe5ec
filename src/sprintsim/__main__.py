"""
sprintsim package entry point.

Allows running sprintsim as a module:
    python -m sprintsim
"""

from sprintsim.cli import main

if __name__ == "__main__":
    main()
