"""Main entry point when executing coffeebreak as a package.

This allows running the package using python -m coffeebreak.
"""

from coffeebreak.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
