"""Allow ``python -m blobtrack``."""

from .cli import main

if __name__ == "__main__":
    main()
