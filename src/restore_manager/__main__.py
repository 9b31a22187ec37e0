"""Allow ``python -m restore_manager``."""

from .cli.app import main

if __name__ == "__main__":
    main()
