"""Run the cruise control demonstration: ``python -m cruisempc``."""

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
