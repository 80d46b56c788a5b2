"""
Module entrypoint.

Allows running the tool with `python -m smart_stitch`.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
