"""Allow ``python -m brewexec``."""

from __future__ import annotations

from brewexec.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
