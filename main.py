"""Run the signon command-line interface from a source checkout."""

from __future__ import annotations

from signon.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
