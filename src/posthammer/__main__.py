"""Allow ``python -m posthammer``."""

from __future__ import annotations

from posthammer.cli.app import app

if __name__ == "__main__":
    app(prog_name="posthammer")
