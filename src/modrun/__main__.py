"""modrun module entrypoint."""

from __future__ import annotations

from .cli import app


def main() -> None:
    """Entry point used by `python -m modrun`."""
    app(prog_name="modrun")


if __name__ == "__main__":  # pragma: no cover - module execution guard
    main()
