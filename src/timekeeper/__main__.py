"""Arranque de la app de escritorio (``timekeeper`` / ``python -m timekeeper``)."""

from __future__ import annotations

import logging

from timekeeper.app import run_app

logger = logging.getLogger(__name__)


def main() -> int:
    """Start the calendar app, or explain how to get Kivy if it is missing."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return run_app()
    except ImportError as exc:
        logger.error("Kivy is not available: %s", exc)
        print("La app de escritorio necesita el extra gui:")
        print("  pip install 'timekeeper[gui]'")
        print("Sin GUI queda disponible el comando timekeeper-cli.")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
