"""Lanzador local de `atorix-admin` desde un checkout.

Uso: `python main.py request GET PING`

Añade `src/` al path para no depender de un `pip install -e .`; instalado, el
script `atorix-admin` hace lo mismo.
"""

from __future__ import annotations

import sys
from pathlib import Path

SRC_DIR = Path(__file__).resolve().parent / "src"


def main() -> None:
    if str(SRC_DIR) not in sys.path:
        sys.path.insert(0, str(SRC_DIR))

    # Consolas Windows en cp1252 no pueden imprimir las tablas de Rich.
    if sys.platform == "win32":
        sys.stdout.reconfigure(encoding="utf-8")
        sys.stderr.reconfigure(encoding="utf-8")

    from cli.main import run  # noqa: PLC0415

    run()


if __name__ == "__main__":
    main()
