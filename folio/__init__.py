"""Checkout-root entry for ``python -m folio.web.main`` without installing.

Subpackages live under ``src/folio``; this package only points its search
path there.
"""

from __future__ import annotations

from pathlib import Path

_SRC_FOLIO = Path(__file__).resolve().parents[1] / "src" / "folio"

if _SRC_FOLIO.is_dir():
    __path__.append(str(_SRC_FOLIO))
