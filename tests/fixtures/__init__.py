"""Test fixture helpers."""

from __future__ import annotations

from pathlib import Path

_FIXTURE_ROOT = Path(__file__).parent


def load_xml(name: str) -> bytes:
    """Load an XML fixture document by filename."""

    return (_FIXTURE_ROOT / name).read_bytes()
