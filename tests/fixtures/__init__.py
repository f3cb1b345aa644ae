"""Test fixture helpers."""

from __future__ import annotations

from pathlib import Path

_FIXTURE_ROOT = Path(__file__).parent


def read_fixture(name: str) -> str:
    """Return the raw text of a bundled fixture.

    Provider payloads are served verbatim so decimal literals reach the JSON
    parser exactly as written.
    """

    path = _FIXTURE_ROOT / name
    if not path.exists():
        raise FileNotFoundError(f"Fixture '{name}' does not exist.")
    return path.read_text(encoding="utf-8")
