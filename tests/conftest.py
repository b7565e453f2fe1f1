"""Shared fixtures pointing at the sample documents under ``tests/assets``."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

ASSETS = Path(__file__).resolve().parent / "assets"


@pytest.fixture()
def asset() -> Callable[[str], str]:
    """Return a helper resolving a file name under ``tests/assets`` to an absolute path string."""

    def _resolve(name: str) -> str:
        return str(ASSETS / name)

    return _resolve


@pytest.fixture()
def malformed_json(tmp_path: Path) -> str:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    return str(path)
