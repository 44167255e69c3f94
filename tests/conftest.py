from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from jarkit.logging import reset_handlers
from tests._fixtures.jar_builder import JarBuilder


@pytest.fixture
def jar_builder(tmp_path: Path) -> JarBuilder:
    """Provide a reusable archive builder rooted at the pytest tmp_path."""
    return JarBuilder(tmp_path)


@pytest.fixture(autouse=True)
def _detach_log_handlers() -> Iterator[None]:
    """Drop handlers the CLI attached to streams captured by an earlier test."""
    yield
    reset_handlers()
