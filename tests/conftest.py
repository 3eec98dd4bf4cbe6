"""Shared fixtures for the tflsctl test suite."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest


@pytest.fixture(autouse=True)
def tflsctl_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point TFLSCTL_HOME at a temporary directory for every test."""
    home = tmp_path / "tflsctl-home"
    monkeypatch.setenv("TFLSCTL_HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def reset_tflsctl_logger() -> Iterator[None]:
    """Undo configure_logging so caplog sees tflsctl records."""
    yield
    logger = logging.getLogger("tflsctl")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
