"""Shared test fixtures."""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from docstore_check.adapters.memory import MemoryAdapter
from docstore_check.config import Settings
from docstore_check.reporter import Reporter


@pytest.fixture
def console() -> Console:
    """A rich console writing into a buffer instead of the terminal."""
    return Console(file=io.StringIO(), width=160, force_terminal=False)


@pytest.fixture
def reporter(console: Console) -> Reporter:
    return Reporter(console)


@pytest.fixture
def memory_adapter() -> MemoryAdapter:
    return MemoryAdapter("posts")


@pytest.fixture
def settings() -> Settings:
    return Settings(startup_delay_s=0.0)