"""Shared pytest fixtures for retrace tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from omegaconf import OmegaConf

from retrace.core.cell import StateCell
from retrace.core.clock import SimClock
from retrace.history.scheduler import ManualScheduler


@pytest.fixture
def project_root() -> Path:
    return Path(__file__).parent.parent


@pytest.fixture
def config_path(project_root: Path) -> Path:
    return project_root / "config" / "default.yaml"


@pytest.fixture
def default_config(config_path: Path):
    return OmegaConf.load(config_path)


@pytest.fixture
def sim_clock() -> SimClock:
    return SimClock(start_epoch=1000.0)


@pytest.fixture
def manual_scheduler(sim_clock: SimClock) -> ManualScheduler:
    return ManualScheduler(sim_clock)


@pytest.fixture
def cell() -> StateCell:
    return StateCell("a")
