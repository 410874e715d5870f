"""History tracker configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from omegaconf import DictConfig, OmegaConf

logger = logging.getLogger(__name__)

SCHEDULER_BACKENDS = ("thread", "asyncio", "manual")


@dataclass
class TrackerConfig:
    """Options recognised by :class:`HistoryTracker`.

    ``debounce`` is in milliseconds; ``0`` records every distinct value
    synchronously.
    """

    capacity: int = 10
    debounce: int = 0
    scheduler: str = "thread"

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {self.capacity}")
        if self.debounce < 0:
            raise ValueError(f"debounce must be >= 0, got {self.debounce}")
        if self.scheduler not in SCHEDULER_BACKENDS:
            raise ValueError(
                f"scheduler must be one of {SCHEDULER_BACKENDS}, got {self.scheduler!r}"
            )

    @property
    def debounce_seconds(self) -> float:
        return self.debounce / 1000.0

    @classmethod
    def from_omegaconf(cls, cfg: Any) -> TrackerConfig:
        """Build from the ``retrace.history`` section (OmegaConf or plain dict)."""
        if cfg is None:
            return cls()

        if isinstance(cfg, DictConfig):
            cfg = OmegaConf.to_container(cfg, resolve=True)

        if not isinstance(cfg, dict):
            cfg = dict(cfg)

        debounce = cfg.get("debounce_ms", cfg.get("debounce", 0))
        config = cls(
            capacity=int(cfg.get("capacity", 10)),
            debounce=int(debounce or 0),
            scheduler=str(cfg.get("scheduler", "thread")),
        )
        logger.debug(
            "Tracker config: capacity=%d debounce=%dms scheduler=%s",
            config.capacity,
            config.debounce,
            config.scheduler,
        )
        return config
