"""Loading ``config/default.yaml`` and its overlays with OmegaConf."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from omegaconf import DictConfig, OmegaConf

from retrace.core.config_schema import validate_config


class RetraceConfig:
    """A base YAML file plus overlays and dot-path overrides.

    Overlays are the ``*.yaml`` files in a ``history/`` directory beside the
    base file, merged in name order.  Overrides passed to :meth:`load` are
    applied after the overlays and before validation, so a bad command-line
    value is caught by the schema like a bad file value.
    """

    def __init__(self, config_path: str | Path = "config/default.yaml"):
        self._path = Path(config_path)
        self._config: DictConfig | None = None

    def load(
        self,
        validate: bool = False,
        overrides: Mapping[str, Any] | None = None,
    ) -> DictConfig:
        """Read, merge and optionally validate the configuration.

        Args:
            validate: Check against the Pydantic schema even if
                ``retrace.system.validate_config`` is not set.
            overrides: Dot paths to values, e.g.
                ``{"retrace.history.capacity": 50}``.

        Raises:
            FileNotFoundError: If the base file does not exist.
            pydantic.ValidationError: If validation is on and fails.
        """
        if not self._path.exists():
            raise FileNotFoundError(f"Config not found: {self._path}")

        cfg = OmegaConf.load(self._path)
        assert isinstance(cfg, DictConfig)
        overlay_dir = self._path.parent / "history"
        if overlay_dir.is_dir():
            for overlay in sorted(overlay_dir.glob("*.yaml")):
                cfg = OmegaConf.merge(cfg, OmegaConf.load(overlay))

        for dotpath, value in (overrides or {}).items():
            OmegaConf.update(cfg, dotpath, value)

        if validate or OmegaConf.select(cfg, "retrace.system.validate_config", default=False):
            validate_config(OmegaConf.to_container(cfg, resolve=True))

        self._config = cfg
        return cfg

    def override(self, dotpath: str, value: Any) -> None:
        """Change one value of the loaded config in place (not re-validated)."""
        OmegaConf.update(self.cfg, dotpath, value)

    @property
    def cfg(self) -> DictConfig:
        if self._config is None:
            raise RuntimeError("Config not loaded yet. Call load() first.")
        return self._config

    @property
    def history(self) -> DictConfig | None:
        """The ``retrace.history`` section, if present."""
        return OmegaConf.select(self.cfg, "retrace.history", default=None)
