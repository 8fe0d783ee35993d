"""Configuration loader that keeps all runtime constants centralized."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml

from studio_booking.domain.pricing import PREVIEW_DURATIONS

CONFIG_PATH = Path(__file__).resolve().parent / "app_config.yaml"


@dataclass(frozen=True)
class AppConfig:
    """Strongly-typed wrapper over the raw YAML document."""

    raw: Dict[str, Any]

    @property
    def version(self) -> str:
        return str(self.raw.get("version", "v1"))

    @property
    def billing(self) -> Dict[str, Any]:
        return self.raw.get("billing", {})

    @property
    def storage(self) -> Dict[str, Any]:
        return self.raw.get("storage", {})

    @property
    def logging(self) -> Dict[str, Any]:
        return self.raw.get("logging", {})

    @property
    def currency(self) -> str:
        return str(self.billing.get("currency", "EUR"))

    @property
    def preview_durations(self) -> Tuple[int, ...]:
        durations = self.billing.get("preview_durations") or PREVIEW_DURATIONS
        return tuple(int(minutes) for minutes in durations)

    @property
    def database_backend(self) -> str:
        return os.environ.get("STORAGE") or str(self.storage.get("backend", "sqlite"))

    @property
    def database_url(self) -> str:
        return os.environ.get("DATABASE_URL") or str(self.storage.get("url", "sqlite:///studio_booking.db"))

    @property
    def log_level(self) -> str:
        return os.environ.get("LOG_LEVEL") or str(self.logging.get("level", "INFO"))

    @property
    def log_format(self) -> str:
        return str(self.logging.get("format", "%(asctime)s [%(name)s] %(levelname)s %(message)s"))


@lru_cache(maxsize=1)
def get_settings(path: Path | None = None) -> AppConfig:
    """Load configuration once per process."""

    config_path = path or CONFIG_PATH
    data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):  # pragma: no cover - invalid file guard
        raise ValueError("Configuration file must define a mapping at the top level.")
    return AppConfig(raw=data)
