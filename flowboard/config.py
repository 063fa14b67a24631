# flowboard: configuration
# Override defaults via flowboard.yaml or the FLOWBOARD_API_URL env var.

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".config" / "flowboard" / "flowboard.yaml"


class ConfigError(Exception):
    """Raised when a config value is out of range."""
    pass


@dataclass
class Config:
    """Runtime configuration."""

    # Board API
    api_url: str = "http://localhost:3000"
    api_timeout: float = 5.0

    # Auto-save
    autosave_delay_ms: int = 2000
    saved_reset_ms: int = 2000

    # Sharing
    share_base_url: str = "http://localhost:3000"

    # Filter presets
    presets_db: str = "~/.local/share/flowboard/presets.db"
    max_presets: int = 20

    def resolve(self):
        """Apply env overrides, expand ~ and validate."""
        env_url = os.environ.get("FLOWBOARD_API_URL")
        if env_url:
            self.api_url = env_url
        self.presets_db = str(Path(self.presets_db).expanduser())

        if self.autosave_delay_ms < 0 or self.saved_reset_ms < 0:
            raise ConfigError("autosave delays must be non-negative")
        if self.max_presets < 1:
            raise ConfigError("max_presets must be at least 1")

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path) if path else CONFIG_PATH
        known = {f.name for f in fields(cls)}
        cfg = cls()
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                cfg = cls(**{k: v for k, v in data.items() if k in known})
            except (OSError, yaml.YAMLError, AttributeError) as e:
                logger.warning(f"Ignoring unreadable config {cfg_path}: {e}")
        cfg.resolve()
        return cfg
