# Taskboard — configuration
# Override endpoints and timings via taskboard.yaml or environment variables.

import logging
import os
import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

CONFIG_PATH = Path.cwd() / "taskboard.yaml"


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


@dataclass
class Config:
    """Runtime configuration for the board client."""

    # Board API
    api_base_url: str = "http://localhost:3001"
    api_token_env: str = "TASKBOARD_API_TOKEN"
    request_timeout: float = 10.0

    # UI behaviour
    notification_ttl_secs: float = 4.0

    log_level: str = "INFO"

    def apply_env(self):
        """Environment overrides (TASKBOARD_API_URL)."""
        url = os.environ.get("TASKBOARD_API_URL")
        if url:
            self.api_base_url = url

    @property
    def api_token(self) -> Optional[str]:
        return os.environ.get(self.api_token_env) or None

    def validate(self):
        if not self.api_base_url.startswith(("http://", "https://")):
            raise ConfigError(f"api_base_url must be an http(s) URL, got {self.api_base_url!r}")
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")
        if self.notification_ttl_secs <= 0:
            raise ConfigError("notification_ttl_secs must be positive")

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                known = {fld.name for fld in fields(cls)}
                cfg = cls(**{k: v for k, v in data.items() if k in known})
            except (OSError, yaml.YAMLError, TypeError, AttributeError) as e:
                logging.getLogger(__name__).warning(f"Ignoring unreadable config {cfg_path}: {e}")
                cfg = cls()
        else:
            cfg = cls()
        cfg.apply_env()
        cfg.validate()
        return cfg


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [taskboard] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
