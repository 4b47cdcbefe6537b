"""
Server configuration for LBD Projects.

Provides:
- Base domain and path prefix used to build every resource URI
- Fan-out width for snapshot reads
- Optional deadline applied to each multi-store write sequence
- Loading from YAML files and environment variables
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "LBD_"


class ConfigValidationError(Exception):
    """Configuration validation error."""
    pass


@dataclass
class ServerConfig:
    """Configuration shared by the naming, lifecycle and storage layers."""
    domain_url: str = ""
    path_prefix: str = "lbd"
    snapshot_workers: int = 8
    saga_timeout_seconds: Optional[float] = None
    default_graph_format: str = "turtle"

    @property
    def base_url(self) -> str:
        """Root URI under which every project lives."""
        domain = self.domain_url.rstrip("/")
        prefix = self.path_prefix.strip("/")
        return f"{domain}/{prefix}" if prefix else domain

    def validate(self) -> "ServerConfig":
        """Raise ConfigValidationError if the configuration is unusable."""
        if not self.domain_url:
            raise ConfigValidationError("domain_url is required")
        if not self.domain_url.startswith(("http://", "https://")):
            raise ConfigValidationError(
                f"domain_url must be an absolute http(s) URL, got {self.domain_url!r}"
            )
        if self.snapshot_workers < 1:
            raise ConfigValidationError("snapshot_workers must be at least 1")
        if self.saga_timeout_seconds is not None and self.saga_timeout_seconds <= 0:
            raise ConfigValidationError("saga_timeout_seconds must be positive")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain_url": self.domain_url,
            "path_prefix": self.path_prefix,
            "snapshot_workers": self.snapshot_workers,
            "saga_timeout_seconds": self.saga_timeout_seconds,
            "default_graph_format": self.default_graph_format,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerConfig":
        timeout = data.get("saga_timeout_seconds")
        return cls(
            domain_url=data.get("domain_url", ""),
            path_prefix=data.get("path_prefix", "lbd"),
            snapshot_workers=int(data.get("snapshot_workers", 8)),
            saga_timeout_seconds=float(timeout) if timeout is not None else None,
            default_graph_format=data.get("default_graph_format", "turtle"),
        )

    @classmethod
    def from_env(cls, base: Optional[Dict[str, Any]] = None) -> "ServerConfig":
        """
        Build a configuration from LBD_* environment variables.

        Args:
            base: Values to start from (e.g. loaded from a file); environment
                variables that are set take precedence.
        """
        data = dict(base or {})
        env_map = {
            "DOMAIN_URL": "domain_url",
            "PATH_PREFIX": "path_prefix",
            "SNAPSHOT_WORKERS": "snapshot_workers",
            "SAGA_TIMEOUT": "saga_timeout_seconds",
            "GRAPH_FORMAT": "default_graph_format",
        }
        for env_name, key in env_map.items():
            value = os.getenv(ENV_PREFIX + env_name)
            if value is not None and value != "":
                data[key] = value
        return cls.from_dict(data)


def load_config(path: Optional[str | Path] = None) -> ServerConfig:
    """
    Load and validate the server configuration.

    Args:
        path: Optional YAML file. Environment variables override its values.

    Returns:
        A validated ServerConfig
    """
    data: Dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigValidationError(f"Config file not found: {config_path}")
        with open(config_path) as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ConfigValidationError(f"Config file {config_path} must contain a mapping")
        data.update(loaded)
        logger.info(f"Loaded configuration from {config_path}")

    return ServerConfig.from_env(data).validate()
