"""
Configuration for the development server.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class DevServerConfig:
    """Configuration for the development HTTP server."""
    host: str = "127.0.0.1"
    port: int = 9000

    # Auto shutdown on source changes (local development only)
    dev_mode: bool = False
    watch_paths: List[Path] = field(default_factory=lambda: [Path("src")])

    log_level: str = "info"

    def __post_init__(self):
        self.watch_paths = [Path(p) for p in self.watch_paths]
        if not 0 <= self.port < 65536:
            raise ValueError(f"port out of range: {self.port}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DevServerConfig":
        """
        Build a config from environment variables.

        Reads DEV_SERVER_HOST, DEV_SERVER_PORT, DEV_MODE and DEV_WATCH_PATHS
        (separated by os.pathsep). Unset variables keep their defaults.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            The resulting configuration
        """
        env = os.environ if environ is None else environ
        kwargs = {}

        if env.get("DEV_SERVER_HOST"):
            kwargs["host"] = env["DEV_SERVER_HOST"]
        if env.get("DEV_SERVER_PORT"):
            kwargs["port"] = int(env["DEV_SERVER_PORT"])
        if env.get("DEV_MODE"):
            kwargs["dev_mode"] = env["DEV_MODE"].strip().lower() in _TRUTHY
        if env.get("DEV_WATCH_PATHS"):
            kwargs["watch_paths"] = [
                Path(p) for p in env["DEV_WATCH_PATHS"].split(os.pathsep) if p
            ]

        return cls(**kwargs)
