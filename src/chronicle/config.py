"""Configuration loading from environment variables and chronicle.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_SNAPSHOT_DIR = Path.home() / ".chronicle" / "snapshots"
_CONFIG_FILENAME = "chronicle.toml"


@dataclass
class ServiceConfig:
    """Remote entity service connection."""

    base_url: str = "http://localhost:3000"
    token: str = ""
    timeout: float = 30.0


@dataclass
class ChronicleConfig:
    """Top-level configuration."""

    service: ServiceConfig = field(default_factory=ServiceConfig)
    snapshot_dir: Path = _DEFAULT_SNAPSHOT_DIR
    username: str = ""
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> ChronicleConfig:
    """Load configuration from environment variables and optional chronicle.toml.

    Priority: environment variables > chronicle.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.chronicle/
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".chronicle" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    service_data = file_data.get("service", {})

    return ChronicleConfig(
        service=ServiceConfig(
            base_url=os.getenv(
                "CHRONICLE_API_URL", service_data.get("base_url", "http://localhost:3000")
            ),
            token=os.getenv("CHRONICLE_TOKEN", service_data.get("token", "")),
            timeout=float(os.getenv("CHRONICLE_TIMEOUT", service_data.get("timeout", 30.0))),
        ),
        snapshot_dir=Path(
            os.getenv(
                "CHRONICLE_SNAPSHOT_DIR",
                file_data.get("snapshot_dir", str(_DEFAULT_SNAPSHOT_DIR)),
            )
        ).expanduser(),
        username=os.getenv("CHRONICLE_USER", file_data.get("username", "")),
        log_level=os.getenv("CHRONICLE_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
