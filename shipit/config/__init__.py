"""Configuration: shipit.yaml dataclasses, loading, validation."""

from shipit.config.loader import load_config, validate_config
from shipit.config.types import (
    AppConfig,
    DeployConfig,
    HealthCheckConfig,
    HostConfig,
    ShipitConfig,
    StageConfig,
    TraefikConfig,
)

__all__ = [
    "AppConfig",
    "DeployConfig",
    "HealthCheckConfig",
    "HostConfig",
    "ShipitConfig",
    "StageConfig",
    "TraefikConfig",
    "load_config",
    "validate_config",
]
