"""shipit.yaml loading and validation."""

import os

import yaml

from shipit.config.types import ShipitConfig

SUPPORTED_BUILDS = ("remote", "local")
SUPPORTED_OS = ("ubuntu", "debian", "nixos")


def validate_config(config: ShipitConfig):
    """Raise ValueError describing the first invalid setting."""
    if not config.app.name:
        raise ValueError("app.name cannot be empty")
    if not config.app.repository:
        raise ValueError("app.repository cannot be empty")

    deploy = config.deploy
    if deploy.build not in SUPPORTED_BUILDS:
        raise ValueError(f"deploy.build has invalid value '{deploy.build}'. Supported: {', '.join(SUPPORTED_BUILDS)}")
    if deploy.keep_releases < 1:
        raise ValueError("deploy.keep_releases must be at least 1")

    hc = deploy.health_check
    if hc.retries < 1:
        raise ValueError("deploy.health_check.retries must be at least 1")
    if hc.interval < 0 or hc.timeout < 0:
        raise ValueError("deploy.health_check.interval and timeout cannot be negative")

    for name, stage in config.stages.items():
        if stage.os is not None and stage.os not in SUPPORTED_OS:
            raise ValueError(f"Stage '{name}' has invalid os '{stage.os}'. Supported: {', '.join(SUPPORTED_OS)}")
        if not stage.hosts:
            raise ValueError(f"Stage '{name}' has no hosts defined")
        if any(not host.address for host in stage.hosts):
            raise ValueError(f"Stage '{name}' has a host with empty address")
        if stage.traefik is not None:
            if not stage.traefik.domain:
                raise ValueError(f"Stage '{name}' traefik.domain cannot be empty")
            if stage.traefik.tls and not stage.traefik.acme_email:
                raise ValueError(f"Stage '{name}' has TLS enabled but no acme_email configured")


def load_config(path="shipit.yaml") -> ShipitConfig:
    """Load and validate shipit.yaml. Returns a ShipitConfig dataclass."""
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    try:
        config = ShipitConfig.from_dict(data)
    except TypeError as e:
        raise ValueError(f"Invalid config file {path}: {e}") from e

    validate_config(config)
    return config
