"""Configuration dataclass types."""

from dataclasses import dataclass, field


@dataclass
class AppConfig:
    """Application identity and source branch."""

    name: str = ""
    repository: str = ""
    branch: str = "main"


@dataclass
class HealthCheckConfig:
    """Container health check settings for the web service."""

    path: str = "/health"
    port: int = 8080
    timeout: int = 60  # wall-clock cap in seconds, 0 disables
    interval: int = 2
    retries: int = 15
    cmd: str | None = None


@dataclass
class DeployConfig:
    """Release layout, build mode and retention."""

    deploy_to: str = "/var/deploy"
    keep_releases: int = 5
    build: str = "remote"
    web_service: str = "web"
    health_check: HealthCheckConfig = field(default_factory=HealthCheckConfig)


@dataclass
class TraefikConfig:
    """Routing metadata rendered into the compose overlay."""

    domain: str = ""
    tls: bool = False
    acme_email: str | None = None


@dataclass
class HostConfig:
    address: str = ""


@dataclass
class StageConfig:
    """A deployment target: hosts plus connection settings."""

    hosts: list[HostConfig] = field(default_factory=list)
    user: str | None = None
    port: int | None = None
    proxy: str | None = None
    ssh_key: str | None = None
    os: str | None = None
    traefik: TraefikConfig | None = None

    @classmethod
    def from_dict(cls, d: dict) -> "StageConfig":
        hosts = []
        for entry in d.get("hosts") or []:
            if isinstance(entry, str):
                hosts.append(HostConfig(address=entry))
            else:
                hosts.append(HostConfig(address=entry.get("address", "")))

        traefik_dict = d.get("traefik")
        traefik = TraefikConfig(**traefik_dict) if traefik_dict is not None else None

        return cls(
            hosts=hosts,
            user=d.get("user"),
            port=d.get("port"),
            proxy=d.get("proxy"),
            ssh_key=d.get("ssh_key"),
            os=d.get("os"),
            traefik=traefik,
        )


@dataclass
class ShipitConfig:
    """Complete shipit.yaml configuration."""

    app: AppConfig = field(default_factory=AppConfig)
    deploy: DeployConfig = field(default_factory=DeployConfig)
    stages: dict[str, StageConfig] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict) -> "ShipitConfig":
        """Build a ShipitConfig from a parsed shipit.yaml dict."""
        app_dict = d.get("app") or {}
        app = AppConfig(
            name=app_dict.get("name", ""),
            repository=app_dict.get("repository", ""),
            branch=app_dict.get("branch", "main"),
        )

        deploy_dict = d.get("deploy") or {}
        hc_dict = deploy_dict.get("health_check") or {}
        health_check = HealthCheckConfig(
            path=hc_dict.get("path", "/health"),
            port=hc_dict.get("port", 8080),
            timeout=hc_dict.get("timeout", 60),
            interval=hc_dict.get("interval", 2),
            retries=hc_dict.get("retries", 15),
            cmd=hc_dict.get("cmd"),
        )
        deploy = DeployConfig(
            deploy_to=deploy_dict.get("deploy_to", "/var/deploy"),
            keep_releases=deploy_dict.get("keep_releases", 5),
            build=deploy_dict.get("build", "remote"),
            web_service=deploy_dict.get("web_service") or "web",
            health_check=health_check,
        )

        stages = {name: StageConfig.from_dict(s or {}) for name, s in (d.get("stages") or {}).items()}

        return cls(app=app, deploy=deploy, stages=stages)

    def stage(self, name: str) -> StageConfig:
        if name not in self.stages:
            available = ", ".join(sorted(self.stages)) if self.stages else "none"
            raise ValueError(f"Stage '{name}' not found in config. Available stages: {available}")
        return self.stages[name]

    @property
    def app_path(self) -> str:
        """Remote root for this app: <deploy_to>/<name>."""
        return f"{self.deploy.deploy_to.rstrip('/')}/{self.app.name}"
