"""docker-compose.override.yml generation for a release."""

from dataclasses import dataclass, field

import yaml

OVERLAY_FILENAME = "docker-compose.override.yml"
TRAEFIK_NETWORK = "traefik"


@dataclass
class ImageService:
    """A locally built service and the release-tagged image it runs."""

    name: str
    image: str


@dataclass
class ServiceMetadata:
    """Everything the overlay needs to know about the release's services."""

    app_name: str
    web_service: str = "web"
    domain: str | None = None
    tls: bool = False
    port: int = 8080
    health_path: str = "/health"
    health_interval: int = 2
    health_retries: int = 15
    health_cmd: str | None = None
    web_image: str | None = None
    image_services: list[ImageService] = field(default_factory=list)


def _traefik_labels(meta: ServiceMetadata):
    router = meta.app_name
    labels = [
        "traefik.enable=true",
        f"traefik.docker.network={TRAEFIK_NETWORK}",
        f"traefik.http.routers.{router}.rule=Host(`{meta.domain}`)",
    ]
    if meta.tls:
        labels += [
            f"traefik.http.routers.{router}.entrypoints=websecure",
            f"traefik.http.routers.{router}.tls=true",
            f"traefik.http.routers.{router}.tls.certresolver=letsencrypt",
        ]
    else:
        labels.append(f"traefik.http.routers.{router}.entrypoints=web")
    labels.append(f"traefik.http.services.{router}.loadbalancer.server.port={meta.port}")
    return labels


def render_overlay(meta: ServiceMetadata) -> str:
    """Build docker-compose.override.yml content.

    The web service gets a container healthcheck (polled during cutover) and,
    when a domain is set, Traefik routing labels. Locally built services get
    their release-tagged image.
    """
    health_cmd = meta.health_cmd or f"curl -fsS http://localhost:{meta.port}{meta.health_path} || exit 1"
    web = {
        "healthcheck": {
            "test": ["CMD-SHELL", health_cmd],
            "interval": f"{meta.health_interval}s",
            "retries": meta.health_retries,
        },
        "restart": "unless-stopped",
    }
    if meta.web_image:
        web["image"] = meta.web_image
    if meta.domain:
        web["labels"] = _traefik_labels(meta)
        web["networks"] = ["default", TRAEFIK_NETWORK]

    services = {meta.web_service: web}
    for svc in meta.image_services:
        services[svc.name] = {"image": svc.image}

    overlay = {"services": services}
    if meta.domain:
        overlay["networks"] = {TRAEFIK_NETWORK: {"external": True}}

    return yaml.safe_dump(overlay, sort_keys=False, default_flow_style=False)
