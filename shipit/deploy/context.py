"""DeployContext: resolved config, stage and release for one invocation."""

import re
from dataclasses import dataclass, field
from pathlib import Path

from shipit.compose.overlay import OVERLAY_FILENAME
from shipit.config.types import ShipitConfig, StageConfig
from shipit.release import Release
from shipit.release.lock import lock_path

DEFAULT_USER = "deploy"


@dataclass(frozen=True)
class DeployContext:
    """Immutable for the lifetime of one deploy or rollback."""

    config: ShipitConfig
    stage_name: str
    stage: StageConfig
    release: Release = field(default_factory=Release.new)
    project_root: Path = field(default_factory=Path.cwd)

    @classmethod
    def create(cls, config, stage_name, project_root=None, release=None) -> "DeployContext":
        return cls(
            config=config,
            stage_name=stage_name,
            stage=config.stage(stage_name),
            release=release or Release.new(),
            project_root=Path(project_root) if project_root else Path.cwd(),
        )

    @property
    def app_name(self) -> str:
        return self.config.app.name

    @property
    def app_path(self) -> str:
        return self.config.app_path

    @property
    def releases_path(self) -> str:
        return f"{self.app_path}/releases"

    def release_path_for(self, name) -> str:
        return f"{self.releases_path}/{name}"

    @property
    def release_path(self) -> str:
        return self.release_path_for(self.release.name)

    @property
    def current_path(self) -> str:
        return f"{self.app_path}/current"

    @property
    def shared_path(self) -> str:
        return f"{self.app_path}/shared"

    @property
    def shared_env_path(self) -> str:
        return f"{self.shared_path}/.env"

    @property
    def repo_path(self) -> str:
        return f"{self.app_path}/repo"

    @property
    def lock_path(self) -> str:
        return lock_path(self.app_path)

    @property
    def overlay_path(self) -> str:
        return f"{self.release_path}/{OVERLAY_FILENAME}"

    @property
    def user(self) -> str:
        return self.stage.user or DEFAULT_USER

    @property
    def web_service(self) -> str:
        return self.config.deploy.web_service or "web"

    @property
    def is_local_build(self) -> bool:
        return self.config.deploy.build == "local"

    def image_name_for(self, service) -> str:
        return f"{self.app_name}-{service}:{self.release.name}"

    def project_name_for(self, release_name) -> str:
        """docker compose project name; one per release so generations never collide."""
        slug = re.sub(r"[^a-z0-9_-]", "-", self.app_name.lower())
        return f"{slug}-{release_name}"

    @property
    def project_name(self) -> str:
        return self.project_name_for(self.release.name)
