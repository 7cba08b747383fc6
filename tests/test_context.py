"""Unit tests for DeployContext path and naming derivations."""

from pathlib import Path

import pytest

from shipit.config import ShipitConfig
from shipit.deploy.context import DeployContext
from shipit.release import Release


def test_paths(ctx):
    assert ctx.app_path == "/var/deploy/myapp"
    assert ctx.releases_path == "/var/deploy/myapp/releases"
    assert ctx.release_path == "/var/deploy/myapp/releases/20250310-093000"
    assert ctx.current_path == "/var/deploy/myapp/current"
    assert ctx.shared_env_path == "/var/deploy/myapp/shared/.env"
    assert ctx.repo_path == "/var/deploy/myapp/repo"
    assert ctx.lock_path == "/var/deploy/myapp/shipit.lock"
    assert ctx.overlay_path == "/var/deploy/myapp/releases/20250310-093000/docker-compose.override.yml"


def test_names(ctx):
    assert ctx.project_name == "myapp-20250310-093000"
    assert ctx.project_name_for("20250101-000000") == "myapp-20250101-000000"
    assert ctx.image_name_for("worker") == "myapp-worker:20250310-093000"


def test_project_name_is_slugged():
    config = ShipitConfig.from_dict({"app": {"name": "My.App"}, "stages": {"prod": {"hosts": ["h"]}}})
    ctx = DeployContext.create(config, "prod", release=Release("20250310-093000"))
    assert ctx.project_name == "my-app-20250310-093000"


def test_defaults(sample_config_dict):
    sample_config_dict["stages"]["staging"]["user"] = None
    config = ShipitConfig.from_dict(sample_config_dict)
    ctx = DeployContext.create(config, "staging")
    assert ctx.user == "deploy"
    assert ctx.project_root == Path.cwd()
    assert ctx.release.name
    assert not ctx.is_local_build


def test_context_is_frozen(ctx):
    with pytest.raises(AttributeError):
        ctx.stage_name = "staging"


def test_unknown_stage(sample_config_dict):
    with pytest.raises(ValueError, match="Stage 'qa' not found"):
        DeployContext.create(ShipitConfig.from_dict(sample_config_dict), "qa")
