"""Shared pytest fixtures for all test modules."""

import os
import subprocess
import sys
from unittest.mock import AsyncMock, patch

import pytest
import yaml

from fakes import FakeHost, FakeSession
from shipit.config import ShipitConfig
from shipit.deploy.context import DeployContext
from shipit.release import Release

PROJECT_ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), ".."))

RELEASE = "20250310-093000"


@pytest.fixture(scope="session")
def project_root():
    """Absolute path to the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def run_cli(project_root):
    """Return a callable that invokes the shipit CLI as a subprocess."""

    def _run(*args, cwd=None):
        result = subprocess.run(
            [sys.executable, "-m", "shipit.shipit", *args],
            capture_output=True,
            text=True,
            cwd=cwd or project_root,
            env={**os.environ, "PYTHONPATH": project_root},
        )
        return result.returncode, result.stdout, result.stderr

    return _run


# ── Config fixtures ─────────────────────────────────────────────────


@pytest.fixture
def sample_config_dict():
    """A shipit.yaml as a dict."""
    return {
        "app": {"name": "myapp", "repository": "git@github.com:acme/myapp.git", "branch": "main"},
        "deploy": {
            "deploy_to": "/var/deploy",
            "keep_releases": 5,
            "build": "remote",
            "web_service": "web",
            "health_check": {"path": "/health", "port": 8080, "interval": 2, "retries": 15, "timeout": 60},
        },
        "stages": {
            "production": {
                "user": "deploy",
                "hosts": [{"address": "web1"}, {"address": "web2"}],
                "traefik": {"domain": "myapp.example.com", "tls": True, "acme_email": "ops@example.com"},
            },
            "staging": {"hosts": ["staging1"]},
        },
    }


@pytest.fixture
def write_config(tmp_path):
    """Return a factory that writes a shipit.yaml and returns its path."""

    def _write(config):
        path = tmp_path / "shipit.yaml"
        with open(path, "w") as f:
            yaml.dump(config, f)
        return str(path)

    return _write


@pytest.fixture
def make_ctx(sample_config_dict, tmp_path):
    """Return a factory building a DeployContext for the production stage."""

    def _make(release=RELEASE, stage="production", **deploy_overrides):
        d = sample_config_dict
        d["deploy"].update(deploy_overrides)
        config = ShipitConfig.from_dict(d)
        return DeployContext.create(config, stage, project_root=tmp_path, release=Release(release))

    return _make


@pytest.fixture
def ctx(make_ctx):
    return make_ctx()


# ── Fake remote hosts ───────────────────────────────────────────────


@pytest.fixture
def hosts():
    """FakeHost per address, created on demand."""
    class _Hosts(dict):
        def __missing__(self, address):
            self[address] = FakeHost(address)
            return self[address]

    return _Hosts()


@pytest.fixture
def session_factory(hosts):
    """Session factory for deploy()/rollback() backed by the `hosts` registry."""

    def _factory(ctx, host):
        return FakeSession(hosts[host.address], user=ctx.user)

    return _factory


@pytest.fixture
def local_cmds():
    """Patch local subprocesses (git push, docker build/tag/save) used by deploy steps."""
    with patch("shipit.deploy.steps.check_shell_cmd", new_callable=AsyncMock) as check, patch(
        "shipit.deploy.steps.pipe_shell_cmds", new_callable=AsyncMock
    ) as pipe:
        check.return_value = ""
        pipe.return_value = (0, 0)
        yield check, pipe


@pytest.fixture
def sleeps():
    """Recording replacement for asyncio.sleep in health polling."""
    calls = []

    async def _sleep(seconds):
        calls.append(seconds)

    _sleep.calls = calls
    return _sleep

