"""Unit tests for shipit.yaml loading and validation."""

import pytest

from shipit.config import HostConfig, ShipitConfig, load_config
from shipit.config.loader import validate_config


def test_load_config(write_config, sample_config_dict):
    config = load_config(write_config(sample_config_dict))

    assert config.app.name == "myapp"
    assert config.app.branch == "main"
    assert config.app_path == "/var/deploy/myapp"
    assert config.deploy.keep_releases == 5
    assert config.deploy.health_check.retries == 15
    production = config.stage("production")
    assert production.hosts == [HostConfig(address="web1"), HostConfig(address="web2")]
    assert production.traefik.domain == "myapp.example.com"
    assert production.traefik.tls is True


def test_plain_string_hosts(write_config, sample_config_dict):
    config = load_config(write_config(sample_config_dict))
    assert config.stage("staging").hosts == [HostConfig(address="staging1")]
    assert config.stage("staging").traefik is None


def test_defaults():
    config = ShipitConfig.from_dict({"app": {"name": "api", "repository": "git@x:api.git"}, "stages": {}})
    assert config.deploy.deploy_to == "/var/deploy"
    assert config.deploy.build == "remote"
    assert config.deploy.web_service == "web"
    hc = config.deploy.health_check
    assert (hc.path, hc.port, hc.interval, hc.retries, hc.timeout) == ("/health", 8080, 2, 15, 60)


def test_app_path_strips_trailing_slash():
    config = ShipitConfig.from_dict({"app": {"name": "api"}, "deploy": {"deploy_to": "/srv/"}})
    assert config.app_path == "/srv/api"


def test_unknown_stage_lists_available(write_config, sample_config_dict):
    config = load_config(write_config(sample_config_dict))
    with pytest.raises(ValueError, match="Available stages: production, staging"):
        config.stage("qa")


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="Config file not found"):
        load_config(str(tmp_path / "nope.yaml"))


def test_invalid_yaml(tmp_path):
    path = tmp_path / "shipit.yaml"
    path.write_text("app: [unclosed\n")
    with pytest.raises(ValueError, match="Failed to parse"):
        load_config(str(path))


def test_non_mapping(tmp_path):
    path = tmp_path / "shipit.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError, match="must contain a mapping"):
        load_config(str(path))


def test_unknown_traefik_key(write_config, sample_config_dict):
    sample_config_dict["stages"]["production"]["traefik"]["bogus"] = 1
    with pytest.raises(ValueError, match="Invalid config file"):
        load_config(write_config(sample_config_dict))


@pytest.mark.parametrize(
    "mutate,message",
    [
        (lambda d: d["app"].update(name=""), "app.name cannot be empty"),
        (lambda d: d["deploy"].update(build="cloud"), "deploy.build has invalid value 'cloud'"),
        (lambda d: d["deploy"].update(keep_releases=0), "keep_releases must be at least 1"),
        (lambda d: d["deploy"]["health_check"].update(retries=0), "retries must be at least 1"),
        (lambda d: d["stages"]["staging"].update(hosts=[]), "Stage 'staging' has no hosts defined"),
        (lambda d: d["stages"]["staging"].update(os="windows"), "invalid os 'windows'"),
        (lambda d: d["stages"]["production"]["traefik"].pop("acme_email"), "TLS enabled but no acme_email"),
    ],
)
def test_validation_errors(sample_config_dict, mutate, message):
    mutate(sample_config_dict)
    with pytest.raises(ValueError, match=message):
        validate_config(ShipitConfig.from_dict(sample_config_dict))
