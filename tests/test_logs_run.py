"""Tests for the logs and run commands against the live release."""

import asyncio

import pytest

from fakes import APP_PATH, FakeHost, deployed_host
from shipit.commands import pick_host
from shipit.commands.logs import tail_logs
from shipit.commands.run import run_in_current
from shipit.errors import DeployError

LIVE = "20250309-120000"


@pytest.fixture
def live_host(hosts):
    hosts["web1"] = deployed_host(releases=["20250308-120000", LIVE], current=LIVE)
    return hosts["web1"]


# ── pick_host ───────────────────────────────────────────────────────


def test_pick_host_defaults_to_first(ctx):
    assert pick_host(ctx).address == "web1"
    assert pick_host(ctx, "web2").address == "web2"


def test_pick_host_unknown(ctx):
    with pytest.raises(ValueError, match="Available hosts: web1, web2"):
        pick_host(ctx, "db1")


# ── logs ────────────────────────────────────────────────────────────


def test_logs_targets_current_release(ctx, live_host, session_factory):
    rc = asyncio.run(tail_logs(ctx, pick_host(ctx), session_factory=session_factory))

    assert rc == 0
    assert live_host.commands[-1] == (
        f"cd {APP_PATH}/releases/{LIVE} && docker compose -p myapp-{LIVE} logs --tail=100"
    )


def test_logs_follow_service(ctx, live_host, session_factory):
    asyncio.run(tail_logs(ctx, pick_host(ctx), service="worker", lines=20, follow=True, session_factory=session_factory))
    assert live_host.commands[-1].endswith(f"docker compose -p myapp-{LIVE} logs --tail=20 -f worker")


def test_logs_exit_code_passed_through(ctx, live_host, session_factory):
    live_host.failures.append(" logs ")
    assert asyncio.run(tail_logs(ctx, pick_host(ctx), session_factory=session_factory)) == 1


def test_logs_without_current_release(ctx, hosts, session_factory):
    hosts["web1"] = FakeHost("web1")
    with pytest.raises(DeployError, match="No current release found"):
        asyncio.run(tail_logs(ctx, pick_host(ctx), session_factory=session_factory))
    assert not hosts["web1"].ran("docker")


# ── run ─────────────────────────────────────────────────────────────


def test_run_execs_in_web_service(ctx, live_host, session_factory):
    rc = asyncio.run(run_in_current(ctx, pick_host(ctx), ["rails", "db:migrate"], session_factory=session_factory))

    assert rc == 0
    assert live_host.commands[-1] == (
        f"cd {APP_PATH}/releases/{LIVE} && docker compose -p myapp-{LIVE} exec -T web rails db:migrate"
    )


def test_run_quotes_arguments(ctx, live_host, session_factory):
    asyncio.run(
        run_in_current(ctx, pick_host(ctx), ["sh", "-c", "echo $HOME"], service="worker", session_factory=session_factory)
    )
    assert live_host.commands[-1].endswith("exec -T worker sh -c 'echo $HOME'")


def test_run_exit_code_passed_through(ctx, live_host, session_factory):
    live_host.failures.append("exec -T")
    assert asyncio.run(run_in_current(ctx, pick_host(ctx), ["false"], session_factory=session_factory)) == 1


def test_run_requires_command(ctx, hosts, session_factory):
    with pytest.raises(ValueError, match="No command specified"):
        asyncio.run(run_in_current(ctx, pick_host(ctx), [], session_factory=session_factory))
    assert hosts["web1"].commands == []
