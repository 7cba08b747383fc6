"""Tests for local command helpers, run against real /bin/sh processes."""

import asyncio

import pytest

from shipit.ssh.shell import LocalCommandError, check_shell_cmd, pipe_shell_cmds, run_shell_cmd

# ── run_shell_cmd / check_shell_cmd ─────────────────────────────────


def test_run_shell_cmd_captures_output():
    rc, stdout, stderr = asyncio.run(run_shell_cmd(["sh", "-c", "echo out; echo err >&2"]))
    assert rc == 0
    assert stdout == "out\n"
    assert stderr == "err\n"


def test_run_shell_cmd_env_merged_over_environ(monkeypatch):
    monkeypatch.setenv("SHIPIT_OUTER", "kept")
    rc, stdout, _ = asyncio.run(
        run_shell_cmd(["sh", "-c", 'echo "$SHIPIT_OUTER $SHIPIT_EXTRA"'], env={"SHIPIT_EXTRA": "added"})
    )
    assert rc == 0
    assert stdout == "kept added\n"


def test_run_shell_cmd_cwd(tmp_path):
    _, stdout, _ = asyncio.run(run_shell_cmd(["pwd"], cwd=str(tmp_path)))
    assert stdout.strip() == str(tmp_path.resolve())


def test_run_shell_cmd_missing_binary():
    rc, stdout, stderr = asyncio.run(run_shell_cmd(["shipit-no-such-binary"]))
    assert rc == 1
    assert stdout == ""
    assert "not found" in stderr


def test_run_shell_cmd_timeout():
    rc, _, stderr = asyncio.run(run_shell_cmd(["sleep", "5"], timeout=0.2))
    assert rc == 1
    assert stderr == "timeout"


def test_check_shell_cmd_returns_stdout():
    assert asyncio.run(check_shell_cmd(["sh", "-c", "printf abc"])) == "abc"


def test_check_shell_cmd_raises_with_stderr():
    with pytest.raises(LocalCommandError, match="boom") as exc_info:
        asyncio.run(check_shell_cmd(["sh", "-c", "echo boom >&2; exit 3"]))
    assert exc_info.value.returncode == 3
    assert exc_info.value.stderr == "boom\n"


# ── pipe_shell_cmds ─────────────────────────────────────────────────


def test_pipe_streams_bytes(tmp_path):
    target = tmp_path / "received"
    producer = ["sh", "-c", "printf 'image-layer-1\\nimage-layer-2\\n'"]
    consumer = ["sh", "-c", f"cat > {target}"]

    assert asyncio.run(pipe_shell_cmds(producer, consumer)) == (0, 0)
    assert target.read_text() == "image-layer-1\nimage-layer-2\n"


def test_pipe_large_payload(tmp_path):
    target = tmp_path / "received"
    producer = ["sh", "-c", "head -c 1048576 /dev/zero"]
    consumer = ["sh", "-c", f"cat > {target}"]

    assert asyncio.run(pipe_shell_cmds(producer, consumer)) == (0, 0)
    assert target.stat().st_size == 1048576


def test_pipe_waits_for_slow_consumer(tmp_path):
    target = tmp_path / "received"
    consumer = ["sh", "-c", f"sleep 0.3; cat > {target}"]

    assert asyncio.run(pipe_shell_cmds(["echo", "late"], consumer)) == (0, 0)
    assert target.read_text() == "late\n"


def test_pipe_producer_failure_passed_through():
    producer = ["sh", "-c", "echo partial; exit 3"]
    consumer = ["sh", "-c", "cat > /dev/null"]
    assert asyncio.run(pipe_shell_cmds(producer, consumer)) == (3, 0)


def test_pipe_consumer_failure_passed_through():
    producer = ["sh", "-c", "echo data"]
    consumer = ["sh", "-c", "cat > /dev/null; exit 4"]
    assert asyncio.run(pipe_shell_cmds(producer, consumer)) == (0, 4)


def test_pipe_missing_producer():
    assert asyncio.run(pipe_shell_cmds(["shipit-no-such-binary"], ["cat"])) == (1, 1)


def test_pipe_missing_consumer():
    _, consumer_rc = asyncio.run(pipe_shell_cmds(["sh", "-c", "echo data"], ["shipit-no-such-binary"]))
    assert consumer_rc == 1
