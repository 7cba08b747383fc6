"""Local command execution helpers."""

import asyncio
import logging
import os

logger = logging.getLogger(__name__)


class LocalCommandError(Exception):
    """A command run on the operator's machine exited non-zero."""

    def __init__(self, command, returncode, stderr=""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr and stderr.strip() else ""
        super().__init__(f"Local command failed (exit {returncode}): {' '.join(command)}{detail}")


async def run_shell_cmd(command, cwd=None, env=None, timeout=1800, capture=True):
    """Run a local command and return (returncode, stdout, stderr).

    Args:
        command: list of command arguments
        cwd: working directory for the command
        env: extra environment variables, merged over os.environ
        timeout: maximum seconds to wait for the command
        capture: if False, output goes straight to the terminal

    Returns:
        (returncode, stdout, stderr) tuple
    """
    logger.debug(f"local: {' '.join(command)}")
    full_env = {**os.environ, **env} if env else None

    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            cwd=cwd,
            env=full_env,
            stdout=asyncio.subprocess.PIPE if capture else None,
            stderr=asyncio.subprocess.PIPE if capture else None,
        )
        stdout_bytes, stderr_bytes = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        stdout = stdout_bytes.decode() if stdout_bytes else ""
        stderr = stderr_bytes.decode() if stderr_bytes else ""
        return proc.returncode, stdout, stderr
    except TimeoutError:
        logger.error(f"Command timed out after {timeout}s: {' '.join(command)}")
        proc.kill()
        await proc.wait()
        return 1, "", "timeout"
    except FileNotFoundError:
        logger.error(f"Error: '{command[0]}' not found. Is it installed and on PATH?")
        return 1, "", f"'{command[0]}' not found"


async def check_shell_cmd(command, cwd=None, env=None, timeout=1800, capture=True):
    """Like run_shell_cmd, but raise LocalCommandError on a non-zero exit. Returns stdout."""
    rc, stdout, stderr = await run_shell_cmd(command, cwd=cwd, env=env, timeout=timeout, capture=capture)
    if rc != 0:
        raise LocalCommandError(command, rc, stderr)
    return stdout


async def pipe_shell_cmds(producer, consumer, cwd=None):
    """Stream producer's stdout into consumer's stdin.

    Both processes run concurrently; returns (producer_rc, consumer_rc) only
    after both have exited.
    """
    logger.debug(f"local: {' '.join(producer)} | {' '.join(consumer)}")
    read_fd, write_fd = os.pipe()
    try:
        producer_proc = await asyncio.create_subprocess_exec(*producer, cwd=cwd, stdout=write_fd)
    except FileNotFoundError:
        os.close(read_fd)
        os.close(write_fd)
        logger.error(f"Error: '{producer[0]}' not found. Is it installed and on PATH?")
        return 1, 1
    os.close(write_fd)

    try:
        consumer_proc = await asyncio.create_subprocess_exec(*consumer, cwd=cwd, stdin=read_fd)
    except FileNotFoundError:
        logger.error(f"Error: '{consumer[0]}' not found. Is it installed and on PATH?")
        producer_proc.kill()
        await producer_proc.wait()
        return producer_proc.returncode, 1
    finally:
        os.close(read_fd)

    producer_rc, consumer_rc = await asyncio.gather(producer_proc.wait(), consumer_proc.wait())
    return producer_rc, consumer_rc
