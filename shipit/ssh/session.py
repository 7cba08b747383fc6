"""SSH session: one persistent connection per host for commands and file writes."""

import asyncio
import logging
import os
import shlex
import tempfile

logger = logging.getLogger(__name__)


class RemoteCommandError(Exception):
    """A command exited non-zero on the remote host."""

    def __init__(self, host, command, returncode, stdout="", stderr=""):
        self.host = host
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"Command failed on {host} (exit {returncode}): {command}\n"
            f"stdout: {stdout.strip()}\n"
            f"stderr: {stderr.strip()}"
        )


def ssh_base_args(port=None, ssh_key=None, proxy=None, control_path=None):
    """Build base SSH options (no destination)."""
    args = [
        "-o", "StrictHostKeyChecking=accept-new",
        "-o", "BatchMode=yes",
        "-o", "ServerAliveInterval=60",
        "-o", "ServerAliveCountMax=5",
    ]
    if control_path:
        args += [
            "-o", "ControlMaster=auto",
            "-o", f"ControlPath={control_path}",
            "-o", "ControlPersist=120",
        ]
    if ssh_key:
        args += ["-i", os.path.expanduser(ssh_key)]
    if port and port != 22:
        args += ["-p", str(port)]
    if proxy:
        args += ["-J", proxy]
    return args


def build_command(args, cwd=None):
    """Quote a structured command for the remote shell."""
    if isinstance(args, str):
        command = args
    else:
        command = shlex.join(str(a) for a in args)
    if cwd:
        command = f"cd {shlex.quote(cwd)} && {command}"
    return command


class SshSession:
    """Remote executor for one host.

    Every command goes through the same OpenSSH master connection, so the
    host authenticates once per deploy.
    """

    def __init__(self, address, user="deploy", port=None, proxy=None, ssh_key=None, timeout=1800):
        self.host = address
        self.user = user
        self.port = port
        self.proxy = proxy
        self.ssh_key = ssh_key
        self.timeout = timeout
        self._control_dir = None

    @property
    def destination(self) -> str:
        return f"{self.user}@{self.host}" if self.user else self.host

    def ssh_options(self):
        control_path = os.path.join(self._control_dir, "cm") if self._control_dir else None
        return ssh_base_args(self.port, self.ssh_key, self.proxy, control_path)

    def ssh_command(self, *remote_args):
        """Local argv for ssh to this host, reusing the master connection."""
        argv = ["ssh", *self.ssh_options(), self.destination]
        if remote_args:
            argv.append(build_command(list(remote_args)))
        return argv

    async def connect(self):
        """Open the master connection."""
        self._control_dir = tempfile.mkdtemp(prefix="shipit-ssh-")
        logger.debug(f"Connecting to {self.destination}" + (f" via {self.proxy}" if self.proxy else ""))
        rc, _, stderr = await self._run(["true"], timeout=60)
        if rc != 0:
            self._remove_control_dir()
            raise ConnectionError(f"Failed to connect to {self.destination}: {stderr.strip()}")
        return self

    async def close(self):
        """Shut the master connection down."""
        if self._control_dir is None:
            return
        proc = await asyncio.create_subprocess_exec(
            "ssh", *self.ssh_options(), "-O", "exit", self.destination,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        await proc.wait()
        self._remove_control_dir()

    def _remove_control_dir(self):
        try:
            os.rmdir(self._control_dir)
        except OSError:
            logger.debug(f"Control directory {self._control_dir} not removed")
        self._control_dir = None

    async def __aenter__(self):
        return await self.connect()

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def _run(self, args, cwd=None, input=None, timeout=None, capture=True):
        command = build_command(args, cwd)
        timeout = self.timeout if timeout is None else timeout
        logger.debug(f"[{self.host}] exec: {command}")
        proc = await asyncio.create_subprocess_exec(
            "ssh", *self.ssh_options(), self.destination, command,
            stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE if capture else None,
            stderr=asyncio.subprocess.PIPE if capture else None,
        )
        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                proc.communicate(input.encode() if input is not None else None),
                timeout=timeout or None,
            )
        except TimeoutError:
            logger.error(f"[{self.host}] command timed out after {timeout}s: {command}")
            proc.kill()
            await proc.wait()
            return 1, "", "timeout"
        stdout = stdout_bytes.decode() if stdout_bytes else ""
        stderr = stderr_bytes.decode() if stderr_bytes else ""
        return proc.returncode, stdout, stderr

    async def exec(self, args, cwd=None, input=None, timeout=None) -> str:
        """Run a command, return stdout. Raises RemoteCommandError on non-zero exit."""
        rc, stdout, stderr = await self._run(args, cwd=cwd, input=input, timeout=timeout)
        if rc != 0:
            raise RemoteCommandError(self.host, build_command(args, cwd), rc, stdout, stderr)
        return stdout

    async def stream(self, args, cwd=None, timeout=0) -> int:
        """Run a command with its output going straight to the terminal. Returns the exit code.

        timeout=0 waits as long as the command runs (e.g. `logs -f`).
        """
        rc, _, _ = await self._run(args, cwd=cwd, timeout=timeout, capture=False)
        return rc

    async def exec_ok(self, args, cwd=None, timeout=None) -> bool:
        """Run a command, True iff it exited zero."""
        rc, _, stderr = await self._run(args, cwd=cwd, timeout=timeout)
        if rc != 0:
            logger.debug(f"[{self.host}] exit {rc}: {stderr.strip()}")
        return rc == 0

    async def path_exists(self, path) -> bool:
        return await self.exec_ok(["test", "-e", path])

    async def read_link(self, path):
        """Target of a symlink, or None if path is not a symlink."""
        if not await self.exec_ok(["test", "-L", path]):
            return None
        return (await self.exec(["readlink", path])).strip()

    async def list_dir(self, path):
        output = await self.exec(["ls", "-1", path])
        return [line.strip() for line in output.splitlines() if line.strip()]

    async def write_file(self, path, content):
        await self.exec(f"cat > {shlex.quote(path)}", input=content)

    async def atomic_symlink(self, target, link):
        """Point link at target; readers see the old or the new target, never neither."""
        tmp = f"{link}.tmp"
        await self.exec(["ln", "-sfn", target, tmp])
        await self.exec(["mv", "-Tf", tmp, link])

    async def sudo_exec(self, args, cwd=None) -> str:
        """exec as root via non-interactive sudo."""
        return await self.exec(["sudo", "-n", *args], cwd=cwd)

    async def sudo_write_file(self, path, content):
        await self.exec(f"sudo -n tee {shlex.quote(path)} > /dev/null", input=content)
