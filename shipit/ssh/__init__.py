"""Remote executor (SSH session) and local command helpers."""

from shipit.ssh.session import RemoteCommandError, SshSession, build_command, ssh_base_args
from shipit.ssh.shell import LocalCommandError, check_shell_cmd, pipe_shell_cmds, run_shell_cmd

__all__ = [
    "SshSession",
    "RemoteCommandError",
    "build_command",
    "ssh_base_args",
    "LocalCommandError",
    "run_shell_cmd",
    "check_shell_cmd",
    "pipe_shell_cmds",
]
