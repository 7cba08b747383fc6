"""Encrypted secrets: .shipit/secrets/<stage>.age, decrypted with the age CLI."""

import hashlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from shipit.ssh.shell import LocalCommandError, run_shell_cmd

logger = logging.getLogger(__name__)

AGE_KEY_ENV = "SHIPIT_AGE_KEY"


class SecretsProvider(Protocol):
    """What the deploy pipeline needs from a secrets backend."""

    def content_hash(self, stage: str) -> str | None: ...

    async def read_decrypted_env(self, stage: str) -> dict[str, str]: ...


def secrets_dir(project_root) -> Path:
    return Path(project_root) / ".shipit" / "secrets"


def secrets_path(project_root, stage) -> Path:
    return secrets_dir(project_root) / f"{stage}.age"


def key_path(app_name) -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME") or os.path.expanduser("~/.config")
    return Path(config_home) / "shipit" / "keys" / f"{app_name}.key"


def parse_dotenv(content: str) -> dict[str, str]:
    """Parse KEY=VALUE lines, skipping blanks and comments."""
    env = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        env[key.strip()] = value.strip()
    return env


def serialize_dotenv(env: dict[str, str]) -> str:
    return "\n".join(f"{k}={env[k]}" for k in sorted(env)) + ("\n" if env else "")


class AgeSecretsStore:
    """Secrets provider backed by age-encrypted dotenv files in the project."""

    def __init__(self, project_root, app_name):
        self.project_root = Path(project_root)
        self.app_name = app_name

    def content_hash(self, stage):
        """SHA-256 of the encrypted file, or None if the stage has no secrets."""
        path = secrets_path(self.project_root, stage)
        if not path.exists():
            return None
        return hashlib.sha256(path.read_bytes()).hexdigest()

    async def read_decrypted_env(self, stage):
        path = secrets_path(self.project_root, stage)
        if not path.exists():
            return {}

        identity = os.environ.get(AGE_KEY_ENV, "").strip()
        if identity:
            with tempfile.NamedTemporaryFile(mode="w", suffix=".key", delete=False) as f:
                f.write(identity + "\n")
                identity_file = f.name
            try:
                plaintext = await self._decrypt(path, identity_file)
            finally:
                os.unlink(identity_file)
        else:
            identity_file = key_path(self.app_name)
            if not identity_file.exists():
                raise FileNotFoundError(
                    f"Key not found at {identity_file}. Set {AGE_KEY_ENV} or create the key first."
                )
            plaintext = await self._decrypt(path, str(identity_file))

        return parse_dotenv(plaintext)

    async def _decrypt(self, path, identity_file):
        command = ["age", "--decrypt", "-i", identity_file, str(path)]
        rc, stdout, stderr = await run_shell_cmd(command, timeout=60)
        if rc != 0:
            raise LocalCommandError(command, rc, stderr)
        return stdout
