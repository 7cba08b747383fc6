"""shipit.lock: the per-host record of the current and previous release."""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime

from shipit.errors import LockError

logger = logging.getLogger(__name__)

LOCK_FILENAME = "shipit.lock"


def lock_path(app_path) -> str:
    return f"{app_path}/{LOCK_FILENAME}"


@dataclass(frozen=True)
class ShipitLock:
    """Contents of <app_path>/shipit.lock.

    Written once per successful deploy or rollback, after the `current`
    symlink has moved.
    """

    current_release: str
    previous_release: str | None = None
    git_sha: str = "unknown"
    deployed_at: str = ""
    secrets_hash: str | None = None

    @classmethod
    def new(cls, current, previous=None, git_sha="unknown", secrets_hash=None, now=None) -> "ShipitLock":
        now = now or datetime.now().astimezone()
        return cls(
            current_release=current,
            previous_release=previous,
            git_sha=git_sha,
            deployed_at=now.isoformat(timespec="seconds"),
            secrets_hash=secrets_hash,
        )

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)

    @classmethod
    def from_json(cls, content: str) -> "ShipitLock":
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise LockError(f"Invalid {LOCK_FILENAME}: {e}") from e
        if not isinstance(data, dict) or not data.get("current_release"):
            raise LockError(f"Invalid {LOCK_FILENAME}: missing current_release")
        return cls(
            current_release=data["current_release"],
            previous_release=data.get("previous_release"),
            git_sha=data.get("git_sha") or "unknown",
            deployed_at=data.get("deployed_at", ""),
            secrets_hash=data.get("secrets_hash"),
        )


async def read_lock(session, app_path):
    """Read the host's lock. Returns None if the host has never completed a deploy."""
    path = lock_path(app_path)
    if not await session.path_exists(path):
        return None
    content = await session.exec(["cat", path])
    return ShipitLock.from_json(content.strip())


async def write_lock(session, app_path, lock: ShipitLock):
    """Replace the host's lock atomically (write temp file, then rename)."""
    path = lock_path(app_path)
    tmp = f"{path}.tmp"
    await session.write_file(tmp, lock.to_json() + "\n")
    await session.exec(["mv", "-f", tmp, path])
    logger.debug(f"[{session.host}] lock: current={lock.current_release} previous={lock.previous_release}")
