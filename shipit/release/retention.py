"""Release directory listing and the retention policy."""

import logging
import posixpath

logger = logging.getLogger(__name__)

DEFAULT_KEEP_RELEASES = 5


async def list_releases(session, releases_path):
    """Release names on the host, newest first. Empty if the directory is missing."""
    if not await session.path_exists(releases_path):
        return []
    names = await session.list_dir(releases_path)
    return sorted(names, reverse=True)


async def current_release_name(session, current_path):
    """Release the `current` symlink points at, or None."""
    target = await session.read_link(current_path)
    if not target:
        return None
    return posixpath.basename(target.rstrip("/"))


def select_expired(releases, keep=DEFAULT_KEEP_RELEASES, protected=()):
    """Releases to delete: everything past the newest `keep`, oldest last.

    Names in `protected` are never selected.
    """
    ordered = sorted(releases, reverse=True)
    if len(ordered) <= keep:
        return []
    return [name for name in ordered[keep:] if name not in protected]


async def cleanup_old_releases(session, ctx, keep=None):
    """Tear down and delete releases beyond the configured count.

    Returns the names removed. Tearing down containers is best-effort; a
    failed directory removal raises RemoteCommandError.
    """
    keep = ctx.config.deploy.keep_releases if keep is None else keep
    releases = await list_releases(session, ctx.releases_path)
    current = await current_release_name(session, ctx.current_path)
    expired = select_expired(releases, keep, protected={current} if current else ())

    if not expired:
        logger.info("  Nothing to clean up")
        return []

    # Locally built images only exist on the host through `docker load`,
    # compose sees them as plain `image:` entries and needs --rmi all.
    rmi = "all" if ctx.is_local_build else "local"
    removed = []
    for name in expired:
        release_path = ctx.release_path_for(name)
        down = ["docker", "compose", "-p", ctx.project_name_for(name), "down", "--rmi", rmi]
        if not await session.exec_ok(down, cwd=release_path):
            logger.warning(f"  Could not tear down containers for {name}, removing directory anyway")
        await session.exec(["rm", "-rf", release_path])
        removed.append(name)

    logger.info(f"  Removed {len(removed)} old release(s)")
    return removed
