"""Rollback: cut a host back over to a release that is already on disk."""

import logging

from shipit.deploy import steps
from shipit.deploy.pipeline import read_host_lock, run_step, session_for_host
from shipit.deploy.progress import RollbackStep
from shipit.errors import RollbackError
from shipit.release import is_release_name
from shipit.release.lock import ShipitLock, write_lock
from shipit.release.retention import current_release_name

logger = logging.getLogger(__name__)


def resolve_target(lock, target_release=None) -> str:
    """Explicit release if given, else the lock's previous release."""
    if target_release is not None:
        if not is_release_name(target_release):
            raise RollbackError(f"Invalid release name '{target_release}' (expected YYYYMMDD-HHMMSS)")
        return target_release
    if not lock.previous_release:
        raise RollbackError("No previous release found to rollback to")
    return lock.previous_release


async def run_rollback(session, ctx, host, target_release=None, sleep=None):
    """Reduced cutover on one connected host. Returns the new lock.

    Nothing is stopped until the lock has been read and the target release
    directory is known to exist.
    """
    lock = await read_host_lock(session, ctx, host)
    if lock is None:
        raise RollbackError(f"[{host}] No shipit.lock found in {ctx.app_path}. Has a deploy been done?")

    target = resolve_target(lock, target_release)
    target_path = ctx.release_path_for(target)
    if not await session.path_exists(target_path):
        raise RollbackError(f"[{host}] Release directory not found: {target_path}")

    logger.info(f"Rolling back {host}: {lock.current_release} -> {target}")

    await run_step(RollbackStep.STOP_CURRENT, host, _stop_current(session, ctx))
    await run_step(RollbackStep.START_TARGET, host, steps.start_release(session, ctx, target))
    # A failed check leaves `current` and the lock alone.
    await run_step(RollbackStep.HEALTH_CHECK, host, steps.health_check(session, ctx, target, sleep=sleep))
    await run_step(RollbackStep.UPDATE_SYMLINK, host, session.atomic_symlink(target_path, ctx.current_path))

    new_lock = ShipitLock.new(
        target,
        previous=lock.current_release,
        git_sha=lock.git_sha,
        secrets_hash=lock.secrets_hash,
    )
    await run_step(RollbackStep.UPDATE_LOCK, host, write_lock(session, ctx.app_path, new_lock))
    logger.info(f"  Rolled back to {target}")
    return new_lock


async def _stop_current(session, ctx):
    current = await current_release_name(session, ctx.current_path)
    if current is None:
        logger.info("  No current release to stop")
        return
    await steps.stop_release(session, ctx, current)


async def rollback(ctx, host, target_release=None, session_factory=None, sleep=None):
    """Roll one host back. `host` is a HostConfig."""
    session = (session_factory or session_for_host)(ctx, host)
    await session.connect()
    try:
        return await run_rollback(session, ctx, host.address, target_release, sleep=sleep)
    finally:
        await session.close()


async def rollback_stage(ctx, target_release=None, hosts=None, session_factory=None, sleep=None):
    """Roll back every host of the stage sequentially; the first failure stops the rest."""
    hosts = list(ctx.stage.hosts if hosts is None else hosts)
    logger.info(f"Rolling back {ctx.app_name} on {ctx.stage_name}")
    locks = {}
    for host in hosts:
        locks[host.address] = await rollback(
            ctx, host, target_release, session_factory=session_factory, sleep=sleep
        )
    return locks
