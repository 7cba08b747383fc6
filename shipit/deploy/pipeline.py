"""Deploy orchestration: the per-host pipeline and the sequential fan-out."""

import logging

from shipit.deploy import steps
from shipit.deploy.progress import Step, report_step
from shipit.errors import LockError, StepError
from shipit.release.lock import read_lock
from shipit.ssh.session import RemoteCommandError, SshSession

logger = logging.getLogger(__name__)


def session_for_host(ctx, host) -> SshSession:
    """Default session factory: one SSH session per host with the stage's connection settings."""
    return SshSession(
        host.address,
        user=ctx.user,
        port=ctx.stage.port,
        proxy=ctx.stage.proxy,
        ssh_key=ctx.stage.ssh_key,
    )


async def read_host_lock(session, ctx, host):
    """read_lock, with the host named in any error."""
    try:
        return await read_lock(session, ctx.app_path)
    except LockError as e:
        raise LockError(f"[{host}] {e} ({ctx.lock_path})") from e
    except RemoteCommandError as e:
        raise LockError(f"[{host}] Could not read {ctx.lock_path}: {e}") from e


async def run_step(step, host, coro):
    """Await one step, attaching host and step to any failure."""
    report_step(step, host)
    try:
        return await coro
    except StepError:
        raise
    except Exception as e:
        raise StepError(host, step, e) from e


async def run_pipeline(session, ctx, host, secrets=None, built_services=(), sleep=None):
    """The 12 deploy steps on one connected host.

    On return the new release is live and recorded in the lock. On failure
    before the cutover the previous release keeps serving and its lock is
    untouched.
    """
    previous_lock = await read_host_lock(session, ctx, host)

    await run_step(Step.CREATE_RELEASE_DIR, host, steps.create_release_dir(session, ctx))
    await run_step(Step.PUSH_CODE, host, steps.push_code(session, ctx, host))
    await run_step(Step.CHECKOUT_CODE, host, steps.checkout_code(session, ctx))
    await run_step(Step.WRITE_OVERLAY, host, steps.write_overlay(session, ctx, built_services))
    secrets_hash = await run_step(Step.LINK_ENV, host, steps.provide_env(session, ctx, previous_lock, secrets))
    await run_step(Step.BUILD_IMAGES, host, steps.build_images(session, ctx, built_services))

    # From here both generations may be running; any failure stops only the new one.
    try:
        await run_step(Step.START_NEW, host, steps.start_release(session, ctx, ctx.release.name))
        await run_step(Step.HEALTH_CHECK, host, steps.health_check(session, ctx, ctx.release.name, sleep=sleep))
    except StepError as e:
        await steps.compensate(session, ctx, e.step)
        raise

    await run_step(Step.STOP_PREVIOUS, host, steps.stop_previous(session, ctx))
    await run_step(Step.UPDATE_SYMLINK, host, steps.update_symlink(session, ctx))
    lock = await run_step(Step.UPDATE_LOCK, host, steps.update_lock(session, ctx, previous_lock, secrets_hash))
    await run_step(Step.CLEANUP, host, steps.cleanup(session, ctx))
    return lock


async def deploy_to_host(ctx, host, secrets=None, built_services=(), session_factory=None, sleep=None):
    """Connect to one host, run the pipeline over that single connection, disconnect."""
    logger.info(f"Deploying to {host.address}")
    session = (session_factory or session_for_host)(ctx, host)
    await session.connect()
    try:
        return await run_pipeline(session, ctx, host.address, secrets, built_services, sleep=sleep)
    finally:
        await session.close()


async def deploy(ctx, hosts=None, secrets=None, session_factory=None, sleep=None):
    """Deploy ctx.release to every host of the stage, one after another.

    The first failing host stops the fan-out; hosts already deployed stay on
    the new release.
    """
    hosts = list(ctx.stage.hosts if hosts is None else hosts)
    logger.info(f"Deploying {ctx.app_name} to {ctx.stage_name} (release {ctx.release.name})")

    # Discovered once per invocation; every host gets the same image tags.
    built_services = await steps.parse_built_services(ctx) if ctx.is_local_build else []
    if built_services:
        logger.debug(f"Built services: {built_services}")

    locks = {}
    for index, host in enumerate(hosts):
        try:
            locks[host.address] = await deploy_to_host(
                ctx, host, secrets=secrets, built_services=built_services, session_factory=session_factory, sleep=sleep
            )
        except Exception:
            remaining = hosts[index + 1:]
            if remaining:
                logger.error(f"Stopping: {len(remaining)} host(s) not deployed: {', '.join(h.address for h in remaining)}")
            raise

    logger.info(f"\nDeploy complete! Release {ctx.release.name} is live.")
    return locks
