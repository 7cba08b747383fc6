"""The individual steps of the per-host deploy pipeline."""

import json
import logging
import shlex

from shipit.compose.overlay import ImageService, ServiceMetadata, render_overlay
from shipit.deploy.health import HealthChecker
from shipit.redact import register_secret_values
from shipit.release.lock import ShipitLock, write_lock
from shipit.release.retention import cleanup_old_releases, current_release_name
from shipit.secrets.store import serialize_dotenv
from shipit.ssh.session import RemoteCommandError
from shipit.ssh.shell import LocalCommandError, check_shell_cmd, pipe_shell_cmds

logger = logging.getLogger(__name__)


def compose_cmd(project_name, *args):
    return ["docker", "compose", "-p", project_name, *args]


async def create_release_dir(session, ctx):
    await session.exec(["mkdir", "-p", ctx.release_path, ctx.shared_path])
    logger.info(f"  Release directory: {ctx.release.name}")


def git_remote_url(ctx, host) -> str:
    port = f":{ctx.stage.port}" if ctx.stage.port else ""
    return f"ssh://{ctx.user}@{host}{port}{ctx.repo_path}"


async def push_code(session, ctx, host):
    """git push to the host's bare repository. Runs locally."""
    command = ["git", "push", git_remote_url(ctx, host), f"HEAD:refs/heads/{ctx.config.app.branch}", "--force"]
    # git builds its own ssh argv; reuse the session's options (key, proxy, master connection)
    env = {"GIT_SSH_COMMAND": shlex.join(["ssh", *session.ssh_options()])}
    await check_shell_cmd(command, cwd=str(ctx.project_root), env=env)
    logger.info("  Code pushed")


async def checkout_code(session, ctx):
    branch = ctx.config.app.branch
    await session.exec(["git", f"--work-tree={ctx.release_path}", f"--git-dir={ctx.repo_path}", "checkout", "-f", branch])
    logger.info("  Code checked out")


def build_service_metadata(ctx, built_services=()) -> ServiceMetadata:
    hc = ctx.config.deploy.health_check
    traefik = ctx.stage.traefik
    web_image = None
    image_services = []
    for name, image in built_services:
        if name == ctx.web_service:
            web_image = image
        else:
            image_services.append(ImageService(name=name, image=image))

    return ServiceMetadata(
        app_name=ctx.app_name,
        web_service=ctx.web_service,
        domain=traefik.domain if traefik else None,
        tls=traefik.tls if traefik else False,
        port=hc.port,
        health_path=hc.path,
        health_interval=hc.interval,
        health_retries=hc.retries,
        health_cmd=hc.cmd,
        web_image=web_image,
        image_services=image_services,
    )


async def write_overlay(session, ctx, built_services=()):
    content = render_overlay(build_service_metadata(ctx, built_services))
    await session.write_file(ctx.overlay_path, content)
    logger.info("  Override generated")


async def provide_env(session, ctx, previous_lock, secrets):
    """Materialize secrets into shared/.env when they changed, then link it into the release.

    Returns the secrets hash to record in the lock.
    """
    secrets_hash = secrets.content_hash(ctx.stage_name) if secrets else None

    if secrets_hash is None:
        logger.info("  No encrypted secrets, using shared .env")
    elif previous_lock is not None and previous_lock.secrets_hash == secrets_hash:
        logger.info("  Secrets unchanged (skipped)")
    else:
        env = await secrets.read_decrypted_env(ctx.stage_name)
        register_secret_values(env.values())
        await session.write_file(ctx.shared_env_path, serialize_dotenv(env))
        await session.exec(["chmod", "600", ctx.shared_env_path])
        logger.info(f"  Secrets decrypted and written to .env ({len(env)} keys)")

    await session.exec(["ln", "-sfn", ctx.shared_env_path, f"{ctx.release_path}/.env"])
    return secrets_hash


async def parse_built_services(ctx):
    """(service, release-tagged image) pairs for services with a `build:` directive."""
    stdout = await check_shell_cmd(["docker", "compose", "config", "--format", "json"], cwd=str(ctx.project_root))
    try:
        config = json.loads(stdout)
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse compose config JSON: {e}") from e

    services = config.get("services")
    if not isinstance(services, dict):
        raise ValueError("No 'services' found in compose config")

    return [(name, ctx.image_name_for(name)) for name, svc in services.items() if "build" in svc]


async def build_images_local(session, ctx, built_services):
    """Build on the operator's machine, tag with the release, stream to the host."""
    if not built_services:
        logger.info("  No services with build directives found")
        return

    logger.info("  Building images locally...")
    await check_shell_cmd(
        ["docker", "compose", "build"],
        cwd=str(ctx.project_root),
        env={"COMPOSE_PROJECT_NAME": ctx.app_name},
        capture=False,
    )

    for service, tagged in built_services:
        source = f"{ctx.app_name}-{service}:latest"
        await check_shell_cmd(["docker", "tag", source, tagged])
        logger.debug(f"Tagged {source} -> {tagged}")

    logger.info(f"  Transferring images to {session.host}...")
    images = [image for _, image in built_services]
    save = ["docker", "save", *images]
    load = ["ssh", "-C", *session.ssh_options(), session.destination, "docker load"]
    save_rc, load_rc = await pipe_shell_cmds(save, load)
    if save_rc != 0:
        raise LocalCommandError(save, save_rc)
    if load_rc != 0:
        raise LocalCommandError(load, load_rc, f"image transfer to {session.host} failed")


async def build_images(session, ctx, built_services=()):
    if ctx.is_local_build:
        await build_images_local(session, ctx, built_services)
    else:
        await session.exec(compose_cmd(ctx.project_name, "build"), cwd=ctx.release_path)
    logger.info("  Images built")


async def start_release(session, ctx, release_name):
    await session.exec(compose_cmd(ctx.project_name_for(release_name), "up", "-d"), cwd=ctx.release_path_for(release_name))
    logger.info(f"  Containers started ({release_name})")


async def health_check(session, ctx, release_name, sleep=None):
    checker = HealthChecker(
        session,
        ctx.release_path_for(release_name),
        ctx.project_name_for(release_name),
        ctx.web_service,
        ctx.config.deploy.health_check,
        sleep=sleep,
    )
    return await checker.run()


async def stop_release(session, ctx, release_name) -> bool:
    """docker compose down for a release. Best-effort: returns False instead of raising."""
    ok = await session.exec_ok(
        compose_cmd(ctx.project_name_for(release_name), "down"),
        cwd=ctx.release_path_for(release_name),
    )
    if not ok:
        logger.warning(f"  Could not stop release {release_name} on {session.host}")
    return ok


async def stop_previous(session, ctx):
    """Stop whatever `current` points at, unless it is the new release itself."""
    previous = await current_release_name(session, ctx.current_path)
    if previous is None:
        logger.info("  No previous release running")
        return None
    if previous == ctx.release.name:
        return None
    await stop_release(session, ctx, previous)
    logger.info(f"  Previous release stopped ({previous})")
    return previous


async def compensate(session, ctx, failed_step):
    """Undo a failed start: stop only the new release, the previous one was never touched."""
    logger.warning(f"  {failed_step.label} failed on {session.host}, stopping new release {ctx.release.name}...")
    await stop_release(session, ctx, ctx.release.name)
    logger.info("  New release stopped. Previous release still running.")


async def update_symlink(session, ctx):
    await session.atomic_symlink(ctx.release_path, ctx.current_path)
    logger.info(f"  current -> {ctx.release.name}")


async def resolve_git_sha(session, ctx) -> str:
    try:
        output = await session.exec(["git", f"--git-dir={ctx.repo_path}", "rev-parse", f"refs/heads/{ctx.config.app.branch}"])
    except RemoteCommandError:
        return "unknown"
    return output.strip() or "unknown"


async def update_lock(session, ctx, previous_lock, secrets_hash):
    lock = ShipitLock.new(
        ctx.release.name,
        previous=previous_lock.current_release if previous_lock else None,
        git_sha=await resolve_git_sha(session, ctx),
        secrets_hash=secrets_hash,
    )
    await write_lock(session, ctx.app_path, lock)
    logger.info("  Lock file updated")
    return lock


async def cleanup(session, ctx):
    """Retention policy. Failures are reported, never fatal."""
    try:
        return await cleanup_old_releases(session, ctx)
    except RemoteCommandError as e:
        logger.warning(f"  Cleanup of old releases failed on {session.host}: {e}")
        return []

