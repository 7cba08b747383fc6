"""logs command: tail docker compose logs of the live release on one host."""

import asyncio
import logging
import sys

from shipit.commands import add_host_argument, add_stage_argument, load_context, pick_host, require_current_release
from shipit.deploy.pipeline import session_for_host
from shipit.deploy.steps import compose_cmd

logger = logging.getLogger(__name__)

DEFAULT_TAIL_LINES = 100


async def tail_logs(ctx, host, service=None, lines=DEFAULT_TAIL_LINES, follow=False, session_factory=None) -> int:
    """Stream `docker compose logs` of the release `current` points at. Returns the exit code."""
    session = (session_factory or session_for_host)(ctx, host)
    await session.connect()
    try:
        current = await require_current_release(session, ctx)
        args = compose_cmd(ctx.project_name_for(current), "logs", f"--tail={lines}")
        if follow:
            args.append("-f")
        if service:
            args.append(service)
        logger.debug(f"Logs of {current} on {host.address}")
        return await session.stream(args, cwd=ctx.release_path_for(current))
    finally:
        await session.close()


def handle_logs(args):
    """Handle the logs command."""
    try:
        ctx = load_context(args)
        host = pick_host(ctx, args.host)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    try:
        rc = asyncio.run(tail_logs(ctx, host, args.service, args.lines, args.follow))
    except KeyboardInterrupt:
        rc = 0
    except Exception as e:
        logger.error(f"Failed to get logs: {e}")
        sys.exit(1)
    if rc != 0:
        sys.exit(rc)


def register_logs_command(subparsers):
    """Register the logs subcommand."""
    parser = subparsers.add_parser("logs", help="Show container logs of the current release")
    add_stage_argument(parser)
    add_host_argument(parser)
    parser.add_argument("service", nargs="?", default=None, help="Service name (default: all services)")
    parser.add_argument("-n", "--lines", type=int, default=DEFAULT_TAIL_LINES, help="Number of lines to tail")
    parser.add_argument("-f", "--follow", action="store_true", help="Follow log output")
    parser.set_defaults(func=handle_logs)
