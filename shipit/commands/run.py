"""run command: execute a one-off command in the live release's web container."""

import argparse
import asyncio
import logging
import sys

from shipit.commands import add_host_argument, add_stage_argument, load_context, pick_host, require_current_release
from shipit.deploy.pipeline import session_for_host
from shipit.deploy.steps import compose_cmd

logger = logging.getLogger(__name__)


async def run_in_current(ctx, host, command, service=None, session_factory=None) -> int:
    """docker compose exec in the release `current` points at. Returns the command's exit code."""
    if not command:
        raise ValueError("No command specified")

    session = (session_factory or session_for_host)(ctx, host)
    await session.connect()
    try:
        current = await require_current_release(session, ctx)
        args = compose_cmd(ctx.project_name_for(current), "exec", "-T", service or ctx.web_service, *command)
        return await session.stream(args, cwd=ctx.release_path_for(current))
    finally:
        await session.close()


def handle_run(args):
    """Handle the run command."""
    command = args.cmd[1:] if args.cmd[:1] == ["--"] else args.cmd
    try:
        ctx = load_context(args)
        host = pick_host(ctx, args.host)
        rc = asyncio.run(run_in_current(ctx, host, command, service=args.service))
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Run failed: {e}")
        sys.exit(1)
    if rc != 0:
        sys.exit(rc)


def register_run_command(subparsers):
    """Register the run subcommand."""
    parser = subparsers.add_parser("run", help="Run a command in the current release's web container")
    add_stage_argument(parser)
    add_host_argument(parser)
    parser.add_argument("--service", default=None, help="Service to exec into (default: deploy.web_service)")
    parser.add_argument("cmd", nargs=argparse.REMAINDER, help="Command to run (after --)")
    parser.set_defaults(func=handle_run)
