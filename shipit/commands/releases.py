"""releases command: list release directories on each host of a stage."""

import asyncio
import logging
import sys

from shipit.commands import add_stage_argument, load_context
from shipit.deploy.pipeline import session_for_host
from shipit.release.lock import read_lock
from shipit.release.retention import list_releases

logger = logging.getLogger(__name__)


async def collect_releases(ctx, session_factory=None):
    """{address: (releases newest first, current release or None)} for every host."""
    result = {}
    for host in ctx.stage.hosts:
        session = (session_factory or session_for_host)(ctx, host)
        await session.connect()
        try:
            releases = await list_releases(session, ctx.releases_path)
            lock = await read_lock(session, ctx.app_path)
        finally:
            await session.close()
        result[host.address] = (releases, lock.current_release if lock else None)
    return result


def format_releases(releases, current):
    if not releases:
        return ["  (no releases)"]
    return [f"  {name} <- current" if name == current else f"  {name}" for name in releases]


def handle_releases(args):
    """Handle the releases command."""
    try:
        ctx = load_context(args)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    try:
        per_host = asyncio.run(collect_releases(ctx))
    except Exception as e:
        logger.error(f"Failed to list releases: {e}")
        sys.exit(1)

    logger.info(f"Releases for {ctx.app_name} on {ctx.stage_name}")
    for address, (releases, current) in per_host.items():
        logger.info(f"Host: {address}")
        for line in format_releases(releases, current):
            logger.info(line)


def register_releases_command(subparsers):
    """Register the releases subcommand."""
    parser = subparsers.add_parser("releases", help="List releases on each host")
    add_stage_argument(parser)
    parser.set_defaults(func=handle_releases)
