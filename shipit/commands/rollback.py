"""rollback command: return a stage to its previous (or a named) release."""

import asyncio
import logging
import sys

from shipit.commands import add_stage_argument, load_context
from shipit.deploy.rollback import rollback_stage

logger = logging.getLogger(__name__)


def handle_rollback(args):
    """Handle the rollback command."""
    try:
        ctx = load_context(args)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    try:
        locks = asyncio.run(rollback_stage(ctx, target_release=args.release))
    except Exception as e:
        logger.error(f"Rollback failed: {e}")
        sys.exit(1)

    for address, lock in locks.items():
        logger.info(f"{address}: current={lock.current_release} previous={lock.previous_release}")


def register_rollback_command(subparsers):
    """Register the rollback subcommand."""
    parser = subparsers.add_parser("rollback", help="Rollback to a previous release")
    add_stage_argument(parser)
    parser.add_argument(
        "--release",
        default=None,
        help="Specific release to roll back to (e.g. 20250219-120000; default: previous release)",
    )
    parser.set_defaults(func=handle_rollback)
