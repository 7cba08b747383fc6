"""deploy command: ship a new release to every host of a stage."""

import asyncio
import logging
import sys

from shipit.commands import add_stage_argument, load_context
from shipit.deploy.pipeline import deploy
from shipit.secrets.store import AgeSecretsStore

logger = logging.getLogger(__name__)


def handle_deploy(args):
    """Handle the deploy command."""
    try:
        ctx = load_context(args)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    secrets = AgeSecretsStore(ctx.project_root, ctx.app_name)
    try:
        asyncio.run(deploy(ctx, secrets=secrets))
    except Exception as e:
        logger.error(f"Deploy failed: {e}")
        sys.exit(1)


def register_deploy_command(subparsers):
    """Register the deploy subcommand."""
    parser = subparsers.add_parser("deploy", help="Deploy the application")
    add_stage_argument(parser)
    parser.set_defaults(func=handle_deploy)
