"""CLI subcommands."""

import os

from shipit.config import load_config
from shipit.deploy.context import DeployContext
from shipit.errors import DeployError
from shipit.release.retention import current_release_name


def add_stage_argument(parser):
    parser.add_argument("-s", "--stage", required=True, help="Target stage (e.g. production)")


def add_host_argument(parser):
    parser.add_argument("--host", default=None, help="Host address within the stage (default: first host)")


def load_context(args) -> DeployContext:
    """Load shipit.yaml and resolve the stage; the project root is the config file's directory."""
    config = load_config(args.config)
    project_root = os.path.dirname(os.path.abspath(args.config))
    return DeployContext.create(config, args.stage, project_root=project_root)


def pick_host(ctx, address=None):
    """The stage host with the given address, or the stage's first host."""
    if address is None:
        return ctx.stage.hosts[0]
    for host in ctx.stage.hosts:
        if host.address == address:
            return host
    available = ", ".join(h.address for h in ctx.stage.hosts)
    raise ValueError(f"Host '{address}' is not part of stage '{ctx.stage_name}'. Available hosts: {available}")


async def require_current_release(session, ctx) -> str:
    current = await current_release_name(session, ctx.current_path)
    if current is None:
        raise DeployError(f"[{session.host}] No current release found. Deploy first.")
    return current
