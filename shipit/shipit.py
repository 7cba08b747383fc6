#!/usr/bin/env python3
"""shipit: zero-downtime docker compose deploys over SSH. CLI entrypoint."""

import argparse

from shipit.commands.deploy import register_deploy_command
from shipit.commands.logs import register_logs_command
from shipit.commands.releases import register_releases_command
from shipit.commands.rollback import register_rollback_command
from shipit.commands.run import register_run_command
from shipit.logging_setup import setup_cli_logging


def main():
    parser = argparse.ArgumentParser(prog="shipit", description="Deploy to VMs with Docker Compose")
    parser.add_argument("-c", "--config", default="shipit.yaml", help="Path to shipit.yaml (default: shipit.yaml)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Log remote commands and poll results")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_deploy_command(subparsers)
    register_rollback_command(subparsers)
    register_releases_command(subparsers)
    register_logs_command(subparsers)
    register_run_command(subparsers)

    args = parser.parse_args()
    setup_cli_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
