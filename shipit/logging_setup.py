"""CLI logging setup: simple %(message)s format for shipit commands."""

import logging
import sys

from shipit.redact import SecretRedactingFilter


def setup_cli_logging(verbose=0):
    """Configure root logger with plain message format for CLI commands.

    -v switches to DEBUG, which also logs every remote command. Redaction is a
    handler filter so it covers records propagated from module loggers.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.addFilter(SecretRedactingFilter())
    root.addHandler(handler)
