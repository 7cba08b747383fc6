"""Encrypted secrets provider."""

from shipit.secrets.store import (
    AgeSecretsStore,
    SecretsProvider,
    parse_dotenv,
    secrets_path,
    serialize_dotenv,
)

__all__ = ["AgeSecretsStore", "SecretsProvider", "parse_dotenv", "secrets_path", "serialize_dotenv"]
