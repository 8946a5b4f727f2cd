"""
User-scoped protection for secrets written to the settings file.

Secrets are encrypted with a Fernet key that lives in the user's config
directory and is readable by that user only.  A settings file copied to
another account (or another machine) cannot be decrypted there, which is
what we want for player passwords.

Key location: $MEDIASYNC_KEY_FILE, else ~/.config/mediasync/secret.key
"""

import logging
import os

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

KEY_ENV = "MEDIASYNC_KEY_FILE"


class CredentialError(Exception):
    """A secret could not be protected or unprotected."""


def _key_path() -> str:
    path = os.environ.get(KEY_ENV)
    if path:
        return path
    base = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    return os.path.join(base, "mediasync", "secret.key")


def _load_key(create: bool) -> bytes:
    path = _key_path()
    try:
        with open(path, "rb") as f:
            return f.read().strip()
    except FileNotFoundError:
        if not create:
            raise CredentialError(f"No key file at {path}") from None

    key = Fernet.generate_key()
    os.makedirs(os.path.dirname(path), exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(key)
    logger.info("Created credential key %s", path)
    return key


def protect(secret: str) -> str:
    """Encrypt *secret* for the current user.  Returns a base64 token."""
    try:
        return Fernet(_load_key(create=True)).encrypt(secret.encode("utf-8")).decode("ascii")
    except (OSError, ValueError) as e:
        raise CredentialError(f"Failed to protect secret: {e}") from e


def unprotect(token: str) -> str:
    """Decrypt a token produced by protect().  Raises CredentialError."""
    try:
        return Fernet(_load_key(create=False)).decrypt(token.encode("ascii")).decode("utf-8")
    except InvalidToken:
        raise CredentialError("Secret was encrypted with a different key or is corrupt") from None
    except (OSError, ValueError) as e:
        raise CredentialError(f"Failed to unprotect secret: {e}") from e
