"""
Photo Harvest — Session Codec
=============================

Turns a :class:`~photo_harvest.schema.Session` into a cookie-safe string and
back. The bearer token is replaced by Fernet ciphertext (AES-128-CBC with
HMAC-SHA256) before the session is serialized, so the plaintext token only
ever exists in memory.

The Fernet key is derived from the process-wide secret: SHA-256 of the secret
bytes, url-safe base64 encoded. The secret is injected, never read from the
environment here, and never logged.

Usage:
    codec = SessionCodec(config.secret)
    raw = codec.encode(session)
    session = codec.decode(raw)   # SessionInvalid on any failure
"""

from __future__ import annotations

import base64
import hashlib
import json

from cryptography.fernet import Fernet, InvalidToken

from photo_harvest.errors import ConfigurationError, SchemaViolation, SessionInvalid
from photo_harvest.schema import Session, parse

ENCRYPTED_FIELD = "token"


def derive_fernet_key(secret: str) -> bytes:
    """Derive a Fernet key (url-safe base64 of 32 bytes) from *secret*."""
    derived = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(derived)


class SessionCodec:
    """Encrypting serializer for sessions.

    Parameters
    ----------
    secret : str
        Process-wide encryption secret. Must not be empty.
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ConfigurationError("Session encryption secret must not be empty")
        self._fernet = Fernet(derive_fernet_key(secret))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        return self._fernet.decrypt(ciphertext.encode("ascii")).decode("utf-8")

    def encode(self, session: Session) -> str:
        """Serialize *session* to canonical JSON with an encrypted token."""
        payload = session.model_dump(mode="json")
        payload[ENCRYPTED_FIELD] = self.encrypt(session.token)
        return json.dumps(payload, sort_keys=True, separators=(",", ":"))

    def decode(self, raw: str) -> Session:
        """Parse, decrypt and validate a stored session.

        Raises
        ------
        SessionInvalid
            On malformed JSON, a token that does not decrypt with this secret
            (tampered, foreign, or truncated ciphertext), or a schema violation.
        """
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise SessionInvalid("Stored session is not valid JSON") from exc

        if not isinstance(payload, dict) or not isinstance(payload.get(ENCRYPTED_FIELD), str):
            raise SessionInvalid("Stored session has no encrypted token")

        try:
            token = self.decrypt(payload[ENCRYPTED_FIELD])
        except (InvalidToken, UnicodeError) as exc:
            raise SessionInvalid("Stored session token could not be decrypted") from exc

        try:
            return parse(Session, {**payload, ENCRYPTED_FIELD: token})
        except SchemaViolation as exc:
            raise SessionInvalid(f"Stored session is malformed: {exc}") from exc
