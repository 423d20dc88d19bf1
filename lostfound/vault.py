# lostfound/vault.py
import base64
import binascii
import logging
import os
import re
from typing import Iterable, Optional

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

ALGORITHM = "aes-256-gcm"
NONCE_LENGTH = 12
TAG_LENGTH = 16
KEY_LENGTH = 32

_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")


def parse_key(source: Optional[str]) -> Optional[bytes]:
    """Accept 64 hex chars, 32 raw chars or base64 of 32 bytes."""
    if not source:
        return None
    trimmed = source.strip()
    if _HEX_KEY.match(trimmed):
        return bytes.fromhex(trimmed)
    if len(trimmed) == KEY_LENGTH:
        raw = trimmed.encode("utf-8")
        if len(raw) == KEY_LENGTH:
            return raw
    try:
        decoded = base64.b64decode(trimmed, validate=True)
    except (binascii.Error, ValueError):
        return None
    return decoded if len(decoded) == KEY_LENGTH else None


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class SecretVault:
    """Encrypts ownership-verification secrets.

    Without a valid key every record is stored as `{"type": "plain", ...}`;
    the mode is fixed per vault so a deployment never mixes the two.
    """

    def __init__(self, key: Optional[bytes] = None):
        if key is not None and len(key) != KEY_LENGTH:
            raise ValueError(f"secret key must be {KEY_LENGTH} bytes")
        self._aead = AESGCM(key) if key else None

    @classmethod
    def from_setting(cls, source: Optional[str]) -> "SecretVault":
        if not source:
            logger.warning("SECRETS_KEY is not set; secrets will be stored without encryption")
            return cls(None)
        key = parse_key(source)
        if key is None:
            logger.error("SECRETS_KEY has an invalid format; use a 32-byte key (hex, base64 or ASCII). "
                         "Secrets will be stored without encryption")
        return cls(key)

    @property
    def enabled(self) -> bool:
        return self._aead is not None

    def encrypt_one(self, value: str) -> dict:
        if self._aead is None:
            return {"type": "plain", "value": value}
        nonce = os.urandom(NONCE_LENGTH)
        sealed = self._aead.encrypt(nonce, value.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return {
            "type": ALGORITHM,
            "nonce": _b64(nonce),
            "tag": _b64(tag),
            "ciphertext": _b64(ciphertext),
        }

    def encrypt(self, values: Iterable[str]) -> list[dict]:
        cleaned = [v.strip() for v in values if isinstance(v, str)]
        return [self.encrypt_one(v) for v in cleaned if v]
