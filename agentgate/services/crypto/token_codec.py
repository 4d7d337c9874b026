"""
TokenCodec: portable, tamper-evident tokens wrapping an upstream API key

Token layout (before encoding):

    nonce (12 bytes) || GCM tag (16 bytes) || ciphertext

The whole byte string is base64url encoded without padding so it can be
placed in a query string or header unchanged. The ciphertext is an AES-256-GCM
encryption of a small JSON document carrying the key and its expiry.
"""

import base64
import logging
import re
import secrets
import time
from typing import Callable, Optional

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .key_provider import SecretMaterial

logger = logging.getLogger(__name__)

_TOKEN_ALPHABET = re.compile(r"[A-Za-z0-9_-]+")


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


class TokenCodec:
    """
    Mints and decodes opaque tokens for upstream API keys.

    Stateless: there is no token registry, so a token is valid exactly as
    long as the secret that encrypted it (and its embedded expiry, if any).
    """

    NONCE_LENGTH = 12
    TAG_LENGTH = 16

    def __init__(
        self,
        secret: SecretMaterial,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize TokenCodec.

        Args:
            secret: Secret material from KeyProvider
            ttl_seconds: Lifetime embedded into minted tokens. None or 0 mints
                         tokens that never expire.
            clock: Returns the current time in seconds since the epoch
        """
        self._aead = AESGCM(secret.key)
        self._ttl_seconds = ttl_seconds or None
        self._clock = clock

    @classmethod
    def from_settings(cls, secret: SecretMaterial, settings) -> "TokenCodec":
        return cls(secret, ttl_seconds=settings.token_ttl_seconds)

    @property
    def ttl_seconds(self) -> Optional[int]:
        return self._ttl_seconds

    def mint(self, api_key: str) -> str:
        """
        Wrap an API key into a token.

        A fresh random nonce is drawn for every call, so minting the same key
        twice yields unrelated tokens.

        Args:
            api_key: Upstream API key (non-empty string)

        Returns:
            URL-safe, unpadded token string

        Raises:
            ValueError: If api_key is missing, empty, not a string or not
                        encodable as UTF-8 (lone surrogates)
        """
        if not isinstance(api_key, str) or not api_key:
            raise ValueError("API key required to mint token")

        expires_at = None
        if self._ttl_seconds:
            expires_at = int((self._clock() + self._ttl_seconds) * 1000)

        try:
            plaintext = orjson.dumps({"k": api_key, "exp": expires_at})
        except orjson.JSONEncodeError as e:
            # Lone surrogates have no UTF-8 encoding
            raise ValueError("API key must be valid Unicode text") from e
        nonce = secrets.token_bytes(self.NONCE_LENGTH)
        # AESGCM appends the tag to the ciphertext
        sealed = self._aead.encrypt(nonce, plaintext, None)
        ciphertext, tag = sealed[:-self.TAG_LENGTH], sealed[-self.TAG_LENGTH:]

        logger.debug("Minted token (expires_at=%s)", expires_at)
        return _b64encode(nonce + tag + ciphertext)

    def decode(self, token: Optional[str]) -> Optional[str]:
        """
        Recover the API key from a token.

        Never raises: malformed, tampered, foreign or expired tokens all
        yield None.

        Args:
            token: Token string as minted by mint()

        Returns:
            The original API key, or None
        """
        if not isinstance(token, str) or not token:
            return None
        if not _TOKEN_ALPHABET.fullmatch(token):
            return None

        try:
            raw = _b64decode(token)
        except ValueError:
            return None

        # Spare bits in the last character must be zero, otherwise two
        # different strings would decode to the same bytes
        if _b64encode(raw) != token:
            return None

        if len(raw) < self.NONCE_LENGTH + self.TAG_LENGTH:
            return None

        nonce = raw[:self.NONCE_LENGTH]
        tag = raw[self.NONCE_LENGTH:self.NONCE_LENGTH + self.TAG_LENGTH]
        ciphertext = raw[self.NONCE_LENGTH + self.TAG_LENGTH:]

        try:
            plaintext = self._aead.decrypt(nonce, ciphertext + tag, None)
            payload = orjson.loads(plaintext)
        except (InvalidTag, ValueError):
            logger.debug("Token rejected: authentication failed")
            return None

        return self._api_key_from_payload(payload)

    def _api_key_from_payload(self, payload) -> Optional[str]:
        if not isinstance(payload, dict):
            return None

        api_key = payload.get("k")
        expires_at = payload.get("exp")
        if not isinstance(api_key, str) or not api_key:
            return None
        if expires_at is not None:
            if isinstance(expires_at, bool) or not isinstance(expires_at, int):
                return None
            if self._clock() * 1000 > expires_at:
                logger.debug("Token rejected: expired")
                return None

        return api_key
