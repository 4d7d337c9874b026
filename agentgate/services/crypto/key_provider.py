"""
Process-wide secret material for token encryption

The secret is resolved exactly once per process:
- From configuration (TOKEN_SECRET), so restarts and replicas honour
  previously issued tokens
- Otherwise from the OS random source, held only in memory
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import SecretStr

logger = logging.getLogger(__name__)


class CryptoError(Exception):
    """Base exception for cryptographic operations"""
    pass


class KeyMaterialError(CryptoError):
    """Raised when secret material cannot be produced"""
    pass


class SecretProvenance(str, Enum):
    CONFIGURED = "configured"
    EPHEMERAL = "ephemeral"


@dataclass(frozen=True)
class SecretMaterial:
    """
    Symmetric key used for token encryption.

    The raw key is excluded from repr so it cannot leak through logs or
    assertion messages.
    """
    key: bytes = field(repr=False)
    provenance: SecretProvenance

    KEY_LENGTH = 32  # AES-256

    def __post_init__(self):
        if len(self.key) != self.KEY_LENGTH:
            raise KeyMaterialError(
                f"Secret material must be {self.KEY_LENGTH} bytes, got {len(self.key)}"
            )

    @property
    def is_ephemeral(self) -> bool:
        return self.provenance is SecretProvenance.EPHEMERAL


class KeyProvider:
    """
    Resolves the secret material used by TokenCodec.

    A configured secret of any length is stretched to 32 bytes with
    SHA-256, so every process given the same TOKEN_SECRET derives the same
    key. Without one, a random key is generated and never persisted.
    """

    def __init__(self, configured_secret: Optional[str] = None):
        """
        Initialize KeyProvider.

        Args:
            configured_secret: Secret from deployment configuration. Empty or
                               None means an ephemeral secret is generated.
        """
        self._configured = configured_secret or None
        self._material: Optional[SecretMaterial] = None

    @classmethod
    def from_settings(cls, settings) -> "KeyProvider":
        secret: Optional[SecretStr] = settings.TOKEN_SECRET
        return cls(secret.get_secret_value() if secret is not None else None)

    @property
    def is_configured(self) -> bool:
        """True if a usable TOKEN_SECRET was supplied."""
        return self._configured is not None

    def get_secret(self) -> SecretMaterial:
        """
        Get the secret material, resolving it on first use.

        Returns:
            SecretMaterial for this process

        Raises:
            KeyMaterialError: If no secure random source is available
        """
        if self._material is None:
            self._material = self._resolve()
        return self._material

    def _resolve(self) -> SecretMaterial:
        if self._configured is not None:
            key = hashlib.sha256(self._configured.encode("utf-8")).digest()
            logger.info("Token secret loaded from configuration")
            return SecretMaterial(key=key, provenance=SecretProvenance.CONFIGURED)

        try:
            key = secrets.token_bytes(SecretMaterial.KEY_LENGTH)
        except NotImplementedError as e:
            raise KeyMaterialError(f"No secure random source available: {e}") from e

        logger.warning(
            "TOKEN_SECRET not set - using an ephemeral secret; "
            "issued tokens will not survive a process restart"
        )
        return SecretMaterial(key=key, provenance=SecretProvenance.EPHEMERAL)
