"""
agentgate Cryptographic Services Module

Provides the credential token primitives:
- Process-wide secret material (configured or ephemeral)
- AES-256-GCM token minting and decoding for upstream API keys
"""

from .key_provider import (
    CryptoError,
    KeyMaterialError,
    KeyProvider,
    SecretMaterial,
    SecretProvenance,
)
from .token_codec import TokenCodec

__all__ = [
    "CryptoError",
    "KeyMaterialError",
    "KeyProvider",
    "SecretMaterial",
    "SecretProvenance",
    "TokenCodec",
]
