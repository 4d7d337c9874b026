"""
Credential resolution for inbound calls.

Every inbound call is reduced to a CredentialCarriers view and run through
an ordered list of rules. The first rule that produces a result ends
resolution. Rules return None to pass.

Order:
1. token (query, then X-MCP-Token header); a present but undecodable token
   resolves to nothing and stops here
2. Authorization: Bearer carrying a direct key
3. direct-key headers, then query, then body
4. configured default, only when the call carried no credential at all
5. nothing
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Sequence

from ..services.crypto import TokenCodec

BEARER_PREFIX = "bearer "


class Provenance(str, Enum):
    """Which carrier supplied the resolved credential."""
    TOKEN = "token"
    BEARER = "bearer"
    HEADER = "header"
    QUERY = "query"
    BODY = "body"
    GLOBAL_FALLBACK = "global-fallback"
    NONE = "none"


@dataclass(frozen=True)
class ResolvedCredential:
    api_key: Optional[str] = field(default=None, repr=False)
    provenance: Provenance = Provenance.NONE

    @property
    def authenticated(self) -> bool:
        return self.api_key is not None


UNRESOLVED = ResolvedCredential()


@dataclass(frozen=True)
class KeyShape:
    """Direct upstream keys carry a fixed prefix and a minimum length."""
    prefix: str = "key_"
    min_length: int = 20

    def matches(self, value: Optional[str]) -> bool:
        return bool(value) and value.startswith(self.prefix) and len(value) >= self.min_length

    @classmethod
    def from_settings(cls, settings) -> "KeyShape":
        return cls(prefix=settings.API_KEY_PREFIX, min_length=settings.API_KEY_MIN_LENGTH)


@dataclass(frozen=True)
class CredentialCarriers:
    """
    Normalized view of the credential carriers on one inbound call.

    Blank values are treated as absent. key_headers keeps the order in which
    the direct-key headers are checked.
    """
    token_query: Optional[str] = field(default=None, repr=False)
    token_header: Optional[str] = field(default=None, repr=False)
    authorization: Optional[str] = field(default=None, repr=False)
    key_headers: Sequence[Optional[str]] = field(default=(), repr=False)
    api_key_query: Optional[str] = field(default=None, repr=False)
    api_key_body: Optional[str] = field(default=None, repr=False)
    default_api_key: Optional[str] = field(default=None, repr=False)

    @property
    def token(self) -> Optional[str]:
        return _present(self.token_query) or _present(self.token_header)

    def bearer(self, delegated_marker: str) -> Optional[str]:
        """
        Value of a Bearer authorization header, unless it belongs to a
        delegated (third-party OAuth) flow.

        Delegated tokens start with the marker; a marker elsewhere in the
        value does not make it delegated.
        """
        header = _present(self.authorization)
        if header is None or not header.lower().startswith(BEARER_PREFIX):
            return None
        value = _present(header[len(BEARER_PREFIX):])
        if value is not None and delegated_marker and value.lower().startswith(delegated_marker.lower()):
            return None
        return value

    def direct_keys(self) -> list[tuple[Provenance, Optional[str]]]:
        keys = [(Provenance.HEADER, value) for value in self.key_headers]
        keys.append((Provenance.QUERY, self.api_key_query))
        keys.append((Provenance.BODY, self.api_key_body))
        return keys


def _present(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


Rule = Callable[[CredentialCarriers], Optional[ResolvedCredential]]


class CredentialResolver:
    """
    Applies the precedence rules to one call's carriers.

    Pure: no I/O and no state beyond the injected codec, so it is safe to
    call from any number of concurrent requests.
    """

    def __init__(
        self,
        codec: TokenCodec,
        key_shape: KeyShape | None = None,
        delegated_marker: str = "oauth",
    ):
        self._codec = codec
        self._shape = key_shape or KeyShape()
        self._delegated_marker = delegated_marker
        self._rules: tuple[Rule, ...] = (
            self._from_token,
            self._from_bearer,
            self._from_direct_key,
            self._from_default,
        )

    @classmethod
    def from_settings(cls, codec: TokenCodec, settings) -> "CredentialResolver":
        return cls(
            codec,
            key_shape=KeyShape.from_settings(settings),
            delegated_marker=settings.DELEGATED_TOKEN_MARKER,
        )

    def resolve(self, carriers: CredentialCarriers) -> ResolvedCredential:
        for rule in self._rules:
            resolved = rule(carriers)
            if resolved is not None:
                return resolved
        return UNRESOLVED

    def _from_token(self, carriers: CredentialCarriers) -> Optional[ResolvedCredential]:
        token = carriers.token
        if token is None:
            return None
        api_key = self._codec.decode(token)
        if api_key is None:
            return UNRESOLVED
        return ResolvedCredential(api_key, Provenance.TOKEN)

    def _from_bearer(self, carriers: CredentialCarriers) -> Optional[ResolvedCredential]:
        value = carriers.bearer(self._delegated_marker)
        if self._shape.matches(value):
            return ResolvedCredential(value, Provenance.BEARER)
        return None

    def _from_direct_key(self, carriers: CredentialCarriers) -> Optional[ResolvedCredential]:
        for provenance, value in carriers.direct_keys():
            value = _present(value)
            if self._shape.matches(value):
                return ResolvedCredential(value, provenance)
        return None

    def _from_default(self, carriers: CredentialCarriers) -> Optional[ResolvedCredential]:
        default = _present(carriers.default_api_key)
        if default is None or self._carries_credential(carriers):
            return None
        return ResolvedCredential(default, Provenance.GLOBAL_FALLBACK)

    def _carries_credential(self, carriers: CredentialCarriers) -> bool:
        """True if any carrier was present, valid or not."""
        if carriers.token is not None or carriers.bearer(self._delegated_marker) is not None:
            return True
        return any(_present(value) for _, value in carriers.direct_keys())
