"""Per-call credential extraction and enforcement for HTTP transports."""
from fastapi import Request, Security
from fastapi.security import APIKeyHeader, APIKeyQuery
from typing import Optional
import orjson
import structlog

from .resolver import CredentialCarriers, CredentialResolver, ResolvedCredential
from ..errors import AuthenticationError

log = structlog.get_logger()

TOKEN_QUERY = "token"
TOKEN_HEADER = "X-MCP-Token"
KEY_HEADERS = ("X-Agent-Api-Key", "X-Api-Key")
KEY_QUERY = "api_key"
KEY_BODY_FIELD = "agent_api_key"

# Carrier schemes; auto_error=False so absence is decided by the resolver
token_query_scheme = APIKeyQuery(name=TOKEN_QUERY, auto_error=False)
token_header_scheme = APIKeyHeader(name=TOKEN_HEADER, auto_error=False)
authorization_scheme = APIKeyHeader(name="Authorization", auto_error=False)
agent_key_header_scheme = APIKeyHeader(name=KEY_HEADERS[0], auto_error=False)
api_key_header_scheme = APIKeyHeader(name=KEY_HEADERS[1], auto_error=False)
api_key_query_scheme = APIKeyQuery(name=KEY_QUERY, auto_error=False)


async def read_body_key(request: Request) -> Optional[str]:
    """
    Direct key from the JSON body, if the body is a JSON object carrying one.

    Unparseable bodies are treated as carrying nothing; the route reports
    them on its own terms.
    """
    if request.method not in ("POST", "PUT", "PATCH"):
        return None
    body = await request.body()
    if not body:
        return None
    try:
        payload = orjson.loads(body)
    except orjson.JSONDecodeError:
        return None
    if isinstance(payload, dict):
        value = payload.get(KEY_BODY_FIELD)
        if isinstance(value, str):
            return value
    return None


async def extract_carriers(
    request: Request,
    token_query: Optional[str] = Security(token_query_scheme),
    token_header: Optional[str] = Security(token_header_scheme),
    authorization: Optional[str] = Security(authorization_scheme),
    agent_key_header: Optional[str] = Security(agent_key_header_scheme),
    api_key_header: Optional[str] = Security(api_key_header_scheme),
    api_key_query: Optional[str] = Security(api_key_query_scheme),
) -> CredentialCarriers:
    """Collect every credential carrier present on the inbound request."""
    return CredentialCarriers(
        token_query=token_query,
        token_header=token_header,
        authorization=authorization,
        key_headers=(agent_key_header, api_key_header),
        api_key_query=api_key_query,
        api_key_body=await read_body_key(request),
        default_api_key=request.app.state.settings.default_api_key,
    )


async def resolve_credential(
    request: Request,
    carriers: CredentialCarriers = Security(extract_carriers),
) -> ResolvedCredential:
    """
    Dependency resolving the credential for this call.

    Runs once per inbound call. Never raises; see require_credential.
    """
    resolver: CredentialResolver = request.app.state.resolver
    resolved = resolver.resolve(carriers)

    request.app.state.metrics.record_resolution(resolved.provenance.value)
    log.debug("auth.resolved", provenance=resolved.provenance.value)
    return resolved


async def require_credential(
    credential: ResolvedCredential = Security(resolve_credential),
) -> ResolvedCredential:
    """
    Dependency requiring a usable credential.

    Raises:
        AuthenticationError: If no usable credential was resolved
    """
    if not credential.authenticated:
        log.warning("auth.failed", reason="no_valid_credential")
        raise AuthenticationError("No valid API key found in request")

    log.debug("auth.success", provenance=credential.provenance.value)
    return credential
