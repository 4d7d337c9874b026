"""Service discovery and token minting."""
from fastapi import APIRouter, Request, status
import structlog

from .schemas import ConnectRequest, ConnectResponse
from ..auth.api_key import TOKEN_QUERY
from ..auth.resolver import KeyShape
from ..errors import ValidationError

log = structlog.get_logger()

router = APIRouter(tags=["connect"])


@router.get("/")
async def service_info(request: Request):
    """Describe the service and its endpoints."""
    return {
        "name": "agentgate",
        "version": request.app.version,
        "description": "Gateway for the background coding agent API",
        "endpoints": {
            "mcp": "/mcp",
            "connect": "/connect",
            "health": "/health",
            "metrics": "/metrics",
        },
    }


@router.post(
    "/connect",
    response_model=ConnectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Mint a connection token",
    description="Wrap an upstream API key into a portable token for the MCP endpoint"
)
async def connect(body: ConnectRequest, request: Request) -> ConnectResponse:
    """
    Mint a token for an upstream API key.

    - **api_key**: Upstream key; must match the direct-key shape

    The key is not stored anywhere; the token itself carries it, encrypted.
    """
    state = request.app.state
    api_key = body.api_key.get_secret_value()

    if not KeyShape.from_settings(state.settings).matches(api_key):
        raise ValidationError(
            f"Invalid API key format: must start with \"{state.settings.API_KEY_PREFIX}\" "
            f"and be at least {state.settings.API_KEY_MIN_LENGTH} characters",
            field="api_key",
        )

    try:
        token = state.codec.mint(api_key)
    except ValueError as e:
        raise ValidationError(str(e), field="api_key") from e
    state.metrics.tokens_minted_total.inc()
    log.info("connect.token_minted", ephemeral=state.secret.is_ephemeral)

    return ConnectResponse(
        token=token,
        mcp_url=f"{str(request.base_url).rstrip('/')}/mcp?{TOKEN_QUERY}={token}",
        expires_in_days=state.settings.TOKEN_TTL_DAYS or None,
        ephemeral=state.secret.is_ephemeral,
    )
