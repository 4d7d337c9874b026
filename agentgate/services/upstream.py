"""
Upstream agent API client and per-call request scope.

A RequestScope owns exactly one AgentApiClient, built for exactly one
resolved credential, and closes it when the call finishes. Clients are never
cached or shared between calls, so default headers can never leak from one
caller's credential into another's request.
"""
from typing import Any, Dict, Optional
import httpx
import structlog

from ..auth.resolver import ResolvedCredential
from ..errors import AuthenticationError, UpstreamError, error_from_response
from ..logging import redact

log = structlog.get_logger()

USER_AGENT = "agentgate/0.1.0"
PAYLOAD_LOG_LIMIT = 4000


class AgentApiClient:
    """
    Thin async client for the background agent API.

    Methods return the decoded JSON body. Non-2xx responses raise the
    GatewayError subclass matching the status; connection failures raise
    UpstreamError.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 30.0,
        debug: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._debug = debug
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
                "Authorization": f"Bearer {api_key}",
            },
            timeout=timeout,
            transport=transport,
        )

    @property
    def is_closed(self) -> bool:
        return self._http.is_closed

    async def aclose(self):
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        self._log_payload("upstream.request", method=method, path=path, payload=kwargs.get("json"))
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log.error("upstream.unreachable", method=method, path=path, error_type=type(e).__name__)
            raise UpstreamError("Unable to connect to the agent API") from e

        if response.is_error:
            message, code = _error_details(response)
            log.warning(
                "upstream.error",
                method=method,
                path=path,
                http_status=response.status_code,
                code=code,
            )
            raise error_from_response(response.status_code, message, code)

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            log.error("upstream.invalid_json", method=method, path=path, http_status=response.status_code)
            raise UpstreamError("Invalid JSON from the agent API") from e
        self._log_payload("upstream.response", method=method, path=path, payload=body)
        return body

    def _log_payload(self, event: str, method: str, path: str, payload: Any):
        if not self._debug or payload is None:
            return
        rendered = str(redact(payload))[:PAYLOAD_LOG_LIMIT]
        log.debug(event, method=method, path=path, payload=rendered)

    async def get_me(self) -> Dict[str, Any]:
        return await self._request("GET", "/v0/me")

    async def list_models(self) -> Dict[str, Any]:
        return await self._request("GET", "/v0/models")

    async def list_repositories(self) -> Dict[str, Any]:
        return await self._request("GET", "/v0/repositories")

    async def list_agents(self, limit: Optional[int] = None, cursor: Optional[str] = None) -> Dict[str, Any]:
        params = {k: v for k, v in {"limit": limit, "cursor": cursor}.items() if v is not None}
        return await self._request("GET", "/v0/agents", params=params)

    async def get_agent(self, agent_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/v0/agents/{agent_id}")

    async def get_agent_conversation(self, agent_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/v0/agents/{agent_id}/conversation")

    async def create_agent(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/v0/agents", json=data)

    async def add_followup(self, agent_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", f"/v0/agents/{agent_id}/followup", json=data)

    async def delete_agent(self, agent_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/v0/agents/{agent_id}")


def _error_details(response: httpx.Response) -> tuple[str, Optional[str]]:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase, None
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or response.reason_phrase, error.get("code")
    if isinstance(error, str):
        return error, None
    return response.reason_phrase, None


class RequestScope:
    """
    Builds the upstream client for one inbound call.

    Usage:
        async with RequestScope(credential, settings) as client:
            await client.get_me()
    """

    def __init__(
        self,
        credential: ResolvedCredential,
        settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.credential = credential
        self._settings = settings
        self._transport = transport
        self._client: Optional[AgentApiClient] = None

    async def __aenter__(self) -> AgentApiClient:
        if not self.credential.authenticated:
            raise AuthenticationError("No valid API key found in request")
        self._client = AgentApiClient(
            self.credential.api_key,
            base_url=str(self._settings.AGENT_API_URL),
            timeout=self._settings.AGENT_API_TIMEOUT,
            debug=self._settings.UPSTREAM_DEBUG,
            transport=self._transport,
        )
        return self._client

    async def __aexit__(self, exc_type, exc, tb):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
