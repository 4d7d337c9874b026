"""MCP JSON-RPC endpoint."""
import time
from fastapi import APIRouter, Request, Security
import structlog

from .schemas import JsonRpcError, JsonRpcRequest, JsonRpcResponse
from ..auth.api_key import require_credential
from ..auth.resolver import ResolvedCredential
from ..errors import GatewayError, NotFoundError
from ..services.upstream import RequestScope
from ..tools import error_result

log = structlog.get_logger()

router = APIRouter(tags=["mcp"])

PROTOCOL_VERSION = "2024-11-05"
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602


@router.post("/mcp", response_model=JsonRpcResponse, response_model_exclude_none=True)
async def mcp(
    rpc: JsonRpcRequest,
    request: Request,
    credential: ResolvedCredential = Security(require_credential),
) -> JsonRpcResponse:
    """
    Handle one JSON-RPC call.

    The credential is resolved before any method runs; calls without a
    usable credential never reach a tool.
    """
    state = request.app.state

    if rpc.method == "initialize":
        return JsonRpcResponse(id=rpc.id, result={
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": "agentgate", "version": request.app.version},
        })

    if rpc.method == "tools/list":
        return JsonRpcResponse(id=rpc.id, result={"tools": state.tools.list()})

    if rpc.method == "tools/call":
        name = rpc.params.get("name")
        if not isinstance(name, str):
            return JsonRpcResponse(
                id=rpc.id,
                error=JsonRpcError(code=INVALID_PARAMS, message="params.name is required"),
            )
        return JsonRpcResponse(
            id=rpc.id,
            result=await _call_tool(request, credential, name, rpc.params.get("arguments")),
        )

    return JsonRpcResponse(
        id=rpc.id,
        error=JsonRpcError(code=METHOD_NOT_FOUND, message=f"Unknown method: {rpc.method}"),
    )


async def _call_tool(request: Request, credential: ResolvedCredential, name: str, arguments) -> dict:
    state = request.app.state
    start_time = time.time()
    outcome = "exception"

    try:
        state.tools.get(name)
    except NotFoundError as e:
        state.metrics.record_tool_call("unknown", "not_found", time.time() - start_time)
        return error_result(e)

    try:
        async with RequestScope(credential, state.settings, transport=state.upstream_transport) as client:
            result = await state.tools.call(client, name, arguments)
        outcome = "ok"
    except GatewayError as e:
        outcome = "error"
        log.warning("tool.failed", tool=name, code=e.code, status_code=e.status_code)
        result = error_result(e)
    finally:
        state.metrics.record_tool_call(name, outcome, time.time() - start_time)

    log.info("tool.called", tool=name, outcome=outcome, provenance=credential.provenance.value)
    return result
