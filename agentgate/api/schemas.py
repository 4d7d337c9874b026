from pydantic import BaseModel, Field, SecretStr
from typing import Any, Dict, Literal, Optional, Union


class ConnectRequest(BaseModel):
    api_key: SecretStr = Field(..., description="Upstream agent API key to wrap")


class ConnectResponse(BaseModel):
    token: str
    mcp_url: str
    expires_in_days: Optional[float] = None
    ephemeral: bool = Field(..., description="True if the token dies with this process")


class JsonRpcRequest(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    id: Optional[Union[int, str]] = None
    method: str
    params: Dict[str, Any] = Field(default_factory=dict)


class JsonRpcError(BaseModel):
    code: int
    message: str


class JsonRpcResponse(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    id: Optional[Union[int, str]] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[JsonRpcError] = None
