"""
Tool registry exposed over the MCP endpoint.

Each tool validates its arguments with a pydantic model and makes one call
on the per-request AgentApiClient. Results are returned as MCP text content
holding the upstream JSON.
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

import orjson
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import GatewayError, NotFoundError, ValidationError
from .services.upstream import AgentApiClient


class NoArguments(BaseModel):
    model_config = ConfigDict(extra="ignore")


class AgentIdArguments(BaseModel):
    id: str = Field(..., min_length=1, description="Agent identifier")


class ListAgentsArguments(BaseModel):
    limit: Optional[int] = Field(default=None, ge=1, le=100)
    cursor: Optional[str] = Field(default=None, min_length=1)


class PromptImage(BaseModel):
    data: str = Field(..., min_length=1)
    dimension: Optional[Dict[str, int]] = None


class Prompt(BaseModel):
    text: str = Field(..., min_length=1)
    images: Optional[List[PromptImage]] = Field(default=None, max_length=5)


class Source(BaseModel):
    repository: str = Field(..., min_length=1)
    ref: Optional[str] = Field(default=None, min_length=1)


class Target(BaseModel):
    autoCreatePr: Optional[bool] = None
    branchName: Optional[str] = Field(default=None, min_length=1)


class CreateAgentArguments(BaseModel):
    prompt: Prompt
    source: Source
    model: str = Field(default="default", min_length=1)
    target: Optional[Target] = None


class AddFollowupArguments(BaseModel):
    id: str = Field(..., min_length=1)
    prompt: Prompt


Handler = Callable[[AgentApiClient, Any], Awaitable[Any]]


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    arguments: Type[BaseModel]
    handler: Handler

    @property
    def input_schema(self) -> Dict[str, Any]:
        return self.arguments.model_json_schema()

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


def _payload(args: BaseModel) -> Dict[str, Any]:
    return args.model_dump(exclude_none=True)


TOOLS: List[Tool] = [
    Tool(
        "getMe",
        "Retrieve information about the API key in use",
        NoArguments,
        lambda client, args: client.get_me(),
    ),
    Tool(
        "listModels",
        "List models available to background agents",
        NoArguments,
        lambda client, args: client.list_models(),
    ),
    Tool(
        "listRepositories",
        "List GitHub repositories accessible to the API key",
        NoArguments,
        lambda client, args: client.list_repositories(),
    ),
    Tool(
        "listAgents",
        "List background agents",
        ListAgentsArguments,
        lambda client, args: client.list_agents(limit=args.limit, cursor=args.cursor),
    ),
    Tool(
        "getAgent",
        "Get the status and details of a background agent",
        AgentIdArguments,
        lambda client, args: client.get_agent(args.id),
    ),
    Tool(
        "getAgentConversation",
        "Get the conversation history of a background agent",
        AgentIdArguments,
        lambda client, args: client.get_agent_conversation(args.id),
    ),
    Tool(
        "createAgent",
        "Start a background agent on a repository",
        CreateAgentArguments,
        lambda client, args: client.create_agent(_payload(args)),
    ),
    Tool(
        "addFollowup",
        "Send a followup instruction to a running agent",
        AddFollowupArguments,
        lambda client, args: client.add_followup(args.id, {"prompt": _payload(args.prompt)}),
    ),
    Tool(
        "deleteAgent",
        "Delete a background agent",
        AgentIdArguments,
        lambda client, args: client.delete_agent(args.id),
    ),
]


class ToolRegistry:
    def __init__(self, tools: Optional[List[Tool]] = None):
        self._tools = {tool.name: tool for tool in (tools if tools is not None else TOOLS)}

    def list(self) -> List[Dict[str, Any]]:
        return [tool.describe() for tool in self._tools.values()]

    def get(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise NotFoundError(f"Tool {name} not found")
        return tool

    async def call(self, client: AgentApiClient, name: str, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Run a tool and wrap its result as MCP content.

        Raises:
            NotFoundError: If the tool does not exist
            ValidationError: If the arguments do not match the tool's schema
            GatewayError: If the upstream call fails
        """
        tool = self.get(name)
        try:
            args = tool.arguments.model_validate(arguments or {})
        except PydanticValidationError as e:
            fields = ", ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ValidationError(f"Validation failed in {name}: {fields}") from e

        result = await tool.handler(client, args)
        return text_result(orjson.dumps(result, option=orjson.OPT_INDENT_2).decode())


def text_result(text: str, is_error: bool = False) -> Dict[str, Any]:
    result: Dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return result


def error_result(error: GatewayError) -> Dict[str, Any]:
    if isinstance(error, ValidationError):
        return text_result(f"Validation Error: {error.message}", is_error=True)
    return text_result(f"API Error ({error.status_code}): {error.message} [{error.code}]", is_error=True)
