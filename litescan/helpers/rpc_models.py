"""Pydantic models for JSON-RPC requests and responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request model."""

    jsonrpc: str = Field(default="2.0", description="JSON-RPC version")
    method: str = Field(..., description="Method name to call")
    params: list[Any] = Field(
        default_factory=list, description="Method parameters"
    )
    id: int | str = Field(..., description="Request ID")


class JsonRpcErrorObject(BaseModel):
    """Error member of a JSON-RPC 2.0 response."""

    code: int = 0
    message: str = ""
    data: Any = None

    model_config = ConfigDict(extra="allow")


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response model."""

    jsonrpc: str = "2.0"
    id: int | str | None = None
    result: Any = None
    error: JsonRpcErrorObject | None = None

    model_config = ConfigDict(extra="allow")


__all__ = [
    "JsonRpcErrorObject",
    "JsonRpcRequest",
    "JsonRpcResponse",
]
