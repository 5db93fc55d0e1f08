"""Tests for JSON-RPC models."""

import pytest

from pydantic import ValidationError

from litescan.helpers.rpc_models import JsonRpcRequest, JsonRpcResponse


def test_json_rpc_request() -> None:
    """Test JsonRpcRequest model."""
    request = JsonRpcRequest(method="eth_getBlockByNumber", params=["0x10", True], id=1)
    assert request.model_dump() == {
        "jsonrpc": "2.0",
        "method": "eth_getBlockByNumber",
        "params": ["0x10", True],
        "id": 1,
    }


def test_json_rpc_request_default_params() -> None:
    """Test JsonRpcRequest with default params."""
    request = JsonRpcRequest(method="eth_blockNumber", id="abc123")
    assert request.params == []
    assert request.id == "abc123"


def test_json_rpc_request_validation() -> None:
    """Test that a method is required."""
    with pytest.raises(ValidationError):
        JsonRpcRequest(id=1)  # type: ignore[call-arg]


def test_json_rpc_response_result() -> None:
    """Test a successful response, including a null result."""
    ok = JsonRpcResponse.model_validate({"jsonrpc": "2.0", "id": 1, "result": "0x1b4"})
    missing = JsonRpcResponse.model_validate({"jsonrpc": "2.0", "id": 2, "result": None})

    assert ok.result == "0x1b4"
    assert ok.error is None
    assert missing.result is None


def test_json_rpc_response_error() -> None:
    """Test an error response with extra node-specific fields."""
    response = JsonRpcResponse.model_validate(
        {
            "jsonrpc": "2.0",
            "id": 1,
            "error": {"code": 3, "message": "execution reverted", "data": "0x08c379a0"},
        }
    )

    assert response.error is not None
    assert response.error.code == 3
    assert response.error.message == "execution reverted"
    assert response.error.data == "0x08c379a0"
