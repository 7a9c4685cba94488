"""Unit tests for the trace RPC client."""

import json
from typing import Any, Dict

import pytest
import requests
import responses

from bytecode_provenance.exceptions import (
    DeploymentNotFoundError,
    RpcError,
    RpcTimeoutError,
)
from bytecode_provenance.rpc import TraceMethod, fetch_trace
from conftest import TX_HASH

RPC_URL = "http://test-rpc.example.com"


class TestFetchTrace:
    """Test the fetch_trace function."""

    @responses.activate
    def test_debug_trace_request(self, call_tracer_direct: Dict[str, Any]):
        """Test that debug_traceTransaction is called with the callTracer."""
        responses.add(
            responses.POST,
            RPC_URL,
            json={"jsonrpc": "2.0", "id": 1, "result": call_tracer_direct},
            status=200,
        )

        result = fetch_trace(TX_HASH, RPC_URL)

        assert result == call_tracer_direct
        body = json.loads(responses.calls[0].request.body)
        assert body["method"] == "debug_traceTransaction"
        assert body["params"] == [TX_HASH, {"tracer": "callTracer"}]

    @responses.activate
    def test_trace_transaction_request(self):
        """Test that trace_transaction takes only the hash."""
        responses.add(
            responses.POST,
            RPC_URL,
            json={"jsonrpc": "2.0", "id": 1, "result": []},
            status=200,
        )

        assert fetch_trace(TX_HASH, RPC_URL, TraceMethod.TRACE) == []
        body = json.loads(responses.calls[0].request.body)
        assert body["method"] == "trace_transaction"
        assert body["params"] == [TX_HASH]

    @responses.activate
    def test_single_request_no_retry(self):
        """Test that a failing call is made exactly once."""
        responses.add(responses.POST, RPC_URL, status=502)

        with pytest.raises(RpcError):
            fetch_trace(TX_HASH, RPC_URL)
        assert len(responses.calls) == 1

    @responses.activate
    def test_http_error(self):
        """Test that non-200 responses raise RpcError."""
        responses.add(responses.POST, RPC_URL, status=500)

        with pytest.raises(RpcError, match="status 500"):
            fetch_trace(TX_HASH, RPC_URL)

    @responses.activate
    def test_rpc_error(self):
        """Test that JSON-RPC errors raise RpcError."""
        responses.add(
            responses.POST,
            RPC_URL,
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "error": {"code": -32601, "message": "the method debug_traceTransaction does not exist"},
            },
            status=200,
        )

        with pytest.raises(RpcError, match="does not exist"):
            fetch_trace(TX_HASH, RPC_URL)

    @responses.activate
    def test_timeout(self):
        """Test that a timeout raises RpcTimeoutError."""
        responses.add(responses.POST, RPC_URL, body=requests.exceptions.ReadTimeout("timed out"))

        with pytest.raises(RpcTimeoutError):
            fetch_trace(TX_HASH, RPC_URL, timeout=1)

    @responses.activate
    def test_timeout_is_timeout_error(self):
        """Test that RpcTimeoutError can be caught as TimeoutError and RpcError."""
        responses.add(responses.POST, RPC_URL, body=requests.exceptions.ConnectTimeout("timed out"))

        with pytest.raises(TimeoutError):
            fetch_trace(TX_HASH, RPC_URL)

    @responses.activate
    def test_connection_error(self):
        """Test that network errors raise RpcError."""
        responses.add(responses.POST, RPC_URL, body=requests.exceptions.ConnectionError("refused"))

        with pytest.raises(RpcError, match="Network error"):
            fetch_trace(TX_HASH, RPC_URL)

    @responses.activate
    def test_non_json_response(self):
        """Test that a non-JSON body raises RpcError."""
        responses.add(responses.POST, RPC_URL, body="<html>bad gateway</html>", status=200)

        with pytest.raises(RpcError):
            fetch_trace(TX_HASH, RPC_URL)

    @pytest.mark.parametrize("body", [[{"jsonrpc": "2.0", "id": 1, "result": {}}], "ok", 42])
    @responses.activate
    def test_non_object_response(self, body):
        """Test that a JSON body that is not an object raises RpcError."""
        responses.add(responses.POST, RPC_URL, json=body, status=200)

        with pytest.raises(RpcError, match="instead of a JSON-RPC response object"):
            fetch_trace(TX_HASH, RPC_URL)

    @responses.activate
    def test_unknown_transaction(self):
        """Test that a null result raises DeploymentNotFoundError."""
        responses.add(
            responses.POST,
            RPC_URL,
            json={"jsonrpc": "2.0", "id": 1, "result": None},
            status=200,
        )

        with pytest.raises(DeploymentNotFoundError):
            fetch_trace(TX_HASH, RPC_URL)
