"""Trace RPC client for bytecode-provenance library."""

from enum import Enum
from typing import Any, Dict, List

import requests
from loguru import logger

from .constants import RPC_TIMEOUT
from .exceptions import DeploymentNotFoundError, RpcError, RpcTimeoutError


class TraceMethod(Enum):
    """Tracing RPC methods that return a full call tree for a transaction."""

    DEBUG = "debug_traceTransaction"
    TRACE = "trace_transaction"


def _trace_params(transaction_hash: str, method: TraceMethod) -> List[Any]:
    if method is TraceMethod.DEBUG:
        return [transaction_hash, {"tracer": "callTracer"}]
    return [transaction_hash]


def fetch_trace(
    transaction_hash: str,
    rpc_url: str,
    method: TraceMethod = TraceMethod.DEBUG,
    timeout: float = RPC_TIMEOUT,
) -> Any:
    """
    Fetch the call trace of a transaction.

    The call is made once; there is no retry.

    Args:
        transaction_hash: 0x-prefixed transaction hash
        rpc_url: RPC endpoint URL (must support the chosen tracing method)
        method: Tracing method to call
        timeout: Seconds before the request is abandoned

    Returns:
        The JSON-RPC "result" value (a call tree dict or a list of flat traces)

    Raises:
        RpcTimeoutError: If the request times out
        RpcError: If the HTTP request fails or the RPC returns an error
        DeploymentNotFoundError: If the node returns no trace for the transaction
    """
    payload: Dict[str, Any] = {
        "jsonrpc": "2.0",
        "method": method.value,
        "params": _trace_params(transaction_hash, method),
        "id": 1,
    }
    logger.debug("Calling {} for {}", method.value, transaction_hash)

    try:
        response = requests.post(rpc_url, json=payload, timeout=timeout)
    except requests.Timeout as e:
        raise RpcTimeoutError(f"{method.value} timed out after {timeout}s") from e
    except requests.RequestException as e:
        raise RpcError(f"Network error during RPC call: {e}") from e

    # Check for HTTP errors
    if response.status_code != 200:
        raise RpcError(f"RPC request failed with status {response.status_code}")

    try:
        result = response.json()
    except ValueError as e:
        raise RpcError(f"RPC returned a non-JSON response: {e}") from e

    if not isinstance(result, dict):
        raise RpcError(f"RPC returned a {type(result).__name__} instead of a JSON-RPC response object")

    # Check for RPC errors
    if "error" in result:
        raise RpcError(f"RPC error: {result['error']}")

    trace = result.get("result")
    if trace is None:
        raise DeploymentNotFoundError(f"No trace returned for transaction {transaction_hash}")

    return trace
