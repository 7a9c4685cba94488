"""Transaction trace parsers for bytecode-provenance library."""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from eth_utils import decode_hex as _decode_hex

from .exceptions import TraceFormatError
from .types import CallFrame, CallType


class TraceFormat(Enum):
    """
    Trace payload shapes returned by tracing RPC methods.

    - CALL_TRACER: nested call tree from debug_traceTransaction with geth's callTracer
    - PARITY: flat list with traceAddress paths from trace_transaction (parity/erigon/reth)
    """

    CALL_TRACER = "callTracer"
    PARITY = "parity"


_PARITY_CALL_TYPES = {
    "call": CallType.CALL,
    "staticcall": CallType.STATICCALL,
    "delegatecall": CallType.DELEGATECALL,
    "callcode": CallType.CALLCODE,
}


def decode_hex(value: Optional[str]) -> bytes:
    """
    Decode a hex string from an RPC payload.

    Args:
        value: Hex string with or without 0x prefix; None or "0x" for empty

    Returns:
        Decoded bytes

    Raises:
        TraceFormatError: If the value is not valid hex
    """
    if not value:
        return b""
    try:
        return _decode_hex(value)
    except ValueError as e:
        raise TraceFormatError(f"Invalid hex data in trace: {value[:20]}...") from e


def _parse_call_type(raw: Optional[str]) -> CallType:
    try:
        return CallType((raw or "").upper())
    except ValueError:
        return CallType.UNKNOWN


def detect_trace_format(payload: Any) -> Optional[TraceFormat]:
    """
    Detect which trace shape an RPC result has.

    Args:
        payload: Decoded JSON-RPC "result" value

    Returns:
        TraceFormat.CALL_TRACER for a dict with a "type" key
        TraceFormat.PARITY for a list of trace entries
        None if the shape is not recognized
    """
    if isinstance(payload, dict) and "type" in payload:
        return TraceFormat.CALL_TRACER
    if isinstance(payload, list):
        return TraceFormat.PARITY
    return None


def _frame_from_call_tracer(
    node: Dict[str, Any], depth: int, children: tuple[CallFrame, ...]
) -> CallFrame:
    return CallFrame(
        call_type=_parse_call_type(node.get("type")),
        from_address=node.get("from", ""),
        to_address=node.get("to") or None,
        input=decode_hex(node.get("input")),
        output=decode_hex(node.get("output")),
        children=children,
        depth=depth,
        error=node.get("error"),
    )


def parse_call_tracer(payload: Dict[str, Any]) -> CallFrame:
    """
    Parse a callTracer result into a CallFrame tree.

    The tree is built bottom-up with an explicit stack so that deeply nested
    traces do not hit the interpreter recursion limit.

    Args:
        payload: Root call object ({type, from, to, input, output, calls, error})

    Returns:
        Root CallFrame
    """
    built: Dict[int, CallFrame] = {}
    stack: List[Tuple[Dict[str, Any], int, bool]] = [(payload, 0, False)]

    while stack:
        node, depth, expanded = stack.pop()
        calls = node.get("calls") or []
        if not expanded:
            stack.append((node, depth, True))
            for child in reversed(calls):
                stack.append((child, depth + 1, False))
        else:
            children = tuple(built.pop(id(child)) for child in calls)
            built[id(node)] = _frame_from_call_tracer(node, depth, children)

    return built[id(payload)]


def _frame_from_parity(
    trace: Dict[str, Any], depth: int, children: tuple[CallFrame, ...]
) -> CallFrame:
    action = trace.get("action") or {}
    result = trace.get("result") or {}
    trace_type = trace.get("type")

    match trace_type:
        case "create":
            method = (action.get("creationMethod") or "create").upper()
            call_type = CallType.CREATE2 if method == "CREATE2" else CallType.CREATE
            return CallFrame(
                call_type=call_type,
                from_address=action.get("from", ""),
                to_address=result.get("address") or None,
                input=decode_hex(action.get("init")),
                output=decode_hex(result.get("code")),
                children=children,
                depth=depth,
                error=trace.get("error"),
            )
        case "suicide" | "selfdestruct":
            return CallFrame(
                call_type=CallType.SELFDESTRUCT,
                from_address=action.get("address", ""),
                to_address=action.get("refundAddress") or None,
                input=b"",
                output=b"",
                children=children,
                depth=depth,
                error=trace.get("error"),
            )
        case "call":
            return CallFrame(
                call_type=_PARITY_CALL_TYPES.get(action.get("callType", "call"), CallType.UNKNOWN),
                from_address=action.get("from", ""),
                to_address=action.get("to") or None,
                input=decode_hex(action.get("input")),
                output=decode_hex(result.get("output")),
                children=children,
                depth=depth,
                error=trace.get("error"),
            )
        case _:
            return CallFrame(
                call_type=CallType.UNKNOWN,
                from_address=action.get("from", ""),
                to_address=action.get("to") or None,
                input=b"",
                output=b"",
                children=children,
                depth=depth,
                error=trace.get("error"),
            )


def parse_parity_traces(traces: List[Dict[str, Any]]) -> CallFrame:
    """
    Parse a flat trace_transaction result into a CallFrame tree.

    Each entry's traceAddress is its path from the root (the root has []).
    Entries are built deepest-first so children exist before their parent.

    Args:
        traces: List of parity-style trace entries

    Returns:
        Root CallFrame

    Raises:
        TraceFormatError: If the list is empty or has no root entry
    """
    if not traces:
        raise TraceFormatError("Empty trace: transaction has no trace entries")

    by_path: Dict[tuple[int, ...], Dict[str, Any]] = {}
    for trace in traces:
        by_path[tuple(trace.get("traceAddress") or [])] = trace

    if () not in by_path:
        raise TraceFormatError("Trace has no root entry (traceAddress [])")

    built: Dict[tuple[int, ...], CallFrame] = {}
    pending: Dict[tuple[int, ...], List[tuple[int, CallFrame]]] = {}

    for path in sorted(by_path, key=len, reverse=True):
        children = tuple(frame for _, frame in sorted(pending.pop(path, []), key=lambda c: c[0]))
        frame = _frame_from_parity(by_path[path], len(path), children)
        built[path] = frame
        if path:
            pending.setdefault(path[:-1], []).append((path[-1], frame))

    return built[()]


def parse_trace(payload: Any) -> CallFrame:
    """
    Parse any supported trace payload into a CallFrame tree.

    Args:
        payload: Decoded JSON-RPC "result" value

    Returns:
        Root CallFrame

    Raises:
        TraceFormatError: If the payload shape is not supported
    """
    trace_format = detect_trace_format(payload)

    match trace_format:
        case TraceFormat.CALL_TRACER:
            return parse_call_tracer(payload)
        case TraceFormat.PARITY:
            return parse_parity_traces(payload)
        case _:
            raise TraceFormatError(f"Unsupported trace payload of type {type(payload).__name__}")
