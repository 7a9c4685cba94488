"""
bytecode-provenance: verify deployed contract bytecode against a commit of its source
"""

from importlib.metadata import PackageNotFoundError, version

from .comparator import ComparisonResult, compare
from .exceptions import (
    AmbiguousDeploymentError,
    BuildFailureError,
    DeploymentNotFoundError,
    RpcError,
    RpcTimeoutError,
    SourceCheckoutError,
    TraceFormatError,
    VerificationError,
)
from .extractor import extract_deployment
from .normalizer import NormalizedBytecode, normalize
from .types import (
    BuildArtifact,
    ByteRange,
    CallFrame,
    CallType,
    DeploymentEvent,
    DeploymentKind,
    LengthMismatch,
    MatchReport,
    MismatchSpan,
    RangeKind,
)
from .verifier import verify_deployment, verify_event

try:
    __version__ = version("bytecode-provenance")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "verify_deployment",
    "verify_event",
    "extract_deployment",
    "normalize",
    "compare",
    "BuildArtifact",
    "ByteRange",
    "CallFrame",
    "CallType",
    "ComparisonResult",
    "DeploymentEvent",
    "DeploymentKind",
    "LengthMismatch",
    "MatchReport",
    "MismatchSpan",
    "NormalizedBytecode",
    "RangeKind",
    "VerificationError",
    "DeploymentNotFoundError",
    "AmbiguousDeploymentError",
    "TraceFormatError",
    "RpcError",
    "RpcTimeoutError",
    "SourceCheckoutError",
    "BuildFailureError",
]
