"""Custom exception classes for bytecode-provenance library."""


class VerificationError(Exception):
    """Base exception for errors that abort a verification run."""

    stage = "verify"


class DeploymentNotFoundError(VerificationError, LookupError):
    """Raised when no frame in the trace deployed the target address."""

    stage = "trace"


class AmbiguousDeploymentError(VerificationError, RuntimeError):
    """Raised when several deploying frames remain after the last-frame tie-break."""

    stage = "trace"


class TraceFormatError(VerificationError, ValueError):
    """Raised when an RPC trace payload has an unsupported shape."""

    stage = "trace"


class RpcError(VerificationError, RuntimeError):
    """Raised when the trace RPC call fails."""

    stage = "rpc"


class RpcTimeoutError(RpcError, TimeoutError):
    """Raised when the trace RPC call exceeds its timeout."""

    pass


class SourceCheckoutError(VerificationError, RuntimeError):
    """Raised when cloning or checking out the source repository fails."""

    stage = "checkout"


class BuildFailureError(VerificationError, RuntimeError):
    """Raised when the build toolchain fails or the artifact cannot be resolved."""

    stage = "build"
