"""Data types and dataclasses for bytecode-provenance library."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class CallType(Enum):
    """
    Trace frame types.

    Value strings match the opcode names reported by geth's callTracer.
    """

    CALL = "CALL"
    STATICCALL = "STATICCALL"
    DELEGATECALL = "DELEGATECALL"
    CALLCODE = "CALLCODE"
    CREATE = "CREATE"
    CREATE2 = "CREATE2"
    SELFDESTRUCT = "SELFDESTRUCT"
    UNKNOWN = "UNKNOWN"

    @property
    def is_create(self) -> bool:
        return self in (CallType.CREATE, CallType.CREATE2)


class DeploymentKind(Enum):
    """How the target contract was deployed."""

    DIRECT_CREATE = "direct-create"
    FACTORY_CREATE = "factory-create"
    CREATE2 = "create2"


class RangeKind(Enum):
    """Why a byte range is excluded from comparison."""

    IMMUTABLE = "immutable"
    LIBRARY = "library"


@dataclass(frozen=True)
class CallFrame:
    """One frame of a transaction's call tree."""

    call_type: CallType
    from_address: str
    to_address: Optional[str]  # New contract for creations, beneficiary for SELFDESTRUCT
    input: bytes
    output: bytes
    children: tuple["CallFrame", ...] = ()
    depth: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class DeploymentEvent:
    """The frame that deployed the target address, as extracted from a trace."""

    transaction_hash: str
    deployer_address: str
    deployed_address: str
    deployment_kind: DeploymentKind
    raw_init_code: bytes
    salt: Optional[bytes] = None  # CREATE2 only, when recoverable from calldata


@dataclass(frozen=True)
class ByteRange:
    """An offset/length range of bytecode whose value varies per deployment or link target."""

    offset: int
    length: int
    kind: RangeKind

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(frozen=True)
class BuildArtifact:
    """Compiled reference bytecode plus its placeholder offset tables."""

    contract_name: str
    creation_bytecode: bytes
    immutable_references: Dict[str, List[ByteRange]] = field(default_factory=dict)
    link_references: Dict[str, List[ByteRange]] = field(default_factory=dict)

    def placeholder_ranges(self) -> List[ByteRange]:
        """All immutable and library ranges, sorted by offset."""
        ranges = [r for refs in self.immutable_references.values() for r in refs]
        ranges += [r for refs in self.link_references.values() for r in refs]
        return sorted(ranges, key=lambda r: (r.offset, r.length))


@dataclass(frozen=True)
class MismatchSpan:
    """A contiguous run of differing bytes outside any wildcard range."""

    offset: int
    length: int


@dataclass(frozen=True)
class LengthMismatch:
    """Normalized sequences of different lengths; no byte-level diff is attempted."""

    on_chain_length: int
    reference_length: int


@dataclass(frozen=True)
class MatchReport:
    """Outcome of comparing on-chain init code against the reference build."""

    # Required fields
    matched: bool
    mismatches: tuple[MismatchSpan, ...]
    deployment_kind: DeploymentKind
    source_label: str  # "<tx hash>:<address>"
    reference_label: str  # "<git url>@<commit>:<contract name>"

    # Optional fields
    length_mismatch: Optional[LengthMismatch] = None
    on_chain_length: Optional[int] = None  # Comparable length after normalization
    reference_length: Optional[int] = None
    salt: Optional[bytes] = None
    constructor_args: Optional[bytes] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable view of the report."""
        result: Dict[str, Any] = {
            "matched": self.matched,
            "mismatches": [{"offset": m.offset, "length": m.length} for m in self.mismatches],
            "deployment_kind": self.deployment_kind.value,
            "source": self.source_label,
            "reference": self.reference_label,
            "on_chain_length": self.on_chain_length,
            "reference_length": self.reference_length,
        }
        if self.length_mismatch is not None:
            result["length_mismatch"] = {
                "on_chain_length": self.length_mismatch.on_chain_length,
                "reference_length": self.length_mismatch.reference_length,
            }
        if self.salt is not None:
            result["salt"] = "0x" + self.salt.hex()
        if self.constructor_args is not None:
            result["constructor_args"] = "0x" + self.constructor_args.hex()
        return result
