"""Bytecode normalization: metadata stripping and placeholder masking."""

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Tuple, Union

from loguru import logger

from .constants import METADATA_LENGTH_SIZE
from .types import ByteRange, RangeKind


@dataclass(frozen=True)
class FixedBytes:
    data: bytes

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ImmutablePlaceholder:
    length: int

    def __len__(self) -> int:
        return self.length


@dataclass(frozen=True)
class LibraryPlaceholder:
    length: int

    def __len__(self) -> int:
        return self.length


@dataclass(frozen=True)
class MetadataRegion:
    """Compiler metadata trailer; excluded from comparison, so it has zero length."""

    data: bytes

    def __len__(self) -> int:
        return 0


Segment = Union[FixedBytes, ImmutablePlaceholder, LibraryPlaceholder, MetadataRegion]


@dataclass(frozen=True)
class NormalizedBytecode:
    """
    Bytecode prepared for structural comparison.

    `code` is the comparable part (metadata trailer removed). `wildcards` are
    sorted, disjoint ranges within `code` that compare equal to anything.
    The underlying bytes are never rewritten.
    """

    code: bytes
    wildcards: tuple[ByteRange, ...] = ()
    metadata: bytes = b""

    def __len__(self) -> int:
        return len(self.code)

    @property
    def segments(self) -> Iterator[Segment]:
        """Fixed runs and placeholders in order, then the excluded metadata if any."""
        position = 0
        for r in self.wildcards:
            if r.offset > position:
                yield FixedBytes(self.code[position : r.offset])
            if r.kind is RangeKind.LIBRARY:
                yield LibraryPlaceholder(r.length)
            else:
                yield ImmutablePlaceholder(r.length)
            position = r.end
        if position < len(self.code):
            yield FixedBytes(self.code[position:])
        if self.metadata:
            yield MetadataRegion(self.metadata)


def strip_metadata(code: bytes) -> Tuple[bytes, bytes]:
    """
    Split off the compiler metadata trailer.

    The final two bytes are read as a big-endian length N. The trailer is
    valid when N is non-zero and N + 2 fits in the code; its encoding is not
    inspected (solc writes a CBOR map, vyper a CBOR array). An invalid or
    absent trailer fails open: the whole sequence stays comparable.

    Args:
        code: Raw bytecode

    Returns:
        Tuple of (comparable bytes, stripped trailer including the length bytes)
    """
    if len(code) <= METADATA_LENGTH_SIZE:
        return code, b""

    length = int.from_bytes(code[-METADATA_LENGTH_SIZE:], "big")
    total = length + METADATA_LENGTH_SIZE
    if length == 0 or total > len(code):
        logger.debug("No metadata trailer (length field {} out of range)", length)
        return code, b""

    logger.debug("Stripped {}-byte metadata trailer", total)
    return code[:-total], code[-total:]


def merge_ranges(ranges: Iterable[ByteRange], length: int) -> tuple[ByteRange, ...]:
    """
    Clip ranges to [0, length), sort them and merge overlaps.

    Overlapping or adjacent ranges of the same kind merge into one. Where
    ranges of different kinds overlap, the earlier range keeps the shared bytes.

    Args:
        ranges: Placeholder ranges, in any order
        length: Length of the comparable code

    Returns:
        Sorted, disjoint ranges
    """
    clipped: List[ByteRange] = []
    for r in ranges:
        start = max(r.offset, 0)
        end = min(r.end, length)
        if end <= start:
            logger.debug("Dropping {} range at {} outside comparable code", r.kind.value, r.offset)
            continue
        clipped.append(ByteRange(start, end - start, r.kind))

    clipped.sort(key=lambda r: (r.offset, -r.length))

    merged: List[ByteRange] = []
    for r in clipped:
        if merged and r.offset <= merged[-1].end:
            last = merged[-1]
            if r.kind is last.kind:
                if r.end > last.end:
                    merged[-1] = ByteRange(last.offset, r.end - last.offset, last.kind)
                continue
            if r.offset < last.end:
                if r.end <= last.end:
                    continue
                r = ByteRange(last.end, r.end - last.end, r.kind)
        merged.append(r)

    return tuple(merged)


def normalize(
    code: Union[bytes, NormalizedBytecode], ranges: Iterable[ByteRange] = ()
) -> NormalizedBytecode:
    """
    Normalize bytecode for comparison.

    Two independent passes: the metadata trailer is stripped, and every
    immutable/library range is marked as a wildcard. Already-normalized input
    keeps its metadata split and gains the new ranges, so normalizing twice
    with the same ranges is a no-op.

    Args:
        code: Raw bytecode or previously normalized bytecode
        ranges: Immutable and library ranges from the build artifact

    Returns:
        NormalizedBytecode
    """
    if isinstance(code, NormalizedBytecode):
        comparable, metadata = code.code, code.metadata
        ranges = list(code.wildcards) + list(ranges)
    else:
        comparable, metadata = strip_metadata(bytes(code))

    return NormalizedBytecode(
        code=comparable,
        wildcards=merge_ranges(ranges, len(comparable)),
        metadata=metadata,
    )
