"""Structural comparison of normalized bytecode."""

from dataclasses import dataclass
from typing import List, Optional

from loguru import logger

from .normalizer import NormalizedBytecode
from .types import LengthMismatch, MismatchSpan


@dataclass(frozen=True)
class ComparisonResult:
    """Verdict of a structural comparison."""

    matched: bool
    mismatches: tuple[MismatchSpan, ...] = ()
    length_mismatch: Optional[LengthMismatch] = None


def _wildcard_mask(length: int, *sequences: NormalizedBytecode) -> bytearray:
    mask = bytearray(length)
    for sequence in sequences:
        for r in sequence.wildcards:
            mask[r.offset : r.end] = b"\x01" * r.length
    return mask


def compare(on_chain: NormalizedBytecode, reference: NormalizedBytecode) -> ComparisonResult:
    """
    Compare on-chain bytecode against reference bytecode.

    A length difference fails fast: it points at a different compiler,
    optimizer setting or contract, and no byte diff is attempted. Otherwise
    every offset is scanned; wildcard bytes of either side compare equal, and
    each maximal run of differing bytes becomes one mismatch span.

    Args:
        on_chain: Normalized init code from the deployment transaction
        reference: Normalized creation bytecode from the build

    Returns:
        ComparisonResult
    """
    if len(on_chain) != len(reference):
        logger.debug("Length mismatch: on-chain={} reference={}", len(on_chain), len(reference))
        return ComparisonResult(
            matched=False,
            length_mismatch=LengthMismatch(len(on_chain), len(reference)),
        )

    length = len(on_chain)
    mask = _wildcard_mask(length, on_chain, reference)
    left, right = on_chain.code, reference.code

    mismatches: List[MismatchSpan] = []
    run_start = -1
    for offset in range(length):
        differs = not mask[offset] and left[offset] != right[offset]
        if differs and run_start < 0:
            run_start = offset
        elif not differs and run_start >= 0:
            mismatches.append(MismatchSpan(run_start, offset - run_start))
            run_start = -1
    if run_start >= 0:
        mismatches.append(MismatchSpan(run_start, length - run_start))

    logger.debug("Compared {} bytes: {} mismatch span(s)", length, len(mismatches))
    return ComparisonResult(matched=not mismatches, mismatches=tuple(mismatches))
