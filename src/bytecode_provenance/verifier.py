"""Main API for bytecode-provenance library."""

import os
import tempfile
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

from eth_utils import is_address, is_hexstr, to_checksum_address
from loguru import logger

from .build import resolve_build_artifact
from .checkout import prepare_source
from .comparator import ComparisonResult, compare
from .constants import DEFAULT_ARTIFACTS_DIR, RPC_TIMEOUT, RPC_URL_ENV
from .extractor import extract_deployment
from .normalizer import normalize
from .parsers import parse_trace
from .paths import get_checkout_dir, repo_name_from_url
from .report import build_match_report, reference_label
from .rpc import TraceMethod, fetch_trace
from .types import BuildArtifact, DeploymentEvent, MatchReport


def split_constructor_args(init_code: bytes, reference_length: int) -> Tuple[bytes, Optional[bytes]]:
    """
    Split ABI-encoded constructor arguments off on-chain init code.

    Args:
        init_code: Init code from the deployment frame
        reference_length: Length of the reference creation bytecode

    Returns:
        Tuple of (init code without arguments, arguments or None when there is no surplus)
    """
    if len(init_code) <= reference_length:
        return init_code, None
    return init_code[:reference_length], init_code[reference_length:]


def compare_bytecode(on_chain_code: bytes, artifact: BuildArtifact) -> Tuple[ComparisonResult, int, int]:
    """
    Normalize both sides with the artifact's placeholder ranges and compare them.

    Args:
        on_chain_code: Init code executed by the deployment
        artifact: Reference build

    Returns:
        Tuple of (comparison verdict, on-chain comparable length, reference comparable length)
    """
    ranges = artifact.placeholder_ranges()
    on_chain = normalize(on_chain_code, ranges)
    reference = normalize(artifact.creation_bytecode, ranges)
    return compare(on_chain, reference), len(on_chain), len(reference)


def verify_event(
    event: DeploymentEvent,
    artifact: BuildArtifact,
    reference: str,
    strip_constructor_args: bool = True,
) -> MatchReport:
    """
    Compare an extracted deployment against a reference build.

    Args:
        event: Extracted deployment
        artifact: Reference build
        reference: Label of the reference (git url, commit, contract)
        strip_constructor_args: Split surplus trailing init code bytes off as constructor arguments
            (when False, any surplus is reported as a length mismatch)

    Returns:
        MatchReport (length and byte mismatches are outcomes, not errors)
    """
    init_code = event.raw_init_code
    constructor_args = None
    if strip_constructor_args:
        init_code, constructor_args = split_constructor_args(init_code, len(artifact.creation_bytecode))
        if constructor_args is not None:
            logger.info("Split {} bytes of constructor arguments off the init code", len(constructor_args))

    comparison, on_chain_length, reference_length = compare_bytecode(init_code, artifact)
    return build_match_report(
        event,
        comparison,
        reference,
        on_chain_length=on_chain_length,
        reference_length=reference_length,
        constructor_args=constructor_args,
    )


def _validate_inputs(transaction_hash: str, contract_address: str) -> None:
    if not (is_hexstr(transaction_hash) and len(transaction_hash.removeprefix("0x")) == 64):
        raise ValueError(f"Invalid transaction hash: {transaction_hash!r}")
    if not is_address(contract_address):
        raise ValueError(f"Invalid contract address: {contract_address!r}")


def verify_deployment(
    transaction_hash: str,
    contract_address: str,
    git_url: str,
    contract_name: str,
    rpc_url: Optional[str] = None,
    commit: Optional[str] = None,
    trace_method: TraceMethod = TraceMethod.DEBUG,
    workdir: Optional[Union[Path, str]] = None,
    strip_constructor_args: bool = True,
    timeout: float = RPC_TIMEOUT,
    artifacts_dir: str = DEFAULT_ARTIFACTS_DIR,
    progress: Optional[Callable[[str], None]] = None,
) -> MatchReport:
    """
    Verify that a contract deployment was produced by a commit of its source.

    The on-chain side is extracted first; any extraction, checkout or build
    error aborts the run before a comparison is made.

    Args:
        transaction_hash: Deployment transaction hash
        contract_address: Address of the contract to check
        git_url: Source repository URL
        contract_name: Contract name in the repository ("Name" or "File.sol:Name")
        rpc_url: RPC URL supporting call tracing (defaults to $ETH_RPC_URL)
        commit: Commit to check against (None or "" for the default branch head)
        trace_method: Tracing RPC method
        workdir: Directory to keep checkouts in (defaults to a temporary directory)
        strip_constructor_args: Split surplus trailing init code bytes off as constructor arguments
            (when False, any surplus is reported as a length mismatch)
        timeout: RPC timeout in seconds
        artifacts_dir: Forge output directory relative to the project
        progress: Called with a short description as each stage starts

    Returns:
        MatchReport

    Raises:
        ValueError: If inputs are malformed or no RPC URL is available
        VerificationError: If extraction, RPC, checkout or build fails
    """
    if rpc_url is None:
        rpc_url = os.environ.get(RPC_URL_ENV)
    if not rpc_url:
        raise ValueError(
            f"RPC URL required: set ${RPC_URL_ENV} environment variable or pass rpc_url"
        )

    _validate_inputs(transaction_hash, contract_address)
    contract_address = to_checksum_address(contract_address)
    commit = commit or None

    def report_progress(message: str) -> None:
        logger.info(message)
        if progress is not None:
            progress(message)

    report_progress("Fetching traces from the transaction")
    trace = fetch_trace(transaction_hash, rpc_url, trace_method, timeout)
    event = extract_deployment(transaction_hash, contract_address, parse_trace(trace))

    def build_reference(checkout_dir: Path) -> Tuple[BuildArtifact, str]:
        report_progress("Cloning project and installing dependencies")
        resolved_commit = prepare_source(git_url, checkout_dir, commit)
        report_progress("Compiling contract")
        return resolve_build_artifact(checkout_dir, contract_name, artifacts_dir), resolved_commit

    if workdir is None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            artifact, resolved_commit = build_reference(Path(tmp_dir) / repo_name_from_url(git_url))
    else:
        artifact, resolved_commit = build_reference(get_checkout_dir(git_url, commit, workdir))

    report_progress("Comparing bytecode")
    return verify_event(
        event,
        artifact,
        reference_label(git_url, resolved_commit, contract_name),
        strip_constructor_args=strip_constructor_args,
    )
