"""Deployment frame extraction from transaction call trees."""

from typing import Iterator, List, Optional, Tuple

from eth_utils import keccak, to_canonical_address, to_checksum_address
from loguru import logger

from .constants import CREATE2_PREFIX, SALT_LENGTH, SELECTOR_LENGTH
from .exceptions import AmbiguousDeploymentError, DeploymentNotFoundError
from .types import CallFrame, CallType, DeploymentEvent, DeploymentKind


def _same_address(a: Optional[str], b: Optional[str]) -> bool:
    return a is not None and b is not None and a.lower() == b.lower()


def iter_frames(
    root: CallFrame, skip_reverted: bool = True
) -> Iterator[Tuple[CallFrame, Optional[CallFrame]]]:
    """
    Walk a call tree depth-first, pre-order (parent before children, children in call order).

    Args:
        root: Root frame of the transaction
        skip_reverted: Skip frames that errored together with their whole subtree

    Yields:
        Tuples of (frame, parent frame or None for the root)
    """
    stack: List[Tuple[CallFrame, Optional[CallFrame]]] = [(root, None)]
    while stack:
        frame, parent = stack.pop()
        if skip_reverted and frame.error:
            continue
        yield frame, parent
        for child in reversed(frame.children):
            stack.append((child, frame))


def compute_create2_address(deployer: str, salt: bytes, init_code: bytes) -> str:
    """
    Compute the address a CREATE2 deployment produces.

    Args:
        deployer: Address executing CREATE2
        salt: 32-byte salt
        init_code: Initialization bytecode

    Returns:
        Checksummed contract address
    """
    digest = keccak(CREATE2_PREFIX + to_canonical_address(deployer) + salt + keccak(init_code))
    return to_checksum_address(digest[12:])


def recover_create2_salt(frame: CallFrame, parent: Optional[CallFrame]) -> Optional[bytes]:
    """
    Recover the salt of a CREATE2 frame from the calldata of the frame that issued it.

    The salt is not part of the trace. Candidate 32-byte words of the parent's
    input are tried, first at raw word offsets (deterministic-deployment proxies
    take salt ++ init_code) and then at ABI word offsets after a selector, and
    each candidate is checked against the CREATE2 address formula.

    Args:
        frame: The CREATE2 frame
        parent: The frame whose code executed CREATE2

    Returns:
        The 32-byte salt, or None if it is not recoverable
    """
    if parent is None or frame.to_address is None:
        return None

    calldata = parent.input
    init_hash = keccak(frame.input)
    deployer = to_canonical_address(frame.from_address)
    target = to_canonical_address(frame.to_address)

    for start in (0, SELECTOR_LENGTH):
        for offset in range(start, len(calldata) - SALT_LENGTH + 1, SALT_LENGTH):
            candidate = calldata[offset : offset + SALT_LENGTH]
            if keccak(CREATE2_PREFIX + deployer + candidate + init_hash)[12:] == target:
                return candidate

    return None


def find_deployment_frames(
    root: CallFrame, target_address: str
) -> List[Tuple[CallFrame, Optional[CallFrame]]]:
    """
    Collect every successful CREATE/CREATE2 frame that produced the target address.

    Args:
        root: Root frame of the transaction
        target_address: Address of the deployed contract

    Returns:
        Matching (frame, parent) tuples in execution order

    Raises:
        AmbiguousDeploymentError: If two matches are not separated by a
            SELFDESTRUCT of the target (an address cannot be created twice while live)
    """
    matches: List[Tuple[CallFrame, Optional[CallFrame]]] = []
    destroyed = False

    for frame, parent in iter_frames(root):
        if frame.call_type is CallType.SELFDESTRUCT and _same_address(frame.from_address, target_address):
            destroyed = True
            continue

        if frame.call_type.is_create and _same_address(frame.to_address, target_address):
            if matches and not destroyed:
                raise AmbiguousDeploymentError(
                    f"Address {target_address} is created {len(matches) + 1} times "
                    "without an intervening self-destruct"
                )
            matches.append((frame, parent))
            destroyed = False

    return matches


def _deployment_kind(frame: CallFrame) -> DeploymentKind:
    if frame.call_type is CallType.CREATE2:
        return DeploymentKind.CREATE2
    if frame.depth == 0:
        return DeploymentKind.DIRECT_CREATE
    return DeploymentKind.FACTORY_CREATE


def extract_deployment(
    transaction_hash: str, target_address: str, root: CallFrame
) -> DeploymentEvent:
    """
    Isolate the frame that deployed the target address.

    When the address was created more than once (recreate after self-destruct),
    the last creation in execution order is authoritative, since it reflects
    the code live at the end of the transaction.

    Args:
        transaction_hash: Hash of the deployment transaction
        target_address: Address of the deployed contract
        root: Root frame of the transaction's call tree

    Returns:
        DeploymentEvent for the authoritative frame

    Raises:
        DeploymentNotFoundError: If no frame deployed the address
        AmbiguousDeploymentError: If the deploying frame cannot be singled out
    """
    matches = find_deployment_frames(root, target_address)
    if not matches:
        raise DeploymentNotFoundError(
            f"No CREATE or CREATE2 frame deployed {target_address} "
            f"in transaction {transaction_hash}"
        )

    if len(matches) > 1:
        logger.info(
            "{} was created {} times in {}; using the last creation",
            target_address,
            len(matches),
            transaction_hash,
        )

    frame, parent = matches[-1]
    kind = _deployment_kind(frame)
    salt = recover_create2_salt(frame, parent) if kind is DeploymentKind.CREATE2 else None
    if kind is DeploymentKind.CREATE2 and salt is None:
        logger.debug("CREATE2 salt for {} not recoverable from caller input", target_address)

    logger.debug(
        "Deployment frame: kind={} depth={} init_code={} bytes",
        kind.value,
        frame.depth,
        len(frame.input),
    )

    return DeploymentEvent(
        transaction_hash=transaction_hash,
        deployer_address=frame.from_address,
        deployed_address=frame.to_address or target_address,
        deployment_kind=kind,
        raw_init_code=frame.input,
        salt=salt,
    )
