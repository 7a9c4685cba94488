"""Reference build and artifact loading for bytecode-provenance library."""

import json
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from .constants import DEFAULT_ARTIFACTS_DIR
from .exceptions import BuildFailureError
from .types import BuildArtifact, ByteRange, RangeKind


def run_build(project_dir: Path) -> None:
    """
    Compile the project with forge.

    Args:
        project_dir: Root of the checked-out project

    Raises:
        BuildFailureError: If forge is missing or the build fails (output propagated verbatim)
    """
    logger.info("Compiling {}", project_dir)
    try:
        result = subprocess.run(
            ["forge", "build", "--force"],
            cwd=project_dir,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as e:
        raise BuildFailureError("forge is not installed") from e

    if result.returncode != 0:
        raise BuildFailureError((result.stderr or result.stdout).strip())


def find_artifact(out_dir: Path, contract_name: str) -> Path:
    """
    Locate the forge artifact for a contract.

    Args:
        out_dir: Forge output directory
        contract_name: "Name" or "path/to/File.sol:Name"

    Returns:
        Path to the artifact JSON file

    Raises:
        BuildFailureError: If no artifact or more than one artifact matches
    """
    if ":" in contract_name:
        source_path, name = contract_name.rsplit(":", 1)
        candidates = [out_dir / Path(source_path).name / f"{name}.json"]
        candidates = [c for c in candidates if c.exists()]
    else:
        candidates = sorted(out_dir.glob(f"*/{contract_name}.json"))

    if not candidates:
        raise BuildFailureError(f"No artifact for contract '{contract_name}' in {out_dir}")

    if len(candidates) > 1:
        found = ", ".join(f"{c.parent.name}:{c.stem}" for c in candidates)
        raise BuildFailureError(
            f"Contract name '{contract_name}' is ambiguous ({found}); "
            "use the File.sol:Name form"
        )

    return candidates[0]


def _link_ranges(link_references: Dict[str, Dict[str, List[Dict[str, int]]]]) -> Dict[str, List[ByteRange]]:
    result: Dict[str, List[ByteRange]] = {}
    for source_file, libraries in link_references.items():
        for library, offsets in libraries.items():
            result[f"{source_file}:{library}"] = [
                ByteRange(o["start"], o["length"], RangeKind.LIBRARY) for o in offsets
            ]
    return result


def decode_unlinked(hex_object: str, link_ranges: Dict[str, List[ByteRange]]) -> bytes:
    """
    Decode a bytecode object whose library placeholders may be unlinked.

    Placeholder characters at the link offsets are replaced by zero bytes.

    Raises:
        BuildFailureError: If non-hex characters remain outside the link offsets
    """
    text = hex_object[2:] if hex_object.startswith("0x") else hex_object
    chars = list(text)
    for ranges in link_ranges.values():
        for r in ranges:
            chars[2 * r.offset : 2 * r.end] = "0" * (2 * r.length)
    try:
        return bytes.fromhex("".join(chars))
    except ValueError as e:
        raise BuildFailureError(f"Bytecode object is not valid hex: {e}") from e


def parse_forge_artifact(artifact_path: Path, contract_name: Optional[str] = None) -> BuildArtifact:
    """
    Parse a forge artifact JSON file.

    Immutable references are reported by the compiler relative to the runtime
    code. They are shifted to creation-code offsets by locating the runtime
    code inside the creation code; if it cannot be found they are dropped.

    Args:
        artifact_path: Path to out/<File>.sol/<Name>.json
        contract_name: Name recorded in the artifact (defaults to the file stem)

    Returns:
        BuildArtifact

    Raises:
        BuildFailureError: If the artifact has no creation bytecode
    """
    with open(artifact_path) as f:
        data: Dict[str, Any] = json.load(f)

    bytecode = data.get("bytecode") or {}
    deployed = data.get("deployedBytecode") or {}

    if not bytecode.get("object") or bytecode["object"] == "0x":
        raise BuildFailureError(
            f"Artifact {artifact_path} has no creation bytecode (abstract contract or interface?)"
        )

    link_references = _link_ranges(bytecode.get("linkReferences") or {})
    creation = decode_unlinked(bytecode["object"], link_references)

    immutable_references: Dict[str, List[ByteRange]] = {}
    runtime_immutables = deployed.get("immutableReferences") or {}
    if runtime_immutables:
        runtime = decode_unlinked(
            deployed.get("object", ""), _link_ranges(deployed.get("linkReferences") or {})
        )
        runtime_offset = creation.rfind(runtime) if runtime else -1
        if runtime_offset < 0:
            logger.warning(
                "Runtime code not found inside creation code of {}; immutable ranges dropped",
                artifact_path.stem,
            )
        else:
            for immutable_id, offsets in runtime_immutables.items():
                immutable_references[immutable_id] = [
                    ByteRange(runtime_offset + o["start"], o["length"], RangeKind.IMMUTABLE)
                    for o in offsets
                ]

    return BuildArtifact(
        contract_name=contract_name or artifact_path.stem,
        creation_bytecode=creation,
        immutable_references=immutable_references,
        link_references=link_references,
    )


def resolve_build_artifact(
    project_dir: Path, contract_name: str, artifacts_dir: str = DEFAULT_ARTIFACTS_DIR
) -> BuildArtifact:
    """
    Build the project and load the artifact for a contract.

    Args:
        project_dir: Root of the checked-out project
        contract_name: "Name" or "path/to/File.sol:Name"
        artifacts_dir: Forge output directory relative to the project

    Returns:
        BuildArtifact

    Raises:
        BuildFailureError: If the build fails or the artifact cannot be resolved
    """
    run_build(project_dir)
    artifact_path = find_artifact(project_dir / artifacts_dir, contract_name)
    logger.debug("Using artifact {}", artifact_path)
    return parse_forge_artifact(artifact_path, contract_name.rsplit(":", 1)[-1])
