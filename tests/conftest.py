"""Shared pytest fixtures for bytecode-provenance tests."""

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

EOA = "0x" + "aa" * 20
FACTORY = "0x" + "fa" * 20
TARGET = "0x" + "cc" * 20
TX_HASH = "0x" + "ab" * 32

# a1 64 "ipfs" 58 1f <31 bytes>: a one-entry CBOR map, 39 bytes, 41 with the length suffix
IPFS_METADATA_A = bytes.fromhex("a16469706673581f") + b"\x11" * 31 + (39).to_bytes(2, "big")
IPFS_METADATA_B = bytes.fromhex("a16469706673581f") + b"\x22" * 31 + (39).to_bytes(2, "big")

# Library placeholder as emitted by solc for unlinked bytecode
LIBRARY_PLACEHOLDER = "__$0123456789abcdef0123456789abcdef01$__"

RUNTIME_HEX = "60806040" + "00" * 32 + "5b00" + IPFS_METADATA_A.hex()
CREATION_PREFIX_HEX = "6080604052"
CREATION_HEX = CREATION_PREFIX_HEX + LIBRARY_PLACEHOLDER + "6000" + RUNTIME_HEX


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def call_tracer_recreate(fixtures_dir: Path) -> Dict[str, Any]:
    """Load a callTracer trace that creates, self-destructs and recreates TARGET."""
    with open(fixtures_dir / "traces" / "call_tracer_recreate.json") as f:
        return json.load(f)


@pytest.fixture
def call_tracer_direct(fixtures_dir: Path) -> Dict[str, Any]:
    """Load a callTracer trace of a contract-creation transaction."""
    with open(fixtures_dir / "traces" / "call_tracer_direct.json") as f:
        return json.load(f)


@pytest.fixture
def parity_factory(fixtures_dir: Path) -> List[Dict[str, Any]]:
    """Load a flat trace_transaction result where a factory deploys TARGET."""
    with open(fixtures_dir / "traces" / "parity_factory.json") as f:
        return json.load(f)


@pytest.fixture
def forge_artifact_data() -> Dict[str, Any]:
    """A forge artifact with one library link and one immutable reference."""
    return {
        "abi": [],
        "bytecode": {
            "object": "0x" + CREATION_HEX,
            "sourceMap": "",
            "linkReferences": {
                "src/MathLib.sol": {"MathLib": [{"start": 5, "length": 20}]},
            },
        },
        "deployedBytecode": {
            "object": "0x" + RUNTIME_HEX,
            "sourceMap": "",
            "linkReferences": {},
            "immutableReferences": {"7": [{"start": 4, "length": 32}]},
        },
    }


@pytest.fixture
def forge_project(tmp_path: Path, forge_artifact_data: Dict[str, Any]) -> Path:
    """Create a project directory with out/Counter.sol/Counter.json."""
    artifact_dir = tmp_path / "project" / "out" / "Counter.sol"
    artifact_dir.mkdir(parents=True)
    with open(artifact_dir / "Counter.json", "w") as f:
        json.dump(forge_artifact_data, f, indent=2)
    return tmp_path / "project"
