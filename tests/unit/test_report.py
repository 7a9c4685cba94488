"""Unit tests for match report assembly and rendering."""

from io import StringIO

import pytest
from rich.console import Console

from bytecode_provenance.comparator import ComparisonResult
from bytecode_provenance.report import (
    MATCH_MESSAGE,
    MISMATCH_MESSAGE,
    build_match_report,
    reference_label,
    render_report,
    source_label,
)
from bytecode_provenance.types import (
    DeploymentEvent,
    DeploymentKind,
    LengthMismatch,
    MismatchSpan,
)
from conftest import EOA, TARGET, TX_HASH

REFERENCE = "https://github.com/org/project.git@abc123:Counter"


@pytest.fixture
def event() -> DeploymentEvent:
    return DeploymentEvent(
        transaction_hash=TX_HASH,
        deployer_address=EOA,
        deployed_address=TARGET,
        deployment_kind=DeploymentKind.CREATE2,
        raw_init_code=b"\x60\x01",
        salt=b"\x01" * 32,
    )


def _render(report) -> str:
    output = StringIO()
    render_report(report, Console(file=output, width=120, color_system=None))
    return output.getvalue()


class TestLabels:
    """Test the label helpers."""

    def test_source_label(self):
        assert source_label(TX_HASH, TARGET) == f"{TX_HASH}:{TARGET}"

    def test_reference_label(self):
        assert reference_label("https://github.com/org/project.git", "abc123", "Counter") == REFERENCE


class TestBuildMatchReport:
    """Test the build_match_report function."""

    def test_aggregates_match(self, event: DeploymentEvent):
        """Test a matched report."""
        report = build_match_report(event, ComparisonResult(matched=True), REFERENCE, 10, 10)

        assert report.matched is True
        assert report.mismatches == ()
        assert report.deployment_kind == DeploymentKind.CREATE2
        assert report.source_label == f"{TX_HASH}:{TARGET}"
        assert report.reference_label == REFERENCE
        assert report.salt == b"\x01" * 32
        assert report.on_chain_length == 10

    def test_aggregates_mismatch(self, event: DeploymentEvent):
        """Test that spans are carried over."""
        comparison = ComparisonResult(matched=False, mismatches=(MismatchSpan(50, 1),))
        report = build_match_report(event, comparison, REFERENCE)

        assert report.matched is False
        assert report.mismatches == (MismatchSpan(50, 1),)

    def test_report_is_immutable(self, event: DeploymentEvent):
        """Test that the report cannot be modified."""
        report = build_match_report(event, ComparisonResult(matched=True), REFERENCE)
        with pytest.raises(AttributeError):
            report.matched = False


class TestToDict:
    """Test MatchReport.to_dict."""

    def test_serializes_fields(self, event: DeploymentEvent):
        """Test the JSON view of a mismatch."""
        comparison = ComparisonResult(matched=False, mismatches=(MismatchSpan(50, 1),))
        data = build_match_report(event, comparison, REFERENCE, 100, 100).to_dict()

        assert data["matched"] is False
        assert data["mismatches"] == [{"offset": 50, "length": 1}]
        assert data["deployment_kind"] == "create2"
        assert data["salt"] == "0x" + "01" * 32
        assert "length_mismatch" not in data
        assert "constructor_args" not in data

    def test_serializes_length_mismatch(self, event: DeploymentEvent):
        """Test that a length mismatch is included."""
        comparison = ComparisonResult(matched=False, length_mismatch=LengthMismatch(12, 10))
        data = build_match_report(event, comparison, REFERENCE).to_dict()

        assert data["length_mismatch"] == {"on_chain_length": 12, "reference_length": 10}


class TestRenderReport:
    """Test the render_report function."""

    def test_match_message(self, event: DeploymentEvent):
        """Test the matching verdict text."""
        text = _render(build_match_report(event, ComparisonResult(matched=True), REFERENCE))

        assert MATCH_MESSAGE in text
        assert MISMATCH_MESSAGE not in text
        assert "create2" in text

    def test_mismatch_spans_listed(self, event: DeploymentEvent):
        """Test that mismatch spans are shown on failure."""
        comparison = ComparisonResult(
            matched=False, mismatches=(MismatchSpan(50, 1), MismatchSpan(300, 4))
        )
        text = _render(build_match_report(event, comparison, REFERENCE))

        assert MISMATCH_MESSAGE in text
        assert "50 (0x32)" in text
        assert "300 (0x12c)" in text

    def test_length_mismatch_detail(self, event: DeploymentEvent):
        """Test that a length mismatch is explained."""
        comparison = ComparisonResult(matched=False, length_mismatch=LengthMismatch(12, 10))
        text = _render(build_match_report(event, comparison, REFERENCE))

        assert MISMATCH_MESSAGE in text
        assert "on-chain 12 bytes, reference 10 bytes" in text
