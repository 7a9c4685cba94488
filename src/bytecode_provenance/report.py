"""Match report assembly and rendering."""

from typing import Optional

from rich.console import Console
from rich.table import Table

from .comparator import ComparisonResult
from .types import DeploymentEvent, MatchReport

MATCH_MESSAGE = "Matching contract deployment!"
MISMATCH_MESSAGE = "Did not match"


def source_label(transaction_hash: str, contract_address: str) -> str:
    return f"{transaction_hash}:{contract_address}"


def reference_label(git_url: str, commit: str, contract_name: str) -> str:
    return f"{git_url}@{commit}:{contract_name}"


def build_match_report(
    event: DeploymentEvent,
    comparison: ComparisonResult,
    reference: str,
    on_chain_length: Optional[int] = None,
    reference_length: Optional[int] = None,
    constructor_args: Optional[bytes] = None,
) -> MatchReport:
    """
    Aggregate a deployment event and a comparison verdict into a report.

    Args:
        event: Extracted deployment
        comparison: Comparator verdict
        reference: Opaque label of the reference build (git url, commit, contract)
        on_chain_length: Comparable on-chain length after normalization
        reference_length: Comparable reference length after normalization
        constructor_args: Trailing constructor arguments split off the init code

    Returns:
        Immutable MatchReport
    """
    return MatchReport(
        matched=comparison.matched,
        mismatches=comparison.mismatches,
        deployment_kind=event.deployment_kind,
        source_label=source_label(event.transaction_hash, event.deployed_address),
        reference_label=reference,
        length_mismatch=comparison.length_mismatch,
        on_chain_length=on_chain_length,
        reference_length=reference_length,
        salt=event.salt,
        constructor_args=constructor_args,
    )


def render_report(report: MatchReport, console: Console) -> None:
    """Print the verdict, then mismatch detail when the comparison failed."""
    if report.matched:
        console.print(f"[bold green]{MATCH_MESSAGE}[/bold green]")
    else:
        console.print(f"[bold red]{MISMATCH_MESSAGE}[/bold red]")

    console.print(f"Deployment: {report.deployment_kind.value}", highlight=False)
    console.print(f"On-chain:   {report.source_label}", highlight=False)
    console.print(f"Reference:  {report.reference_label}", highlight=False)
    if report.salt is not None:
        console.print(f"Salt:       0x{report.salt.hex()}", highlight=False)
    if report.constructor_args is not None:
        console.print(f"Constructor args: {len(report.constructor_args)} bytes", highlight=False)

    if report.length_mismatch is not None:
        console.print(
            f"Length mismatch: on-chain {report.length_mismatch.on_chain_length} bytes, "
            f"reference {report.length_mismatch.reference_length} bytes",
            highlight=False,
        )
        return

    if report.mismatches:
        table = Table(title=f"{len(report.mismatches)} mismatching span(s)")
        table.add_column("Offset", justify="right")
        table.add_column("Length", justify="right")
        for span in report.mismatches:
            table.add_row(f"{span.offset} (0x{span.offset:x})", str(span.length))
        console.print(table)
