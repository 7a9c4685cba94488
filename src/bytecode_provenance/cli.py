"""Command-line interface for bytecode-provenance.

Verifies a contract deployment against a commit of its source repository.
Values not given as options are prompted for interactively.
"""

import json
import shlex
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from .constants import RPC_URL_ENV
from .exceptions import VerificationError
from .log import setup_logging
from .report import render_report
from .rpc import TraceMethod
from .verifier import verify_deployment

app = typer.Typer(
    name="bytecode-provenance",
    help="Check that deployed contract bytecode was built from a given git commit",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


def _fail(stage: str, message: str) -> typer.Exit:
    err_console.print(f"[bold red]\\[{stage}][/bold red] {message}", highlight=False)
    return typer.Exit(code=1)


@app.command()
def verify(
    transaction: Optional[str] = typer.Option(
        None, help="Transaction hash in which the contract was deployed"
    ),
    contract_address: Optional[str] = typer.Option(
        None, help="Address of the contract that should be checked"
    ),
    git: Optional[str] = typer.Option(None, help="Git url of the repository to check against"),
    commit: Optional[str] = typer.Option(
        None, help="Commit hash of the git repo (defaults to the latest commit)"
    ),
    contract_name: Optional[str] = typer.Option(
        None, help="Name of the contract (in the git repository) to check against"
    ),
    rpc: Optional[str] = typer.Option(
        None, envvar=RPC_URL_ENV, help="HTTP RPC url (has to support trace calls)"
    ),
    trace_method: TraceMethod = typer.Option(
        TraceMethod.DEBUG, help="Tracing RPC method to call"
    ),
    workdir: Optional[Path] = typer.Option(
        None, help="Keep checkouts in this directory instead of a temporary one"
    ),
    strip_constructor_args: bool = typer.Option(
        True,
        help="Split surplus trailing init code off as constructor arguments (else a length mismatch)",
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    log_level: str = typer.Option("WARNING", help="Logging level"),
):
    """Compare a deployment's init code with a fresh build of its source."""
    setup_logging(log_level.upper())

    interactive = not any([transaction, contract_address, git, commit, contract_name])
    if transaction is None:
        transaction = typer.prompt("Transaction hash in which the contract was deployed")
    if contract_address is None:
        contract_address = typer.prompt("Address of the contract that should be checked")
    if git is None:
        git = typer.prompt("Git url of the repository to check against")
    if commit is None and interactive:
        commit = typer.prompt("Optional: commit hash of the git repo", default="", show_default=False)
    if contract_name is None:
        contract_name = typer.prompt("Name of the contract (in the git repository) to check against")
    if rpc is None:
        rpc = typer.prompt("HTTP RPC url (has to support trace calls)")

    if interactive:
        args = [
            "--transaction", transaction,
            "--contract-address", contract_address,
            "--git", git,
            "--commit", commit or "",
            "--contract-name", contract_name,
            "--rpc", rpc,
        ]
        console.print(f"Your arguments:  {shlex.join(args)}", highlight=False, soft_wrap=True)

    try:
        with console.status("Starting", spinner="dots") as status:
            report = verify_deployment(
                transaction_hash=transaction,
                contract_address=contract_address,
                git_url=git,
                contract_name=contract_name,
                rpc_url=rpc,
                commit=commit,
                trace_method=trace_method,
                workdir=workdir,
                strip_constructor_args=strip_constructor_args,
                progress=status.update,
            )
    except VerificationError as e:
        raise _fail(e.stage, str(e))
    except ValueError as e:
        raise _fail("input", str(e))
    except KeyboardInterrupt:
        err_console.print("Aborted")
        raise typer.Exit(code=130)

    if json_output:
        console.print_json(json.dumps(report.to_dict()))
    else:
        render_report(report, console)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
