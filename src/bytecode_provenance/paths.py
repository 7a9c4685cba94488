"""Path management utilities for bytecode-provenance library."""

import tempfile
from pathlib import Path
from typing import Optional, Union

from .constants import LATEST_COMMIT_LABEL


def get_default_workdir() -> Path:
    """
    Get default directory for source checkouts.

    Returns:
        Path to <system temp>/bytecode-provenance
    """
    return Path(tempfile.gettempdir()) / "bytecode-provenance"


def repo_name_from_url(git_url: str) -> str:
    """
    Derive a directory name from a git URL.

    Args:
        git_url: e.g. https://github.com/org/project.git or git@github.com:org/project

    Returns:
        Repository name ("project")
    """
    name = git_url.rstrip("/").rsplit("/", 1)[-1].rsplit(":", 1)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name or "repo"


def get_checkout_dir(
    git_url: str,
    commit: Optional[str] = None,
    workdir: Optional[Union[Path, str]] = None,
) -> Path:
    """
    Get the checkout directory for a repository at a commit.

    Args:
        git_url: Repository URL
        commit: Commit identifier (None for the default branch head)
        workdir: Custom root directory (defaults to <system temp>/bytecode-provenance)

    Returns:
        Path to <workdir>/<repo name>/<commit or "latest">
    """
    if workdir is None:
        workdir = get_default_workdir()
    else:
        workdir = Path(workdir).absolute()

    return workdir / repo_name_from_url(git_url) / (commit or LATEST_COMMIT_LABEL)
