"""Source repository checkout for bytecode-provenance library."""

import os
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

from loguru import logger

from .exceptions import SourceCheckoutError


def _run(args: List[str], cwd: Optional[Path] = None, env: Optional[dict] = None) -> str:
    try:
        result = subprocess.run(
            args,
            cwd=cwd,
            check=True,
            capture_output=True,
            text=True,
            env=env,
        )
    except FileNotFoundError as e:
        raise SourceCheckoutError(f"{args[0]} is not installed") from e
    except subprocess.CalledProcessError as e:
        raise SourceCheckoutError(f"{' '.join(args[:2])} failed: {e.stderr.strip()}") from e
    return result.stdout


def clone_repository(git_url: str, dest: Path) -> Path:
    """
    Clone a repository (with submodules) unless a clone already exists at dest.

    Args:
        git_url: Repository URL
        dest: Target directory

    Returns:
        Path to the clone

    Raises:
        SourceCheckoutError: If git fails
    """
    if (dest / ".git").exists():
        logger.info("Reusing existing checkout at {}", dest)
        return dest

    dest.parent.mkdir(parents=True, exist_ok=True)

    # Set GIT_TERMINAL_PROMPT=0 to prevent git from prompting for credentials
    # This ensures failures happen immediately instead of hanging
    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"
    logger.info("Cloning {}", git_url)
    _run(["git", "clone", "--quiet", "--recurse-submodules", git_url, str(dest)], env=env)
    return dest


def checkout_commit(repo_dir: Path, commit: str) -> None:
    """
    Check out a commit (or tag/branch) and sync submodules to it.

    Raises:
        SourceCheckoutError: If the commit does not exist or git fails
    """
    logger.info("Checking out {}", commit)
    _run(["git", "-C", str(repo_dir), "checkout", "--quiet", commit])
    _run(["git", "-C", str(repo_dir), "submodule", "update", "--init", "--recursive", "--quiet"])


def resolve_head(repo_dir: Path) -> str:
    """
    Get the commit id currently checked out.

    Returns:
        Full commit hash
    """
    return _run(["git", "-C", str(repo_dir), "rev-parse", "HEAD"]).strip()


def install_dependencies(repo_dir: Path) -> None:
    """
    Install the project's build dependencies.

    - package.json: yarn install (or npm install when yarn is missing)
    - foundry.toml: forge install

    Raises:
        SourceCheckoutError: If an installer fails
    """
    if (repo_dir / "package.json").exists():
        if shutil.which("yarn"):
            logger.info("Installing npm packages with yarn")
            _run(["yarn", "install"], cwd=repo_dir)
        elif shutil.which("npm"):
            logger.info("Installing npm packages with npm")
            _run(["npm", "install"], cwd=repo_dir)
        else:
            logger.warning("package.json found but neither yarn nor npm is installed")

    if (repo_dir / "foundry.toml").exists():
        if shutil.which("forge"):
            logger.info("Installing forge dependencies")
            _run(["forge", "install"], cwd=repo_dir)
        else:
            logger.warning("foundry.toml found but forge is not installed")


def prepare_source(git_url: str, dest: Path, commit: Optional[str] = None) -> str:
    """
    Clone, check out and install a project ready to be compiled.

    Args:
        git_url: Repository URL
        dest: Checkout directory
        commit: Commit to check out (None keeps the default branch head)

    Returns:
        Commit id of the prepared tree
    """
    clone_repository(git_url, dest)
    if commit:
        checkout_commit(dest, commit)
    install_dependencies(dest)
    return resolve_head(dest)
