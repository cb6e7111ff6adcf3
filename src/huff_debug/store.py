"""Cache directory, temporary files and the git-backed hevm state repository.

Layout under a workspace root:

    <root>/cache/                 created lazily, removed by `purge_cache`
    <root>/<temp_command_file>    last deploy command (shell quoting workaround)
    <root>/<temp_source_file>     temporary compiler input
    <root>/<state_path>/          hevm state, a git repository

"Not found" on delete is logged and ignored. Every other `OSError` propagates.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from huff_debug import process
from huff_debug.constants import CACHE_DIRNAME, STATE_REPO_AUTHOR_EMAIL, STATE_REPO_AUTHOR_NAME

logger = logging.getLogger(__name__)

STAGING_SUFFIX = ".staging"


def cache_dir(root: Path | str) -> Path:
    return Path(root) / CACHE_DIRNAME


def ensure_cache_dir(root: Path | str) -> Path:
    """Create `<root>/cache` if it does not exist yet."""
    path = cache_dir(root)
    try:
        path.mkdir()
    except FileExistsError:
        pass
    return path


def _write(content: str, filename: str, root: Path | str) -> Path:
    ensure_cache_dir(root)
    path = Path(root) / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def write_command_file(command: str, filename: str, root: Path | str) -> Path:
    """Cache a command string to `<root>/<filename>`."""
    return _write(command, filename, root)


def write_temp_source(source: str, filename: str, root: Path | str) -> Path:
    """Write a temporary compiler input file."""
    return _write(source, filename, root)


def delete_temp_source(filename: str, root: Path | str) -> None:
    path = Path(root) / filename
    try:
        path.unlink()
    except FileNotFoundError:
        logger.info(f"Temporary source {path} didn't exist")


def purge_cache(root: Path | str) -> bool:
    """
    Remove the cache directory recursively.

    Returns:
        True if something was removed, False if the cache didn't exist.
    """
    path = cache_dir(root)
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        logger.info(f"Cache {path} didn't exist")
        return False
    return True


def _remove_tree(path: Path) -> None:
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        logger.debug(f"{path} didn't exist")


def _init_empty_repository(path: Path) -> None:
    process.run("git init --quiet", cwd=path)
    process.run(
        f"git -c user.name={STATE_REPO_AUTHOR_NAME} -c user.email={STATE_REPO_AUTHOR_EMAIL} "
        'commit --quiet --allow-empty -m "init"',
        cwd=path,
    )


def reset_state_repository(state_path: str, root: Path | str) -> Path:
    """
    Recreate the hevm state repository as a git repo with one empty commit.

    The new repository is assembled in a sibling staging directory and moved
    into place, so `<root>/<state_path>` is either absent or fully initialized.
    A staging directory left behind by a crash is removed on the next reset.

    Returns:
        Path to the state repository.

    Raises:
        ProcessExecutionError: If git fails.
        OSError: On any filesystem failure other than "not found".
    """
    logger.info("Creating state repository...")
    ensure_cache_dir(root)

    full_path = Path(root) / state_path
    staging = full_path.with_name(full_path.name + STAGING_SUFFIX)

    _remove_tree(staging)
    staging.mkdir(parents=True)
    try:
        _init_empty_repository(staging)
    except Exception:
        _remove_tree(staging)
        raise

    _remove_tree(full_path)
    staging.rename(full_path)
    logger.info(f"Created state repository at {full_path}")
    return full_path
