"""Path management utilities for solar-deployments library."""

from pathlib import Path
from typing import Optional, Union

from .constants import DEFAULT_ENV, REPOSITORY_FILENAME


def get_repository_path(
    env: str = DEFAULT_ENV, repo: Optional[Union[Path, str]] = None
) -> Path:
    """
    Get the contracts repository file path.

    Args:
        env: Environment name (e.g. "development", "production")
        repo: Explicit repository path, overrides the env-derived name

    Returns:
        Path to ./solar.{env}.json, or the absolute form of repo
    """
    if repo:
        return Path(repo).absolute()

    return Path.cwd() / REPOSITORY_FILENAME.format(env=env)
