"""
Repository registry loading.

The registry is the fixed, ordered list of repositories to watch. Entries
given on the command line or through the environment come first, followed
by the entries of the repositories file.
"""

from collections.abc import Iterable
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


def read_repositories_file(path: str | Path) -> list[str]:
    """
    Read one repository identifier per line.

    Blank lines and lines starting with ``#`` are skipped. A missing file is
    not an error; an unreadable file is logged and ignored.

    Args:
        path: Path to the repositories file

    Returns:
        Repository identifiers in file order
    """
    file_path = Path(path)
    if not file_path.exists():
        logger.warning(
            "No repositories file exists, continuing with configured repositories",
            path=str(file_path),
        )
        return []

    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.error(
            "Failed to read repositories file", path=str(file_path), error=str(e)
        )
        return []

    repositories = []
    for line in content.splitlines():
        entry = line.strip()
        if entry and not entry.startswith("#"):
            repositories.append(entry)

    logger.info(
        "Loaded repositories file", path=str(file_path), count=len(repositories)
    )
    return repositories


def load_repositories(
    configured: Iterable[str], file_path: str | Path | None = None
) -> list[str]:
    """
    Build the repository registry.

    Args:
        configured: Repositories from arguments or environment
        file_path: Optional repositories file, appended after configured entries

    Returns:
        Ordered repository identifiers without duplicates
    """
    candidates = [repo.strip() for repo in configured if repo.strip()]
    if file_path:
        candidates.extend(read_repositories_file(file_path))

    registry: list[str] = []
    for repo in candidates:
        if repo in registry:
            logger.debug("Ignoring duplicate repository", repository=repo)
            continue
        registry.append(repo)
    return registry
