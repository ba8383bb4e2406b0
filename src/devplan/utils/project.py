"""
Project root discovery for devplan.

Searches upward for a marker such as .llms/, .devplan.json or .git/.
"""

from pathlib import Path

# Markers that indicate a project root, in order of priority
PROJECT_ROOT_MARKERS = [
    ".llms",  # Plans directory
    ".devplan.json",  # Project config file
    ".git",  # Git repository
]


def find_project_root(start: Path | None = None) -> Path | None:
    """
    Find the project root directory by searching upward for marker files.

    Args:
        start: Directory to start searching from. Defaults to current working directory.

    Returns:
        Path to the project root directory, or None if not found.

    Example:
        >>> find_project_root(Path("/project/deep/nested/dir"))
        PosixPath('/project')
    """
    if start is None:
        start = Path.cwd()

    current = start.resolve()
    for directory in (current, *current.parents):
        if any((directory / marker).exists() for marker in PROJECT_ROOT_MARKERS):
            return directory

    return None


def resolve_project_dir(start: Path | None = None) -> Path:
    """
    Return the discovered project root, falling back to ``start`` (or cwd).

    Plans can be created in a fresh directory that has no markers yet, so a
    missing root is not an error here.
    """
    if start is None:
        start = Path.cwd()
    return find_project_root(start) or start.resolve()
