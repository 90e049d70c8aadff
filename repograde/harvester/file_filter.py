"""Inclusion, exclusion and priority rules for repository files.

Runs during traversal, before any download, so excluded directories are
never listed and oversized files are never fetched.
"""

import logging
from fnmatch import fnmatchcase

from repograde.consts import (
    IMPORTANT_FILES,
    PRIORITY_EXTENSIONS,
    PRIORITY_IMPORTANT,
    PRIORITY_OTHER,
    PRIORITY_SOURCE,
    SKIP_DIRECTORIES,
    SKIP_FILE_PATTERNS,
)

logger = logging.getLogger(__name__)


class FileFilter:
    """Decide which repository entries are worth harvesting.

    Directory rules match any segment of the path, so `node_modules` is
    skipped at any depth. Glob rules match the bare file name.
    """

    def __init__(
        self,
        skip_directories: frozenset[str] = SKIP_DIRECTORIES,
        skip_patterns: tuple[str, ...] = SKIP_FILE_PATTERNS,
        important_files: frozenset[str] = IMPORTANT_FILES,
        priority_extensions: tuple[str, ...] = PRIORITY_EXTENSIONS,
    ):
        self.skip_directories = skip_directories
        self.skip_patterns = skip_patterns
        self.important_files = important_files
        self.priority_extensions = tuple(ext.lower() for ext in priority_extensions)

    def exclusion_reason(self, path: str) -> str | None:
        """Return the rule that excludes a path, or None if it is kept.

        Args:
            path: Slash-separated, repo-relative path of a file or directory.
        """
        segments = [s for s in path.split("/") if s]
        for segment in segments:
            if segment in self.skip_directories:
                return f"directory:{segment}"

        name = segments[-1] if segments else ""
        for pattern in self.skip_patterns:
            if fnmatchcase(name, pattern):
                return f"pattern:{pattern}"
        return None

    def is_excluded(self, path: str) -> bool:
        """Check whether a path matches any exclusion rule."""
        reason = self.exclusion_reason(path)
        if reason:
            logger.debug(f"Excluded {path} ({reason})")
        return reason is not None

    def priority_class(self, name: str) -> int:
        """Rank a file by its bare name.

        Returns:
            3 for important files (README, LICENSE, manifests),
            2 for source/doc extensions, 1 otherwise.
        """
        if name in self.important_files:
            return PRIORITY_IMPORTANT
        if name.lower().endswith(self.priority_extensions):
            return PRIORITY_SOURCE
        return PRIORITY_OTHER
