"""Repository and harvested-file models."""

import re
from enum import Enum

from pydantic import BaseModel, Field

from repograde.errors import InvalidReferenceError

GITHUB_URL_PATTERN = re.compile(
    r"^(?:https?://)?(?:www\.)?github\.com/"
    r"(?P<owner>[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)/"
    r"(?P<name>[A-Za-z0-9._-]+?)"
    r"(?:\.git)?/?"
    r"(?:/[^?#]*)?"
    r"(?:[?#].*)?$"
)


class EntryType(str, Enum):
    """Directory listing entry types reported by the hosting API."""

    FILE = "file"
    DIR = "dir"
    SYMLINK = "symlink"
    SUBMODULE = "submodule"


class RepositoryReference(BaseModel):
    """Owner/name pair identifying a hosted repository."""

    owner: str = Field(description="Account or organization owning the repository")
    name: str = Field(description="Repository name without .git suffix")

    @classmethod
    def from_url(cls, url: str) -> "RepositoryReference":
        """Parse a GitHub repository URL.

        Args:
            url: URL such as 'https://github.com/acme/widget' or 'github.com/acme/widget.git'.

        Returns:
            Parsed reference.

        Raises:
            InvalidReferenceError: If the URL is not a GitHub owner/repo URL.
        """
        match = GITHUB_URL_PATTERN.match((url or "").strip())
        if not match or match.group("name") in (".", ".."):
            raise InvalidReferenceError("Invalid GitHub repository URL", details=url)
        return cls(owner=match.group("owner"), name=match.group("name"))

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class RepoEntry(BaseModel):
    """Single item from a directory listing."""

    name: str
    path: str = Field(description="Slash-separated, repo-relative path")
    type: EntryType
    size: int = Field(default=0, ge=0, description="Size reported by the API in bytes")
    download_url: str | None = Field(default=None, description="Raw content URL (files only)")


class CandidateFile(BaseModel):
    """Downloaded file competing for a place in the harvested set."""

    path: str = Field(description="Slash-separated, repo-relative path")
    name: str = Field(description="Bare file name")
    content: str = Field(description="UTF-8 text content")
    priority_class: int = Field(ge=1, le=3, description="3 = important file, 1 = other")
    size_bytes: int = Field(ge=0, description="UTF-8 byte length of content")

    @classmethod
    def from_content(cls, path: str, content: str, priority_class: int) -> "CandidateFile":
        """Build a candidate, measuring its UTF-8 size."""
        return cls(
            path=path,
            name=path.rsplit("/", 1)[-1],
            content=content,
            priority_class=priority_class,
            size_bytes=len(content.encode("utf-8")),
        )
