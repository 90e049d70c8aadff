"""Repository harvesting: traversal, filtering, selection and upload."""

from repograde.harvester.file_filter import FileFilter
from repograde.harvester.github_client import GitHubClient
from repograde.harvester.harvester import RepositoryHarvester
from repograde.harvester.selection import select_within_budget, sort_by_priority
from repograde.harvester.traversal_queue import TraversalQueue

__all__ = [
    "FileFilter",
    "GitHubClient",
    "RepositoryHarvester",
    "TraversalQueue",
    "select_within_budget",
    "sort_by_priority",
]
