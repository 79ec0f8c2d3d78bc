"""Interface the analyzer needs from a repository host."""

from typing import Protocol, runtime_checkable

from .models import CommitRecord, FileNode, RepoInfo


@runtime_checkable
class RepositoryDataSource(Protocol):
    """
    Where repository data comes from: the GitHub API or a local checkout.

    Failures raise ``RateLimited``, ``AuthRequiredOrNotFound``,
    ``RemoteApiError`` or ``TransportError``. A single unreadable file
    raises ``SampledFileFetchError`` from ``get_file_content``.
    """

    async def get_repo_info(self, owner: str, repo: str) -> RepoInfo:
        ...

    async def get_commit_history(self, owner: str, repo: str) -> list[CommitRecord]:
        """Most recent first."""
        ...

    async def get_file_tree(self, owner: str, repo: str, ref: str) -> list[FileNode]:
        ...

    async def get_file_content(self, owner: str, repo: str, path: str, ref: str) -> str:
        ...
