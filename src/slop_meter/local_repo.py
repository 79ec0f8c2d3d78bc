"""Local git checkout as a repository data source."""

import asyncio
import os
from pathlib import Path
from typing import Optional

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from pathspec import PathSpec

from .encoding import decode_bytes, is_binary
from .errors import AuthRequiredOrNotFound, RemoteApiError, SampledFileFetchError
from .models import CommitRecord, FileNode, RepoInfo


# Default patterns to ignore
DEFAULT_IGNORE_PATTERNS = [
    # VCS
    ".git/",

    # Dependencies
    "node_modules/",
    "vendor/",
    "venv/",
    ".venv/",
    "__pycache__/",
    "*.pyc",
    ".tox/",
    "bower_components/",

    # Build outputs
    "dist/",
    "build/",
    "target/",
    "*.egg-info/",
    "coverage/",
    ".nyc_output/",

    # Misc
    ".DS_Store",
    "Thumbs.db",
]


class LocalRepository:
    """
    Serve repository data from a local checkout.

    The working tree is listed from disk, so the ``ref`` argument of the
    tree and content calls is ignored. ``owner`` and ``repo`` are accepted
    for interface compatibility only.
    """

    def __init__(
        self,
        path: str | Path,
        ignore_patterns: Optional[list[str]] = None,
        max_commits: int = 100,
        max_file_size: int = 1024 * 1024,  # 1MB default
    ):
        self.path = Path(path)
        self.max_commits = max_commits
        self.max_file_size = max_file_size
        self._pathspec = PathSpec.from_lines(
            "gitwildmatch", ignore_patterns or DEFAULT_IGNORE_PATTERNS
        )
        try:
            self._repo = Repo(self.path)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise AuthRequiredOrNotFound(f"Not a git repository: {self.path}") from e

    @property
    def name(self) -> str:
        return self.path.resolve().name

    async def get_repo_info(self, owner: str, repo: str) -> RepoInfo:
        return await asyncio.to_thread(self._repo_info)

    async def get_commit_history(self, owner: str, repo: str) -> list[CommitRecord]:
        return await asyncio.to_thread(self._commit_history)

    async def get_file_tree(self, owner: str, repo: str, ref: str) -> list[FileNode]:
        return await asyncio.to_thread(self._file_tree)

    async def get_file_content(self, owner: str, repo: str, path: str, ref: str) -> str:
        return await asyncio.to_thread(self._read_file, path)

    def _repo_info(self) -> RepoInfo:
        try:
            branch = self._repo.active_branch.name
        except TypeError:
            # Detached HEAD
            branch = "HEAD"

        created_at = None
        if self._repo.head.is_valid():
            roots = list(self._repo.iter_commits("HEAD", max_parents=0))
            if roots:
                created_at = min(c.committed_datetime for c in roots)

        return RepoInfo(default_branch=branch, created_at=created_at, star_count=None)

    def _commit_history(self) -> list[CommitRecord]:
        if not self._repo.head.is_valid():
            return []

        commits = []
        try:
            for commit in self._repo.iter_commits("HEAD", max_count=self.max_commits):
                stats = commit.stats
                commits.append(CommitRecord(
                    sha=commit.hexsha,
                    message=commit.message.strip(),
                    author_date=commit.authored_datetime,
                    changed_files=len(stats.files),
                    additions=stats.total["insertions"],
                    deletions=stats.total["deletions"],
                ))
        except GitCommandError as e:
            raise RemoteApiError(f"Failed to read commit history: {e}") from e

        return commits

    def _file_tree(self) -> list[FileNode]:
        nodes = []
        for root, dirs, files in os.walk(self.path):
            rel_root = Path(root).relative_to(self.path)

            # Filter directories in-place
            dirs[:] = sorted(
                d for d in dirs
                if not self._pathspec.match_file((rel_root / d).as_posix() + "/")
            )
            for d in dirs:
                nodes.append(FileNode.from_path((rel_root / d).as_posix(), type="dir"))

            for filename in sorted(files):
                rel_path = (rel_root / filename).as_posix()
                if self._pathspec.match_file(rel_path):
                    continue
                nodes.append(FileNode.from_path(rel_path, type="file"))

        return nodes

    def _read_file(self, rel_path: str) -> str:
        file_path = self.path / rel_path
        try:
            if file_path.stat().st_size > self.max_file_size:
                raise SampledFileFetchError(rel_path, f"{rel_path} exceeds the size limit")
            raw = file_path.read_bytes()
        except OSError as e:
            raise SampledFileFetchError(rel_path, f"Failed to read {rel_path}: {e}") from e

        if is_binary(raw):
            raise SampledFileFetchError(rel_path, f"{rel_path} is binary")
        return decode_bytes(raw)
