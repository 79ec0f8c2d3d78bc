"""GitHub REST API data source."""

import base64
from datetime import datetime
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .encoding import decode_bytes
from .errors import AuthRequiredOrNotFound, RateLimited, RemoteApiError, TransportError
from .logging import get_logger
from .models import CommitRecord, FileNode, RepoInfo

logger = get_logger("github")

GITHUB_API = "https://api.github.com"
DEFAULT_TIMEOUT = 30.0


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO-8601 timestamp such as 2024-01-15T08:30:00Z."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class GitHubClient:
    """Fetch repository metadata, history, trees and file contents."""

    def __init__(
        self,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = GITHUB_API,
        page_size: int = 100,
    ):
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "slop-meter",
        }
        if token:
            headers["Authorization"] = f"token {token}"

        self.page_size = page_size
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)
        self._client.headers.update(headers)
        self._base_url = base_url.rstrip("/")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def get_repo_info(self, owner: str, repo: str) -> RepoInfo:
        data = await self._get_json(f"/repos/{owner}/{repo}", "Failed to fetch repo info")
        return RepoInfo(
            default_branch=data.get("default_branch") or "main",
            created_at=parse_iso(data.get("created_at")),
            star_count=data.get("stargazers_count"),
        )

    async def get_commit_history(self, owner: str, repo: str) -> list[CommitRecord]:
        data = await self._get_json(
            f"/repos/{owner}/{repo}/commits",
            "Failed to fetch commit history",
            params={"per_page": self.page_size},
        )
        return [self._commit_from_payload(item) for item in data]

    async def get_file_tree(self, owner: str, repo: str, ref: str) -> list[FileNode]:
        data = await self._get_json(
            f"/repos/{owner}/{repo}/git/trees/{quote(ref, safe='')}",
            "Failed to fetch repo tree",
            params={"recursive": 1},
        )
        if data.get("truncated"):
            logger.debug("Tree listing for %s/%s was truncated by the API", owner, repo)
        return [
            FileNode.from_path(
                item["path"],
                type="file" if item.get("type") == "blob" else "dir",
                url=item.get("url"),
            )
            for item in data.get("tree", [])
        ]

    async def get_file_content(self, owner: str, repo: str, path: str, ref: str) -> str:
        encoded_path = "/".join(quote(segment, safe="") for segment in path.split("/"))
        data = await self._get_json(
            f"/repos/{owner}/{repo}/contents/{encoded_path}",
            "Failed to fetch file content",
            params={"ref": ref},
        )
        raw = base64.b64decode(data.get("content") or "")
        return decode_bytes(raw)

    async def _get_json(
        self, endpoint: str, failure_prefix: str, params: Optional[dict] = None
    ) -> Any:
        url = f"{self._base_url}{endpoint}"
        try:
            response = await self._client.get(url, params=params)
        except httpx.TransportError as e:
            raise TransportError(f"{failure_prefix}: {e}") from e

        if response.is_success:
            return response.json()

        body = response.text
        suffix = f" ({body[:140]})" if body else ""
        message = f"{failure_prefix}: {response.status_code}{suffix}"
        if response.status_code in (403, 429):
            raise RateLimited(message)
        if response.status_code in (401, 404):
            raise AuthRequiredOrNotFound(message)
        raise RemoteApiError(message, status=response.status_code)

    def _commit_from_payload(self, item: dict) -> CommitRecord:
        commit = item.get("commit") or {}
        # The list endpoint omits files and stats; they stay None, so bulk
        # detection only fires for sources that report them.
        author = commit.get("author") or {}
        files = item.get("files")
        stats = item.get("stats") or {}
        return CommitRecord(
            sha=item.get("sha", ""),
            message=commit.get("message", ""),
            author_date=parse_iso(author.get("date")),
            changed_files=len(files) if files is not None else None,
            additions=stats.get("additions"),
            deletions=stats.get("deletions"),
        )
