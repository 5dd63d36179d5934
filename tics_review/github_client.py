"""GitHub API client helpers."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

import httpx


class GitHubAPIError(RuntimeError):
    """Raised when a GitHub API request fails."""

    def __init__(self, message: str, status_code: int, response_body: Any | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


DEFAULT_ACCEPT_HEADER = "application/vnd.github+json"
DEFAULT_API_VERSION = "2022-11-28"
PAGE_SIZE = 100


class GitHubClient:
    """Token-authenticated client for the pull-request review endpoints."""

    def __init__(
        self,
        *,
        base_url: str,
        token: str,
        owner: str,
        repo: str,
        timeout: float = 10.0,
        user_agent: str = "TiCS-Review/1.0",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owner = owner
        self._repo = repo
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {token}",
                "User-Agent": user_agent,
                "Accept": DEFAULT_ACCEPT_HEADER,
                "X-GitHub-Api-Version": DEFAULT_API_VERSION,
            },
        )
        self._owns_client = client is None

    @property
    def full_name(self) -> str:
        return f"{self._owner}/{self._repo}"

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Dict[str, Any] | None = None,
        json: Any | None = None,
    ) -> httpx.Response:
        response = await self._client.request(method, url, params=params, json=json)
        if response.status_code >= 400:
            detail: Any | None
            if response.content:
                try:
                    detail = response.json()
                except ValueError:
                    detail = response.text
            else:
                detail = None
            raise GitHubAPIError(
                f"GitHub API request to {url} failed with status {response.status_code}.",
                response.status_code,
                detail,
            )
        return response

    async def _paginate(self, url: str) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            response = await self._request("GET", url, params={"per_page": PAGE_SIZE, "page": page})
            batch = response.json()
            if not isinstance(batch, list):
                raise GitHubAPIError(
                    f"Unexpected response while listing {url}.",
                    response.status_code,
                    batch,
                )
            items.extend(batch)
            if len(batch) < PAGE_SIZE:
                break
            page += 1
        return items

    async def get_pull_request(self, pull_number: int) -> Dict[str, Any]:
        response = await self._request("GET", f"/repos/{self._owner}/{self._repo}/pulls/{pull_number}")
        return response.json()

    async def list_changed_files(self, pull_number: int) -> List[str]:
        """Return the repo-relative paths touched by the pull request, in API order."""

        files = await self._paginate(f"/repos/{self._owner}/{self._repo}/pulls/{pull_number}/files")
        return [str(item["filename"]).replace("\\", "/") for item in files if item.get("filename")]

    async def list_review_comments(self, pull_number: int) -> List[Dict[str, Any]]:
        return await self._paginate(f"/repos/{self._owner}/{self._repo}/pulls/{pull_number}/comments")

    async def create_review_comment(
        self,
        *,
        pull_number: int,
        commit_id: str,
        body: str,
        path: str,
        line: int,
    ) -> Dict[str, Any]:
        payload = {"commit_id": commit_id, "body": body, "path": path, "line": line}
        response = await self._request(
            "POST",
            f"/repos/{self._owner}/{self._repo}/pulls/{pull_number}/comments",
            json=payload,
        )
        return response.json()

    async def delete_review_comment(self, comment_id: int) -> None:
        await self._request("DELETE", f"/repos/{self._owner}/{self._repo}/pulls/comments/{comment_id}")

    async def create_review(
        self,
        *,
        pull_number: int,
        event: str,
        body: str | None,
        comments: Iterable[Dict[str, Any]] | None = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"event": event}
        if body:
            payload["body"] = body
        if comments is not None:
            payload["comments"] = list(comments)
        response = await self._request(
            "POST",
            f"/repos/{self._owner}/{self._repo}/pulls/{pull_number}/reviews",
            json=payload,
        )
        return response.json()

    async def create_issue_comment(self, *, issue_number: int, body: str) -> Dict[str, Any]:
        response = await self._request(
            "POST",
            f"/repos/{self._owner}/{self._repo}/issues/{issue_number}/comments",
            json={"body": body},
        )
        return response.json()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
