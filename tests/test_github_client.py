from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from tics_review.github_client import PAGE_SIZE, GitHubAPIError, GitHubClient


def _client(handler) -> GitHubClient:
    transport = httpx.MockTransport(handler)
    http = httpx.AsyncClient(base_url="https://api.github.com", transport=transport)
    return GitHubClient(base_url="https://api.github.com", token="t", owner="owner", repo="repo", client=http)


def test_list_review_comments_reads_every_page() -> None:
    pages = {
        "1": [{"id": i, "body": "x"} for i in range(PAGE_SIZE)],
        "2": [{"id": PAGE_SIZE, "body": "y"}],
    }
    seen_pages: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/repos/owner/repo/pulls/7/comments"
        page = request.url.params["page"]
        seen_pages.append(page)
        return httpx.Response(200, json=pages[page])

    comments = asyncio.run(_client(handler).list_review_comments(7))

    assert seen_pages == ["1", "2"]
    assert len(comments) == PAGE_SIZE + 1


def test_list_changed_files_returns_filenames() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"filename": "src/a.ts"}, {"filename": "docs\\b.md"}, {"status": "x"}])

    files = asyncio.run(_client(handler).list_changed_files(7))

    assert files == ["src/a.ts", "docs/b.md"]


def test_error_status_raises_github_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "pull_request_review_thread.line must be part of the diff"})

    client = _client(handler)
    with pytest.raises(GitHubAPIError) as excinfo:
        asyncio.run(
            client.create_review_comment(pull_number=7, commit_id="abc", body="b", path="a.ts", line=3)
        )

    assert excinfo.value.status_code == 422
    assert "must be part of the diff" in excinfo.value.response_body["message"]


def test_non_list_page_is_rejected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": "odd"})

    with pytest.raises(GitHubAPIError):
        asyncio.run(_client(handler).list_review_comments(7))


def test_create_review_omits_comments_when_none() -> None:
    payloads: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/repos/owner/repo/pulls/7/reviews"
        payloads.append(json.loads(request.content))
        return httpx.Response(200, json={"id": 1})

    client = _client(handler)
    asyncio.run(client.create_review(pull_number=7, event="APPROVE", body="body", comments=None))
    asyncio.run(client.create_review(pull_number=7, event="REQUEST_CHANGES", body="body", comments=[]))

    assert payloads[0] == {"event": "APPROVE", "body": "body"}
    assert payloads[1] == {"event": "REQUEST_CHANGES", "body": "body", "comments": []}


def test_delete_review_comment_path() -> None:
    seen: list[tuple[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        return httpx.Response(204)

    asyncio.run(_client(handler).delete_review_comment(42))

    assert seen == [("DELETE", "/repos/owner/repo/pulls/comments/42")]
