"""Turn TiCS annotations into inline review comments and keep them in sync with the pull request."""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Sequence, Tuple

import httpx

from tics_review.github_client import GitHubAPIError, GitHubClient
from tics_review.logger import get_logger, log_header, log_with_context
from tics_review.models.review import (
    COMMENT_MARKER,
    PostedReviewComment,
    ReviewCommentCandidate,
    ReviewComments,
)
from tics_review.models.tics import Annotation

logger = get_logger()

# Errors a single GitHub call may raise; anything else is a programming error and propagates.
_REQUEST_ERRORS = (GitHubAPIError, httpx.HTTPError)


def _in_scope(annotation: Annotation, changed_files: Sequence[str]) -> bool:
    # Plain containment: "a.ts" also matches "lib/a.ts.bak".
    return any(changed in annotation.full_path for changed in changed_files)


def _format_body(annotation: Annotation) -> str:
    display_count = "" if annotation.count == 1 else f"({annotation.count}x) "
    return (
        f"{COMMENT_MARKER} {annotation.type} violation: {annotation.msg}** \r\n"
        f"{display_count}Line: {annotation.line}, Rule: {annotation.rule}, "
        f"Level: {annotation.level}, Category: {annotation.category} \r\n"
    )


def group_annotations(
    annotations: Iterable[Annotation],
    changed_files: Sequence[str],
    *,
    project_name: str,
    branch_name: str,
) -> List[ReviewCommentCandidate]:
    """Deduplicate annotations on changed files into sorted review comment candidates.

    Annotations sharing ``Annotation.group_key`` are folded into the first one seen,
    summing their counts; the first message wins. The input annotations are not modified.
    """

    grouped: Dict[tuple, Annotation] = {}
    for annotation in annotations:
        if not _in_scope(annotation, changed_files):
            continue
        existing = grouped.get(annotation.group_key)
        if existing is None:
            grouped[annotation.group_key] = annotation.model_copy()
        else:
            existing.count += annotation.count

    # dicts keep first-seen order, and sorted() is stable for equal (path, line) pairs.
    ordered = sorted(grouped.values(), key=lambda a: (a.full_path, a.line))

    prefix = f"HIE://{project_name}/{branch_name}/"
    return [
        ReviewCommentCandidate(
            body=_format_body(annotation),
            path=annotation.full_path.replace(prefix, "", 1),
            line=annotation.line,
        )
        for annotation in ordered
    ]


class ReviewCommentReconciler:
    """Purges this tool's earlier review comments and posts the new ones."""

    def __init__(self, client: GitHubClient, *, pull_number: int) -> None:
        self._client = client
        self._pull_number = pull_number
        self._logger = log_with_context(logger, repository=client.full_name, pull_number=pull_number)

    async def get_posted_review_comments(self) -> List[PostedReviewComment]:
        self._logger.info("Retrieving posted review comments.")
        try:
            raw_comments = await self._client.list_review_comments(self._pull_number)
        except _REQUEST_ERRORS as exc:
            self._logger.error(f"Could not retrieve the review comments: {exc}")
            return []

        comments: List[PostedReviewComment] = []
        for raw in raw_comments:
            try:
                comments.append(PostedReviewComment.from_api(raw))
            except (KeyError, TypeError, ValueError):
                self._logger.debug(f"Ignoring review comment without an id: {raw!r}")
        return comments

    async def _delete(self, comment: PostedReviewComment) -> bool:
        try:
            await self._client.delete_review_comment(comment.id)
        except _REQUEST_ERRORS as exc:
            self._logger.error(f"Could not delete review comment {comment.id}: {exc}")
            return False
        return True

    async def purge_stale_comments(self) -> int:
        """Delete every review comment a previous run posted; returns how many were removed."""

        posted = await self.get_posted_review_comments()
        owned = [comment for comment in posted if comment.is_owned]
        log_header(self._logger, "Deleting review comments of previous runs.")
        results = await asyncio.gather(*(self._delete(comment) for comment in owned))
        deleted = sum(1 for ok in results if ok)
        self._logger.info(f"Deleted {deleted} of {len(owned)} review comment(s) of previous runs.")
        return deleted

    async def _post(
        self, index: int, candidate: ReviewCommentCandidate, commit_id: str
    ) -> Tuple[int, ReviewCommentCandidate, bool]:
        try:
            await self._client.create_review_comment(
                pull_number=self._pull_number,
                commit_id=commit_id,
                body=candidate.body,
                path=candidate.path,
                line=candidate.line,
            )
        except _REQUEST_ERRORS as exc:
            self._logger.debug(f"Could not post review comment on {candidate.path}:{candidate.line}: {exc}")
            return index, candidate, False
        return index, candidate, True

    async def post_comments(
        self, candidates: Sequence[ReviewCommentCandidate], commit_id: str
    ) -> ReviewComments:
        """Post every candidate concurrently; rejected ones come back as ``unpostable``.

        ``postable`` keeps the candidate order, ``unpostable`` is in completion order.
        """

        log_header(self._logger, "Posting review comments.")
        posted: List[Tuple[int, ReviewCommentCandidate]] = []
        unpostable: List[ReviewCommentCandidate] = []
        pending = [self._post(index, candidate, commit_id) for index, candidate in enumerate(candidates)]
        for next_done in asyncio.as_completed(pending):
            index, candidate, ok = await next_done
            if ok:
                posted.append((index, candidate))
            else:
                unpostable.append(candidate)

        postable = [candidate for _, candidate in sorted(posted, key=lambda item: item[0])]
        self._logger.info(f"Posted {len(postable)} of {len(candidates)} review comment(s).")
        return ReviewComments(postable=postable, unpostable=unpostable)
