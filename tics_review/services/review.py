"""Compose the single pull-request review submitted per run."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

import httpx

from tics_review.config import Settings
from tics_review.github_client import GitHubAPIError, GitHubClient
from tics_review.logger import get_logger, log_failure, log_header, log_success, log_timing, log_with_context
from tics_review.models.review import ReviewComments, ReviewEvent
from tics_review.models.tics import AnalysisResult, Annotation, QualityGate
from tics_review.services.annotations import ReviewCommentReconciler, group_annotations
from tics_review.summary import (
    create_files_summary,
    create_link_summary,
    create_quality_gate_summary,
    create_unpostable_review_comments_summary,
)

logger = get_logger()


def build_review_body(
    analysis: AnalysisResult,
    changed_files: Sequence[str],
    quality_gate: QualityGate,
    review_comments: ReviewComments | None,
) -> str:
    parts = [
        create_quality_gate_summary(quality_gate),
        create_link_summary(analysis.explorer_url),
    ]
    if review_comments and review_comments.unpostable:
        parts.append(create_unpostable_review_comments_summary(review_comments.unpostable))
    parts.append(create_files_summary(changed_files))
    return "".join(part for part in parts if part)


def select_event(quality_gate: QualityGate) -> ReviewEvent:
    return ReviewEvent.APPROVE if quality_gate.passed else ReviewEvent.REQUEST_CHANGES


def _review_comments_payload(
    event: ReviewEvent, review_comments: ReviewComments | None
) -> List[Dict[str, Any]] | None:
    if event is ReviewEvent.APPROVE:
        return None
    if review_comments is None:
        return []
    return [candidate.as_payload() for candidate in review_comments.postable]


async def post_review(
    client: GitHubClient,
    settings: Settings,
    analysis: AnalysisResult,
    changed_files: Sequence[str],
    quality_gate: QualityGate,
    review_comments: ReviewComments | None,
) -> Dict[str, Any] | None:
    """Submit the review; a failed submission is logged and ``None`` is returned."""

    pull_number = settings.github.pull_request_number
    ctx_logger = log_with_context(logger, repository=client.full_name, pull_number=pull_number)
    log_header(ctx_logger, "Posting a review for this pull request.")

    event = select_event(quality_gate)
    body = build_review_body(analysis, changed_files, quality_gate, review_comments)
    comments = _review_comments_payload(event, review_comments)

    try:
        review = await client.create_review(
            pull_number=pull_number,
            event=event.value,
            body=body,
            comments=comments,
        )
    except (GitHubAPIError, httpx.HTTPError) as exc:
        ctx_logger.error(f"Could not post a review on this pull request: {exc}")
        return None

    ctx_logger.info(f"Posted a review with event {event.value} for this pull request.")
    return review


async def compose_and_submit(
    client: GitHubClient,
    settings: Settings,
    analysis: AnalysisResult,
    changed_files: Sequence[str],
    quality_gate: QualityGate,
    annotations: Sequence[Annotation],
    *,
    commit_id: str,
) -> Dict[str, Any] | None:
    """Reconcile inline comments for this run, then submit exactly one review."""

    pull_number = settings.github.pull_request_number
    ctx_logger = log_with_context(logger, repository=client.full_name, pull_number=pull_number)

    review_comments: ReviewComments | None = None
    if settings.tics.post_annotations:
        with log_timing(ctx_logger, "group_annotations"):
            candidates = group_annotations(
                annotations,
                changed_files,
                project_name=settings.tics.project_name,
                branch_name=settings.tics.branch_name,
            )
        ctx_logger.info(
            f"Grouped {len(annotations)} annotation(s) into {len(candidates)} review comment(s)."
        )

        reconciler = ReviewCommentReconciler(client, pull_number=pull_number)
        with log_timing(ctx_logger, "purge_stale_comments"):
            await reconciler.purge_stale_comments()
        with log_timing(ctx_logger, "post_comments"):
            review_comments = await reconciler.post_comments(candidates, commit_id)
    else:
        ctx_logger.debug("Posting annotations is disabled; skipping review comments.")

    review = await post_review(client, settings, analysis, changed_files, quality_gate, review_comments)
    if review is None:
        log_failure(logger, "Review was not submitted", repository=client.full_name, pull_number=pull_number)
    else:
        log_success(logger, "Review submitted", repository=client.full_name, pull_number=pull_number)
    return review
