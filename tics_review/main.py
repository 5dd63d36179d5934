"""Command line entry point: reconcile a finished TiCS analysis onto its pull request."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Sequence

import httpx
from pydantic import ValidationError

from tics_review.config import Settings, SettingsError, load_settings
from tics_review.github_client import GitHubAPIError, GitHubClient
from tics_review.logger import get_logger, log_failure, log_header, log_timing, set_console_level
from tics_review.models.tics import AnalysisResult, Annotation
from tics_review.services.review import compose_and_submit
from tics_review.summary import create_error_summary
from tics_review.tics_client import TicsAPIError, TicsClient, cli_summary, get_item_from_url

logger = get_logger()


def load_analysis_result(path: str | Path) -> AnalysisResult:
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Analysis result not found: {source}")
    return AnalysisResult.model_validate(json.loads(source.read_text(encoding="utf-8")))


async def _resolve_commit_id(client: GitHubClient, settings: Settings) -> str:
    if settings.github.commit_sha:
        return settings.github.commit_sha
    pull_request = await client.get_pull_request(settings.github.pull_request_number)
    return str((pull_request.get("head") or {}).get("sha") or "")


async def run(settings: Settings, analysis: AnalysisResult) -> int:
    """Run one reconciliation and return the process exit code."""

    github_client = GitHubClient(
        base_url=settings.github.normalized_github_api_base_url,
        token=settings.github.token,
        owner=settings.github.owner,
        repo=settings.github.repo_name,
    )
    tics_client = TicsClient(
        base_url=settings.tics.tics_base_url,
        viewer_url=settings.tics.normalized_viewer_url,
        auth_token=settings.tics.auth_token,
    )
    pull_number = settings.github.pull_request_number
    try:
        log_header(logger, "Analysis summary.")
        cli_summary(analysis)
        if not analysis.succeeded:
            logger.error(f"Analysis did not complete successfully (status={analysis.status_code}).")
            await github_client.create_issue_comment(
                issue_number=pull_number, body=create_error_summary(analysis)
            )
            return 1

        with log_timing(logger, "fetch_changed_files", pull_number=pull_number):
            changed_files: List[str] = await github_client.list_changed_files(pull_number)
        logger.info(f"Pull request #{pull_number} changes {len(changed_files)} file(s).")
        commit_id = await _resolve_commit_id(github_client, settings)

        client_data = get_item_from_url(analysis.explorer_url, "ClientData") if analysis.explorer_url else None
        quality_gate = await tics_client.fetch_quality_gate(
            project_name=settings.tics.project_name,
            branch_name=settings.tics.branch_name,
            client_data=client_data or None,
        )
        annotations: List[Annotation] = []
        if settings.tics.post_annotations:
            annotations = await tics_client.fetch_annotations(quality_gate.annotations_api_v1_links)

        await compose_and_submit(
            github_client,
            settings,
            analysis,
            changed_files,
            quality_gate,
            annotations,
            commit_id=commit_id,
        )
        return 0 if quality_gate.passed else 1
    except (GitHubAPIError, TicsAPIError, httpx.HTTPError) as exc:
        log_failure(logger, "Could not reconcile the analysis onto the pull request", exc, pull_number=pull_number)
        return 1
    finally:
        await tics_client.aclose()
        await github_client.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Post TiCS analysis results as a pull request review")
    parser.add_argument("--analysis-result", required=True, help="Path to the analysis result JSON file")
    parser.add_argument("--env-file", default=None, help="Optional .env file with run configuration")
    args = parser.parse_args(argv)

    try:
        settings = load_settings(env_file=args.env_file)
    except SettingsError as exc:
        logger.error(f"Failed to load settings: {exc}")
        return 1
    set_console_level(settings.tics.log_level)

    try:
        analysis = load_analysis_result(args.analysis_result)
    except (OSError, ValueError, ValidationError) as exc:
        logger.error(f"Failed to read the analysis result: {exc}")
        return 1

    return asyncio.run(run(settings, analysis))


if __name__ == "__main__":
    sys.exit(main())
