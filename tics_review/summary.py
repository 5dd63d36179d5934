"""Markdown fragments assembled into the review body."""

from __future__ import annotations

from typing import List, Sequence

from tics_review.models.review import ReviewCommentCandidate
from tics_review.models.tics import AnalysisResult, QualityGate

PASSED_ICON = ":heavy_check_mark:"
FAILED_ICON = ":x:"
SKIPPED_ICON = ":warning:"


def _status_icon(passed: bool) -> str:
    return PASSED_ICON if passed else FAILED_ICON


def create_quality_gate_summary(quality_gate: QualityGate) -> str:
    lines: List[str] = ["## TICS Quality Gate", ""]
    status = "Passed" if quality_gate.passed else "Failed"
    lines.append(f"### {_status_icon(quality_gate.passed)} {status}")
    lines.append("")
    if quality_gate.message:
        lines.append(quality_gate.message)
        lines.append("")
    for gate in quality_gate.gates:
        lines.append(f"#### {_status_icon(gate.passed)} {gate.name}")
        lines.append("")
        for condition in gate.conditions:
            icon = SKIPPED_ICON if condition.skipped else _status_icon(condition.passed)
            lines.append(f"- {icon} {condition.message}")
        if gate.conditions:
            lines.append("")
    return "\n".join(lines) + "\n"


def create_link_summary(explorer_url: str | None) -> str:
    if not explorer_url:
        return ""
    return f"[See the results in the TICS Viewer]({explorer_url})\n\n"


def create_unpostable_review_comments_summary(unpostable: Sequence[ReviewCommentCandidate]) -> str:
    if not unpostable:
        return ""
    lines: List[str] = [
        "<details><summary>Quality gate failures that cannot be annotated in <b>Files Changed</b></summary>",
        "",
        "| File | Line | Violation |",
        "|------|------|-----------|",
    ]
    for comment in unpostable:
        # Table cells cannot hold the CRLF line breaks of the inline body.
        violation = " ".join(part.strip() for part in comment.body.splitlines() if part.strip())
        violation = violation.replace("|", "\\|")
        lines.append(f"| {comment.path} | {comment.line} | {violation} |")
    lines.append("")
    lines.append("</details>")
    return "\n".join(lines) + "\n\n"


def create_files_summary(changed_files: Sequence[str]) -> str:
    files = [path for path in changed_files if path]
    if not files:
        return ""
    lines: List[str] = ["<details><summary>The following files have been checked:</summary>", ""]
    lines.extend(f"- {path}" for path in files)
    lines.append("")
    lines.append("</details>")
    return "\n".join(lines) + "\n"


def create_error_summary(analysis: AnalysisResult) -> str:
    lines: List[str] = [f"## {FAILED_ICON} TICS Analysis failed", ""]
    if analysis.error_list:
        lines.append("#### The following errors have occurred during analysis:")
        lines.append("")
        lines.extend(f"> {error}" for error in analysis.error_list)
        lines.append("")
    else:
        lines.append(f"Analysis exited with status code {analysis.status_code}.")
        lines.append("")
    if analysis.warning_list:
        lines.append("#### The following warnings have occurred during analysis:")
        lines.append("")
        lines.extend(f"> {warning}" for warning in analysis.warning_list)
        lines.append("")
    return "\n".join(lines)
