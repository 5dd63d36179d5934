"""Shared data structures for review reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

COMMENT_MARKER = ":warning: **TiCS:"


class ReviewEvent(str, Enum):
    APPROVE = "APPROVE"
    REQUEST_CHANGES = "REQUEST_CHANGES"
    COMMENT = "COMMENT"


@dataclass(slots=True)
class ReviewCommentCandidate:
    body: str
    path: str
    line: int

    def as_payload(self) -> Dict[str, Any]:
        return {"body": self.body, "path": self.path, "line": self.line}


@dataclass(slots=True)
class PostedReviewComment:
    id: int
    body: str

    @property
    def is_owned(self) -> bool:
        """True when the comment was created by a previous run of this tool."""
        return self.body.startswith(COMMENT_MARKER)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PostedReviewComment":
        return cls(id=int(data["id"]), body=str(data.get("body") or ""))


@dataclass(slots=True)
class ReviewComments:
    postable: List[ReviewCommentCandidate] = field(default_factory=list)
    unpostable: List[ReviewCommentCandidate] = field(default_factory=list)
