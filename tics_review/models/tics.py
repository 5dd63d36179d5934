"""Data models for payloads returned by the TiCS viewer."""

from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TicsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Annotation(TicsModel):
    """A single TiCS finding at a file and line."""

    full_path: str = Field(alias="fullPath")
    line: int = Field(ge=1)
    rule: str = ""
    level: str = ""
    category: str = ""
    type: str = ""
    msg: str = ""
    count: int = Field(default=1, ge=1)
    gate_id: int | None = Field(default=None, alias="gateId")

    @field_validator("rule", "level", "category", "type", "msg", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        # The viewer sends numeric levels and null categories for some rules.
        if value is None:
            return ""
        return str(value)

    @property
    def group_key(self) -> tuple[str, str, int, str, str, str]:
        """Identity used to fold duplicates; the message is deliberately not part of it."""
        return (self.full_path, self.type, self.line, self.rule, self.level, self.category)


class Condition(TicsModel):
    passed: bool
    message: str = ""
    skipped: bool = False


class Gate(TicsModel):
    name: str
    passed: bool
    conditions: List[Condition] = Field(default_factory=list)


class AnnotationsApiLink(TicsModel):
    url: str


class QualityGate(TicsModel):
    passed: bool
    message: str = ""
    url: str = ""
    gates: List[Gate] = Field(default_factory=list)
    annotations_api_v1_links: List[AnnotationsApiLink] = Field(
        default_factory=list, alias="annotationsApiV1Links"
    )


class AnalysisResult(TicsModel):
    completed: bool
    status_code: int = Field(alias="statusCode")
    error_list: List[str] = Field(default_factory=list, alias="errorList")
    warning_list: List[str] = Field(default_factory=list, alias="warningList")
    explorer_url: str | None = Field(default=None, alias="explorerUrl")

    @property
    def succeeded(self) -> bool:
        return self.completed and self.status_code == 0
