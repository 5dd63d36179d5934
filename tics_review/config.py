"""Run configuration helpers."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Final, Mapping

from dotenv import dotenv_values
from pydantic import AnyHttpUrl, BaseModel, ConfigDict, ValidationError

from tics_review.tics_client import TicsAPIError, get_tics_web_base_url_from_url


class SettingsError(RuntimeError):
    """Raised when run configuration is invalid or incomplete."""


class GitHubSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    repository: str
    pull_request_number: int
    token: str
    api_base_url: AnyHttpUrl = "https://api.github.com"
    commit_sha: str | None = None

    @property
    def owner(self) -> str:
        return self.repository.split("/", 1)[0]

    @property
    def repo_name(self) -> str:
        return self.repository.split("/", 1)[1]

    @property
    def normalized_github_api_base_url(self) -> str:
        """Return the GitHub API base URL without a trailing slash."""
        return str(self.api_base_url).rstrip("/")


class TicsSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    project_name: str
    branch_name: str = ""
    tics_configuration: str
    viewer_url: str | None = None
    auth_token: str | None = None
    post_annotations: bool = True
    log_level: str = "default"

    @property
    def tics_base_url(self) -> str:
        return get_tics_web_base_url_from_url(self.tics_configuration)

    @property
    def normalized_viewer_url(self) -> str:
        """Return the viewer URL without trailing slashes, defaulting to the web base URL."""
        if self.viewer_url:
            return self.viewer_url.rstrip("/")
        return self.tics_base_url


class Settings(BaseModel):
    """Everything a reconciliation run needs, built once by the entry point."""

    model_config = ConfigDict(frozen=True)

    github: GitHubSettings
    tics: TicsSettings


_TRUE_VALUES: Final[set[str]] = {"1", "true", "yes", "on"}


def _parse_bool_env(raw_value: str | None, *, default: bool = False) -> bool:
    """Convert an environment variable string to a boolean value."""

    if raw_value is None or not raw_value.strip():
        return default
    return raw_value.strip().lower() in _TRUE_VALUES


def _input(environ: Mapping[str, str], name: str) -> str | None:
    # GitHub Actions exposes `with:` inputs as INPUT_<NAME>.
    value = environ.get(f"INPUT_{name.upper()}")
    if value is None or not value.strip():
        return None
    return value.strip()


def _load_event(event_path: str | None) -> Dict[str, Any]:
    if not event_path:
        return {}
    path = Path(event_path)
    if not path.exists():
        raise SettingsError(f"GITHUB_EVENT_PATH points to a missing file: {event_path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise SettingsError(f"GITHUB_EVENT_PATH does not contain valid JSON: {event_path}") from exc


def load_settings(environ: Mapping[str, str] | None = None, *, env_file: str | Path | None = None) -> Settings:
    """Build settings from the process environment and an optional .env file."""

    values: Dict[str, str] = {}
    if env_file is not None:
        values.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    values.update(os.environ if environ is None else environ)

    event = _load_event(values.get("GITHUB_EVENT_PATH"))
    pull_request = event.get("pull_request") or {}

    missing = []
    repository = values.get("GITHUB_REPOSITORY", "")
    if "/" not in repository:
        missing.append("GITHUB_REPOSITORY")
    pull_number = values.get("PULL_REQUEST_NUMBER") or pull_request.get("number")
    if not pull_number:
        missing.append("PULL_REQUEST_NUMBER")
    github_token = _input(values, "githubToken") or values.get("GITHUB_TOKEN")
    if not github_token:
        missing.append("INPUT_GITHUBTOKEN")
    project_name = _input(values, "projectName")
    if not project_name:
        missing.append("INPUT_PROJECTNAME")
    tics_configuration = _input(values, "ticsConfiguration")
    if not tics_configuration:
        missing.append("INPUT_TICSCONFIGURATION")

    if missing:
        raise SettingsError(
            "Run is not configured. Missing environment variables: " f"{', '.join(missing)}."
        )

    try:
        get_tics_web_base_url_from_url(tics_configuration)
    except TicsAPIError as exc:
        raise SettingsError(str(exc)) from exc

    try:
        settings = Settings(
            github=GitHubSettings(
                repository=repository,
                pull_request_number=int(pull_number),
                token=github_token,
                api_base_url=values.get("GITHUB_API_URL") or "https://api.github.com",
                commit_sha=(pull_request.get("head") or {}).get("sha"),
            ),
            tics=TicsSettings(
                project_name=project_name,
                branch_name=_input(values, "branchName") or values.get("GITHUB_HEAD_REF", ""),
                tics_configuration=tics_configuration,
                viewer_url=_input(values, "viewerUrl"),
                auth_token=_input(values, "ticsAuthToken") or values.get("TICSAUTHTOKEN"),
                post_annotations=_parse_bool_env(_input(values, "postAnnotations"), default=True),
                log_level=_input(values, "logLevel") or "default",
            ),
        )
    except ValidationError as exc:
        raise SettingsError(f"Invalid run configuration: {exc}") from exc
    except ValueError as exc:
        raise SettingsError("Invalid value for PULL_REQUEST_NUMBER. It must be an integer.") from exc

    return settings
