"""Client wrapper for interacting with the TiCS viewer API."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List
from urllib.parse import unquote

import httpx
from pydantic import ValidationError

from tics_review.logger import get_logger, log_header, log_with_context
from tics_review.models.tics import AnalysisResult, Annotation, AnnotationsApiLink, QualityGate

logger = get_logger()

CFG_MARKER = "cfg?name="
API_MARKER = "/api/"


class TicsAPIError(RuntimeError):
    """Raised when the TiCS viewer responds with an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def get_tics_web_base_url_from_url(url: str) -> str:
    """Return the viewer web base URL from a TiCS configuration URL.

    ``http://host:42506/tiobeweb/TiCS/api/cfg?name=default`` becomes
    ``http://host:42506/tiobeweb/TiCS``.
    """
    if API_MARKER + CFG_MARKER not in url:
        raise TicsAPIError(
            "Missing configuration api in the TiCS Viewer URL. Please check your workflow configuration."
        )
    return url.split(API_MARKER, 1)[0]


def get_item_from_url(url: str, query: str) -> str:
    """Return the value of an ``Item(value)`` axis in an explorer URL, or ``""``."""

    decoded = unquote(url.replace("+", "%20"))
    match = re.search(rf"{re.escape(query)}\(([^()]*)\)", decoded)
    if not match:
        return ""
    return match.group(1)


def get_project_name(url: str) -> str:
    return get_item_from_url(url, "Project")


def cli_summary(analysis: AnalysisResult) -> None:
    """Log the errors of the analysis run; warnings only show at debug level."""

    for error in analysis.error_list:
        logger.error(error)
    for warning in analysis.warning_list:
        logger.debug(f"Analysis warning: {warning}")
    if not analysis.error_list and not analysis.warning_list:
        logger.debug("Analysis reported no errors or warnings")


def _first_alert_header(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return ""
    alerts = body.get("alertMessages") if isinstance(body, dict) else None
    if alerts and isinstance(alerts[0], dict):
        return str(alerts[0].get("header") or "")
    return ""


class TicsClient:
    def __init__(
        self,
        *,
        base_url: str,
        viewer_url: str | None = None,
        auth_token: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._viewer_url = (viewer_url or base_url).rstrip("/")
        headers = {"X-Requested-With": "tics"}
        if auth_token:
            headers["Authorization"] = f"Basic {auth_token}"
        self._client = client or httpx.AsyncClient(timeout=timeout, headers=headers)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def http_request(self, url: str, params: Dict[str, Any] | None = None) -> Any:
        """GET a viewer endpoint and return the decoded JSON body."""

        response = await self._client.get(url, params=params)
        status = response.status_code
        if status == 200:
            try:
                return response.json()
            except ValueError as exc:
                raise TicsAPIError("TiCS viewer returned invalid JSON.", status) from exc

        if status == 302:
            detail = "Please check if the given ticsConfiguration is correct (possibly http instead of https)."
        elif status == 400:
            detail = _first_alert_header(response)
        elif status == 401:
            detail = (
                "Please provide a working TICSAUTHTOKEN in your configuration. "
                f"Check {self._viewer_url}/Administration.html#page=authToken"
            )
        elif status == 404:
            detail = "Please check if the given ticsConfiguration is correct."
        else:
            detail = "Please check if your configuration is correct."
        raise TicsAPIError(f"HTTP request failed with status {status}. {detail}".rstrip(), status)

    async def fetch_quality_gate(
        self,
        *,
        project_name: str,
        branch_name: str | None = None,
        client_data: str | None = None,
    ) -> QualityGate:
        log_header(logger, "Retrieving the quality gates.")
        params: Dict[str, Any] = {"showBlockingAfter": "true", "project": project_name}
        if branch_name:
            params["branch"] = branch_name
        if client_data:
            params["cdt"] = client_data
        params["fields"] = "details,annotationsApiV1Links"

        data = await self.http_request(f"{self._base_url}/api/public/v1/QualityGateStatus", params=params)
        try:
            quality_gate = QualityGate.model_validate(data)
        except ValidationError as exc:
            raise TicsAPIError(f"Quality gate response could not be parsed: {exc}") from exc
        logger.info(f"Retrieved the quality gate (passed={quality_gate.passed}).")
        return quality_gate

    async def fetch_annotations(self, links: Iterable[AnnotationsApiLink]) -> List[Annotation]:
        """Fetch the annotations behind every quality-gate annotation link."""

        log_header(logger, "Retrieving annotations.")
        annotations: List[Annotation] = []
        for gate_id, link in enumerate(links):
            data = await self.http_request(f"{self._base_url}/api/{link.url.lstrip('/')}")
            raw_items = data.get("data", []) if isinstance(data, dict) else []
            ctx_logger = log_with_context(logger, gate_id=gate_id)
            for raw in raw_items:
                try:
                    annotation = Annotation.model_validate(raw)
                except ValidationError as exc:
                    ctx_logger.warning(f"Skipping malformed annotation: {exc.errors()[0].get('msg')}")
                    continue
                annotations.append(annotation.model_copy(update={"gate_id": gate_id}))
        logger.info(f"Retrieved {len(annotations)} annotation(s).")
        return annotations
