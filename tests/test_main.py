from __future__ import annotations

import asyncio
import json

import pytest
from conftest import make_annotation

from tics_review import main as main_module
from tics_review.models.tics import AnalysisResult, QualityGate


class FakeGitHubClient:
    instances: list["FakeGitHubClient"] = []

    def __init__(self, **kwargs):
        self.full_name = f"{kwargs['owner']}/{kwargs['repo']}"
        self.issue_comments: list[str] = []
        self.reviews: list[dict] = []
        self.closed = False
        FakeGitHubClient.instances.append(self)

    async def create_issue_comment(self, *, issue_number, body):
        self.issue_comments.append(body)
        return {}

    async def list_changed_files(self, pull_number):
        return ["src/a.ts"]

    async def list_review_comments(self, pull_number):
        return []

    async def delete_review_comment(self, comment_id):
        return None

    async def create_review_comment(self, **kwargs):
        return {}

    async def create_review(self, **kwargs):
        self.reviews.append(kwargs)
        return {"id": 1}

    async def aclose(self):
        self.closed = True


class FakeTicsClient:
    instances: list["FakeTicsClient"] = []

    def __init__(self, **kwargs):
        self.closed = False
        self.quality_gate_requests: list[dict] = []
        FakeTicsClient.instances.append(self)

    async def fetch_quality_gate(self, **kwargs):
        self.quality_gate_requests.append(kwargs)
        return QualityGate.model_validate({"passed": True, "annotationsApiV1Links": [{"url": "x"}]})

    async def fetch_annotations(self, links):
        return [make_annotation()]

    async def aclose(self):
        self.closed = True


@pytest.fixture(autouse=True)
def fake_clients(monkeypatch):
    FakeGitHubClient.instances.clear()
    FakeTicsClient.instances.clear()
    monkeypatch.setattr(main_module, "GitHubClient", FakeGitHubClient)
    monkeypatch.setattr(main_module, "TicsClient", FakeTicsClient)


def _analysis(**overrides) -> AnalysisResult:
    data = {
        "completed": True,
        "statusCode": 0,
        "explorerUrl": "http://viewer/Explorer.html#axes=ClientData(abc),Project(project),Branch(main)",
    }
    data.update(overrides)
    return AnalysisResult.model_validate(data)


def test_failed_analysis_posts_error_comment(settings) -> None:
    code = asyncio.run(main_module.run(settings, _analysis(completed=False, errorList=["boom"])))

    client = FakeGitHubClient.instances[0]
    assert code == 1
    assert "> boom" in client.issue_comments[0]
    assert client.reviews == []
    assert client.closed


def test_passed_quality_gate_approves_and_exits_zero(settings) -> None:
    code = asyncio.run(main_module.run(settings, _analysis()))

    client = FakeGitHubClient.instances[0]
    assert code == 0
    assert client.reviews[0]["event"] == "APPROVE"


def test_quality_gate_query_carries_client_data(settings) -> None:
    asyncio.run(main_module.run(settings, _analysis()))

    request = FakeTicsClient.instances[0].quality_gate_requests[0]
    assert request["client_data"] == "abc"
    assert request["project_name"] == settings.tics.project_name


def test_quality_gate_query_without_explorer_url_has_no_client_data(settings) -> None:
    asyncio.run(main_module.run(settings, _analysis(explorerUrl=None)))

    assert FakeTicsClient.instances[0].quality_gate_requests[0]["client_data"] is None


def test_load_analysis_result_reads_json(tmp_path) -> None:
    path = tmp_path / "analysis.json"
    path.write_text(json.dumps({"completed": True, "statusCode": 0, "errorList": [], "warningList": ["w"]}))

    analysis = main_module.load_analysis_result(path)

    assert analysis.succeeded
    assert analysis.warning_list == ["w"]


def test_main_exits_with_error_on_missing_configuration(monkeypatch, tmp_path) -> None:
    for name in ("GITHUB_REPOSITORY", "PULL_REQUEST_NUMBER", "INPUT_PROJECTNAME", "INPUT_TICSCONFIGURATION"):
        monkeypatch.delenv(name, raising=False)

    assert main_module.main(["--analysis-result", str(tmp_path / "missing.json")]) == 1
