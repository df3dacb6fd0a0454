"""End-to-end test: manifest and sources to a rendered report, network mocked."""

import io
import json
from pathlib import Path

import httpx
import pytest
from rich.console import Console

from dependsight.analysis.impact_analyzer import ImpactAnalyzer
from dependsight.analysis.usage_analyzer import UsageAnalyzer
from dependsight.config import DependsightConfig
from dependsight.core.models import AnalysisSnapshot
from dependsight.core.snapshot import load_snapshot, save_snapshot
from dependsight.reporting.renderer import ReportFormat, ReportOptions, generate_report
from dependsight.scanners.manifest import read_manifest

PACKAGES = {
    "react": {
        "dist-tags": {"latest": "18.2.0"},
        "repository": {"type": "git", "url": "git+https://github.com/facebook/react.git"},
    },
    "lodash": {"dist-tags": {"latest": "4.17.21"}},
    "axios": {"dist-tags": {"latest": "1.6.0"}, "repository": "https://github.com/axios/axios"},
    "@mui/material": {"dist-tags": {"latest": "5.0.0"}},
    "jest": {"dist-tags": {"latest": "29.7.0"}},
}


def handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "api.github.com":
        if request.url.path == "/repos/facebook/react/releases":
            return httpx.Response(
                200,
                json=[
                    {"tag_name": "v18.2.0", "published_at": "2022-06-14T19:00:00Z",
                     "body": "- Fix hydration warnings"},
                    {"tag_name": "v18.0.0", "published_at": "2022-03-29T16:00:00Z",
                     "body": "## Breaking\n- New root API\n- Automatic batching"},
                ],
            )
        return httpx.Response(404, json={"message": "Not Found"})

    name = request.url.path.lstrip("/")
    if name in PACKAGES:
        return httpx.Response(200, json={"name": name, **PACKAGES[name]})
    return httpx.Response(404, json={"error": "Not found"})


@pytest.mark.asyncio
async def test_full_pipeline(sample_project: Path, offline_config: DependsightConfig) -> None:
    axios_dir = sample_project / "node_modules" / "axios"
    axios_dir.mkdir(parents=True)
    (axios_dir / "CHANGELOG.md").write_text(
        "# Changelog\n\n## [1.6.0] - 2023-10-26\n- Fetch adapter\n\n## [1.0.0]\n- ESM only\n",
        encoding="utf-8",
    )

    # analyze stage
    dependencies = read_manifest(sample_project)
    usage_report = UsageAnalyzer().analyze(sample_project, dependencies)
    snapshot_path = sample_project / "dependsight-analysis.json"
    save_snapshot(
        AnalysisSnapshot(
            dependencies=dependencies,
            usages=usage_report.usages,
            project_root=str(sample_project),
        ),
        snapshot_path,
    )

    # report stage
    snapshot = load_snapshot(snapshot_path)
    analyzer = ImpactAnalyzer(
        config=offline_config,
        project_root=snapshot.project_root,
        transport=httpx.MockTransport(handler),
    )
    impacts = await analyzer.analyze(snapshot.dependencies, snapshot.usages)

    summary = {i.dependency.name: i.relevance_score for i in impacts}
    # react: major + 1 usage; axios: major + 1 usage; jest: major, dev, unused;
    # lodash: patch + 1 usage; @mui/material is up to date
    assert summary == {"react": 85, "axios": 85, "jest": 60, "lodash": 55}
    assert [i.dependency.name for i in impacts] == ["react", "axios", "jest", "lodash"]

    react = impacts[0]
    assert [e.version for e in react.changelog_entries] == ["18.2.0", "18.0.0"]
    assert react.changelog_entries[1].changes == ["New root API", "Automatic batching"]

    axios = impacts[1]
    assert axios.affected_files == ["src/api.js"]
    assert [e.version for e in axios.changelog_entries] == ["1.6.0", "1.0.0"]
    assert axios.changelog_entries[0].changes == ["Fetch adapter"]

    buffer = io.StringIO()
    report = generate_report(
        impacts,
        ReportOptions(format=ReportFormat.JSON, min_relevance=60),
        Console(file=buffer, color_system=None),
    )
    assert [item["dependency"]["name"] for item in json.loads(report)] == [
        "react",
        "axios",
        "jest",
    ]
