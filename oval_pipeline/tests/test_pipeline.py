"""
End-to-end tests for the refresh pipeline and CLI.

Feeds are served by a fake client, everything else (parser, stores,
quality checks, report) runs for real against a temporary database.
"""
import json

import pytest
import requests
import yaml

from run_pipeline import OvalPipeline, build_parser, main
from storage.dispatcher import MODE_CVE, MODE_PACKAGE
from storage.exceptions import UnknownFamilyError

from oval_samples import DEBIAN_DEFINITION, SUSE_DEFINITION, oval_document

SUSE_13_2 = "http://ftp.suse.com/pub/projects/security/oval/opensuse.13.2.xml"
SUSE_42_1 = "http://ftp.suse.com/pub/projects/security/oval/opensuse.42.1.xml"
DEBIAN_STRETCH = "https://www.debian.org/security/oval/oval-definitions-stretch.xml"


class FakeClient:
    """Serves canned bodies; URLs without one fail like an unreachable host."""

    def __init__(self, bodies):
        self.bodies = bodies

    def get_bytes(self, url, headers=None):
        if url not in self.bodies:
            raise requests.ConnectionError(f"cannot reach {url}")
        return self.bodies[url]


@pytest.fixture
def config_path(tmp_path):
    config = {
        "database": {"path": str(tmp_path / "oval.duckdb")},
        "http": {"max_retries": 0},
        "reports": {"output_dir": str(tmp_path / "output")},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(config))
    return path


@pytest.fixture
def pipeline(config_path):
    pipeline = OvalPipeline(str(config_path), client=FakeClient({SUSE_13_2: oval_document(SUSE_DEFINITION)}))
    yield pipeline
    pipeline.close()


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        OvalPipeline(str(tmp_path / "absent.yaml"))


def test_config_requires_database_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"http": {}}))

    with pytest.raises(ValueError):
        OvalPipeline(str(path))


def test_failed_target_does_not_stop_run(pipeline, tmp_path):
    metrics = pipeline.refresh("opensuse", ["13.2", "42.1"])

    assert metrics.targets_total == 2
    assert metrics.refreshed == 1
    assert metrics.failed == 1
    assert metrics.definitions_stored == 1
    assert "cannot reach" in metrics.target_health["opensuse 42.1"]["error"]
    assert metrics.target_health["opensuse 42.1"]["file"] == "opensuse.42.1.xml"

    reports = list((tmp_path / "output").glob("refresh-report-*.md"))
    assert len(reports) == 1
    assert "opensuse 42.1" in reports[0].read_text()

    saved = list((tmp_path / "output").glob("refresh-metrics-*.json"))
    assert len(saved) == 1
    data = json.loads(saved[0].read_text())
    assert data["run_id"] == metrics.run_id
    assert data["failed"] == 1
    assert data["target_health"]["opensuse 13.2"]["status"] == "refreshed"


def test_unresolvable_version_does_not_stop_run(config_path):
    client = FakeClient({DEBIAN_STRETCH: oval_document(DEBIAN_DEFINITION)})
    pipeline = OvalPipeline(str(config_path), client=client)
    try:
        metrics = pipeline.refresh("debian", ["3", "9"])
        stored = pipeline.query("debian", "9", "CVE-2099-0100", MODE_CVE)
    finally:
        pipeline.close()

    assert metrics.targets_total == 2
    assert metrics.refreshed == 1
    assert metrics.failed == 1
    assert "No Debian codename" in metrics.target_health["debian 3"]["error"]
    assert metrics.target_health["debian 3"]["file"] is None
    assert metrics.target_health["debian 9"]["status"] == "refreshed"
    assert [d.definition_id for d in stored] == ["oval:org.debian:def:20990100"]


def test_rerun_with_same_snapshot_skips(pipeline):
    pipeline.refresh("opensuse", ["13.2"])

    metrics = pipeline.refresh("opensuse", ["13.2"])

    assert metrics.refreshed == 0
    assert metrics.skipped == 1
    assert metrics.target_health["opensuse 13.2"]["status"] == "skipped"


def test_query_after_refresh(pipeline):
    pipeline.refresh("opensuse", ["13.2"])

    by_pack = pipeline.query("opensuse", "13", "libfoo", MODE_PACKAGE)
    by_cve = pipeline.query("opensuse", "13", "CVE-2099-0001", MODE_CVE)

    assert [d.definition_id for d in by_pack] == ["oval:org.opensuse.security:def:20990001"]
    assert by_cve == by_pack


def test_unknown_family_fails_refresh(pipeline):
    with pytest.raises(UnknownFamilyError):
        pipeline.refresh("gentoo", ["1"])


def test_parser_requires_lookup_key():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["query", "redhat", "7"])


def test_parser_fetch_arguments():
    args = build_parser().parse_args(["--debug", "fetch", "redhat", "6", "7"])

    assert args.command == "fetch"
    assert args.family == "redhat"
    assert args.versions == ["6", "7"]
    assert args.debug is True


def test_main_query_exit_codes(pipeline, config_path, capsys):
    pipeline.refresh("opensuse", ["13.2"])
    pipeline.close()

    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(config_path), "query", "opensuse", "13", "--package", "libfoo"])
    assert excinfo.value.code == 0
    assert "oval:org.opensuse.security:def:20990001" in capsys.readouterr().out

    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(config_path), "query", "gentoo", "1", "--cve", "CVE-2099-0001"])
    assert excinfo.value.code == 1
