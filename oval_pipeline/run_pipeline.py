#!/usr/bin/env python3
"""
Pipeline orchestrator and CLI for the OVAL dictionary.

Refresh run:
1. Schema: Ensure tables and indexes exist (fatal on failure)
2. Fetch: Download and parse the OVAL file of each (family, version)
3. Refresh: Replace each stored Root in its own transaction
4. Quality: Run data quality checks on the stored closure
5. Reporting: Write a Markdown run report

A target that fails to fetch, parse or refresh is recorded and the run
moves on; its previously stored data is left as it was.

Usage:
    python run_pipeline.py fetch redhat 6 7
    python run_pipeline.py fetch opensuse 13.2
    python run_pipeline.py query redhat 7 --package openssl
    python run_pipeline.py query debian 9 --cve CVE-2017-0001
"""
import sys
import yaml
import logging
import argparse
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from storage import Database, Definition, dispatch, new_store
from storage.dispatcher import MODE_CVE, MODE_PACKAGE
from ingestion import HttpClient, RetryConfig, build_target, fetch_target
from observability import QualityChecker, RunMetrics, RunReporter

logger = logging.getLogger(__name__)


class OvalPipeline:
    """
    Coordinates fetch, refresh, quality checks and reporting.

    One Database handle is opened per pipeline and shared by every
    family store it builds.
    """

    def __init__(self, config_path: str = "config.yaml", client: Optional[HttpClient] = None):
        """
        Initialize pipeline with configuration.

        Args:
            config_path: Path to YAML configuration file
            client: HTTP client to fetch feeds with (built from config if None)
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(self.config_path) as f:
            self.config: Dict[str, Any] = yaml.safe_load(f) or {}

        if "database" not in self.config or "path" not in (self.config["database"] or {}):
            raise ValueError("Missing required config key: database.path")

        self.db = Database(self.config["database"]["path"])
        self.client = client or self._build_client(self.config.get("http") or {})
        self.quality_checker = QualityChecker(self.db)
        self.reporter = RunReporter()
        self.report_dir = Path((self.config.get("reports") or {}).get("output_dir", "output"))

        logger.info(f"Pipeline initialized with config: {config_path}")

    def _build_client(self, http_config: Dict[str, Any]) -> HttpClient:
        return HttpClient(
            source_id="oval",
            retry_config=RetryConfig(
                max_retries=http_config.get("max_retries", 3),
                base_delay_seconds=http_config.get("retry_base_seconds", 1.0),
                max_delay_seconds=http_config.get("retry_max_seconds", 60.0),
                jitter_ratio=http_config.get("retry_jitter_ratio", 0.3),
                timeout_seconds=http_config.get("timeout_seconds", 120.0),
            ),
            proxy=http_config.get("proxy"),
        )

    def refresh(self, family: str, versions: List[str]) -> RunMetrics:
        """
        Fetch and store the OVAL files of one family.

        Raises:
            DatabaseConnectionError, SchemaMigrationError: Fatal startup errors
            UnknownFamilyError: If the family has no store or feed
        """
        run_id = self.db.get_current_run_id()
        metrics = RunMetrics(run_id=run_id, started_at=datetime.utcnow())

        logger.info(f"=== Starting Refresh Run: {run_id} ===")

        logger.info(f"Opening DB ({self.db.db_path})")
        self.db.connect()
        logger.info("Migrating DB")
        self.db.initialize_schema()

        store = new_store(self.db, family)
        feeds_config = self.config.get("feeds")
        metrics.targets_total = len(versions)

        for version in versions:
            key = f"{family} {version}"
            target = None
            try:
                target = build_target(family, version, feeds_config)
                result = fetch_target(self.client, target)
                if store.insert_oval(result.root, result.meta):
                    metrics.record_refresh(key, result.meta.file_name, len(result.root.definitions))
                else:
                    metrics.record_skip(key, result.meta.file_name)
            except Exception as e:
                logger.error(f"  Failed to refresh {key}: {e}")
                metrics.record_failure(key, str(e), target.file_name if target else None)

        quality_results = self.quality_checker.run_all_checks()
        for qr in quality_results:
            if not qr.passed:
                logger.warning(f"Quality check failed: {qr.check_name}: {qr.message}")

        metrics.completed_at = datetime.utcnow()
        report = self.reporter.generate_report(metrics, quality_results)
        report_path = self.reporter.save_report(report, self.report_dir)
        self.reporter.save_metrics(metrics, self.report_dir)

        duration = (metrics.completed_at - metrics.started_at).total_seconds()
        logger.info("=== Refresh Complete ===")
        logger.info(f"Duration: {duration:.1f}s")
        logger.info(f"Refreshed: {metrics.refreshed}, skipped: {metrics.skipped}, failed: {metrics.failed}")
        logger.info(f"Report: {report_path}")

        return metrics

    def query(self, family: str, os_release: str, key: str, mode: str) -> List[Definition]:
        """Look up definitions by package name or CVE id."""
        self.db.initialize_schema()
        return dispatch(self.db, family, os_release, key, mode)

    def close(self):
        self.db.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fetch OVAL feeds into DuckDB and query them"
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch = subparsers.add_parser("fetch", help="Fetch and store OVAL definitions")
    fetch.add_argument("family", help="OS family, e.g. redhat, debian, oracle, opensuse")
    fetch.add_argument("versions", nargs="+", help="OS versions to fetch, e.g. 7 or 13.2")

    query = subparsers.add_parser("query", help="Look up stored OVAL definitions")
    query.add_argument("family", help="OS family")
    query.add_argument("release", help="OS major version, e.g. 7")
    key = query.add_mutually_exclusive_group(required=True)
    key.add_argument("--package", help="Exact package name")
    key.add_argument("--cve", help="CVE id")

    return parser


def main(argv: Optional[List[str]] = None):
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        pipeline = OvalPipeline(config_path=args.config)
        try:
            if args.command == "fetch":
                metrics = pipeline.refresh(args.family, args.versions)

                print("\n" + "=" * 60)
                print("Refresh Summary")
                print("=" * 60)
                print(f"Run ID: {metrics.run_id}")
                print(f"Refreshed: {metrics.refreshed}")
                print(f"Skipped: {metrics.skipped}")
                print(f"Failed: {metrics.failed}")
                print(f"Definitions: {metrics.definitions_stored}")
                print("=" * 60)

                sys.exit(1 if metrics.failed else 0)

            if args.package:
                definitions = pipeline.query(args.family, args.release, args.package, MODE_PACKAGE)
            else:
                definitions = pipeline.query(args.family, args.release, args.cve, MODE_CVE)
            print(pipeline.reporter.render_definitions(definitions))
            print(f"\n{len(definitions)} definitions")
        finally:
            pipeline.close()

    except Exception as e:
        logger.error(f"Pipeline failed: {e}")
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
