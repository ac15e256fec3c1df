"""
Metrics collection for refresh runs.

RunMetrics tracks one ingestion run:
- How many feed targets were refreshed, skipped (same snapshot) or failed
- Definitions stored per (family, OS version)
- Per-target health, including the error that failed it

Design decisions:
- Single metrics object per run
- A failed target is recorded here and the run moves on to the next one
- Serializable to_dict(), saved as JSON next to the Markdown report
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class RunMetrics:
    """
    Metrics for a single refresh run.

    Target keys are "<family> <os_version>".
    """
    run_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None

    targets_total: int = 0
    refreshed: int = 0
    skipped: int = 0
    failed: int = 0
    definitions_stored: int = 0
    errors: int = 0

    # Key: target, Value: dict with status, definitions, file, error
    target_health: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    quality_issues: List[Dict] = field(default_factory=list)

    def record_refresh(self, target: str, file_name: str, definitions: int):
        """Record a target whose Root was replaced."""
        self.refreshed += 1
        self.definitions_stored += definitions
        self.target_health[target] = {
            "status": "refreshed",
            "file": file_name,
            "definitions": definitions,
            "error": None,
        }

    def record_skip(self, target: str, file_name: str):
        """Record a target whose snapshot was already stored."""
        self.skipped += 1
        self.target_health[target] = {
            "status": "skipped",
            "file": file_name,
            "definitions": 0,
            "error": None,
        }

    def record_failure(self, target: str, error: str, file_name: Optional[str] = None):
        """Record a target that failed to fetch, parse or refresh."""
        self.failed += 1
        self.target_health[target] = {
            "status": "failed",
            "file": file_name,
            "definitions": 0,
            "error": error,
        }
        self.record_error(error, {"target": target})

    def record_error(self, error: str, context: Dict = None):
        """
        Record an error encountered during the run.

        Args:
            error: Error message
            context: Optional dict with additional context (e.g., target)
        """
        self.errors += 1
        self.quality_issues.append({
            "type": "error",
            "message": error,
            "context": context or {}
        })

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "targets_total": self.targets_total,
            "refreshed": self.refreshed,
            "skipped": self.skipped,
            "failed": self.failed,
            "definitions_stored": self.definitions_stored,
            "errors": self.errors,
            "target_health": self.target_health,
            "quality_issues": self.quality_issues,
        }
