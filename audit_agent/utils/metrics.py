"""
Metrics Tracking Utility
Tracks workflow runs, per-step timings and LLM usage.
"""

import json
import time
from pathlib import Path
from typing import Dict, Any, Optional
from contextlib import contextmanager
from datetime import datetime, timezone
from threading import Lock

from audit_agent.settings import settings
from audit_agent.utils.logger import get_logger

logger = get_logger(__name__)


def _empty_metrics() -> Dict[str, Any]:
    return {
        "app_info": {
            "name": settings.app_title,
            "version": settings.app_version,
            "started_at": datetime.now(timezone.utc).isoformat()
        },
        "workflows": {
            "total": 0,
            "successful": 0,
            "failed": 0,
            "total_time_seconds": 0.0,
            "average_time_seconds": 0.0
        },
        "steps": {},
        "llm": {
            "total_calls": 0,
            "total_tokens": 0,
            "by_model": {}
        },
        "errors": {
            "total": 0,
            "by_type": {}
        }
    }


class MetricsCollector:
    """Collects and persists workflow metrics."""

    def __init__(self, metrics_file: Optional[str] = None, enabled: Optional[bool] = None):
        self.enabled = settings.enable_metrics if enabled is None else enabled
        self.metrics_file = Path(metrics_file or settings.metrics_file)

        self._lock = Lock()
        self._metrics: Dict[str, Any] = _empty_metrics()

        if self.enabled:
            self.metrics_file.parent.mkdir(parents=True, exist_ok=True)
            self._load_metrics()

        logger.debug(
            "Metrics collector initialized",
            extra={"enabled": self.enabled, "metrics_file": str(self.metrics_file)}
        )

    def _load_metrics(self):
        """Load metrics from file if it exists."""
        if not self.metrics_file.exists():
            return
        try:
            with open(self.metrics_file, "r") as f:
                self._metrics = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load metrics file: {e}")

    def _save_metrics(self):
        try:
            with open(self.metrics_file, "w") as f:
                json.dump(self._metrics, f, indent=2)
        except OSError as e:
            logger.error(f"Could not save metrics: {e}")

    def record_workflow(self, status: str, duration: float):
        """
        Record a finished workflow run.

        Args:
            status: "successful" or "failed"
            duration: Run time in seconds
        """
        if not self.enabled:
            return

        with self._lock:
            workflows = self._metrics["workflows"]
            workflows["total"] += 1
            if status in ("successful", "failed"):
                workflows[status] += 1
            workflows["total_time_seconds"] += duration
            workflows["average_time_seconds"] = (
                workflows["total_time_seconds"] / workflows["total"]
            )
            self._save_metrics()

    def record_step_execution(self, step_id: int, execution_time: float):
        """Record how long one step took."""
        if not self.enabled:
            return

        with self._lock:
            step_metrics = self._metrics["steps"].setdefault(
                f"step_{step_id}",
                {"executions": 0, "total_time": 0.0, "average_time": 0.0}
            )
            step_metrics["executions"] += 1
            step_metrics["total_time"] += execution_time
            step_metrics["average_time"] = (
                step_metrics["total_time"] / step_metrics["executions"]
            )
            self._save_metrics()

    def record_llm_call(self, model: str, tokens: int):
        """Record one LLM API call and its token usage."""
        if not self.enabled:
            return

        with self._lock:
            llm = self._metrics["llm"]
            llm["total_calls"] += 1
            llm["total_tokens"] += tokens

            model_metrics = llm["by_model"].setdefault(model, {"calls": 0, "tokens": 0})
            model_metrics["calls"] += 1
            model_metrics["tokens"] += tokens
            self._save_metrics()

    def record_error(self, error_type: str, error_message: str):
        """Record an error by exception type."""
        if not self.enabled:
            return

        with self._lock:
            self._metrics["errors"]["total"] += 1
            error_metrics = self._metrics["errors"]["by_type"].setdefault(
                error_type,
                {"count": 0, "last_message": "", "last_occurrence": ""}
            )
            error_metrics["count"] += 1
            error_metrics["last_message"] = error_message
            error_metrics["last_occurrence"] = datetime.now(timezone.utc).isoformat()
            self._save_metrics()

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics."""
        with self._lock:
            return json.loads(json.dumps(self._metrics))

    def reset_metrics(self):
        """Reset all metrics."""
        with self._lock:
            self._metrics = _empty_metrics()
            if self.enabled:
                self._save_metrics()
        logger.info("Metrics reset")


_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    """Get or create the global metrics collector."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector


@contextmanager
def track_step_execution(step_id: int):
    """
    Context manager to track step execution time.

    Usage:
        with track_step_execution(2):
            # step code here
            pass
    """
    start_time = time.time()
    try:
        yield
    finally:
        get_metrics_collector().record_step_execution(step_id, time.time() - start_time)


@contextmanager
def track_workflow():
    """
    Context manager to track a full workflow run.

    Usage:
        with track_workflow() as tracker:
            # run steps
            tracker.success()  # or tracker.failure()
    """
    start_time = time.time()

    class WorkflowTracker:
        def __init__(self):
            self.status = "unknown"

        def success(self):
            self.status = "successful"

        def failure(self):
            self.status = "failed"

    tracker = WorkflowTracker()

    try:
        yield tracker
    finally:
        # Abandoned or crashed runs never reported an outcome
        if tracker.status == "unknown":
            tracker.failure()
        get_metrics_collector().record_workflow(tracker.status, time.time() - start_time)
