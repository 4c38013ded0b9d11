# ============================================
# FILE: pgmigrate/monitoring/metrics.py
# ============================================

"""
Metrics collection for migration runs
"""

from typing import Any

from pgmigrate.core.types import MigrationStatus


class MigrationMetrics:
    """Collect and expose migration metrics"""

    def __init__(self):
        self.metrics = {
            "total_runs": 0,
            "total_completed": 0,
            "total_aborted": 0,
            "total_failed": 0,
            "average_run_time": 0.0,
            "steps": {},
            "compensations": {},
        }

    def record_run(self, status: MigrationStatus, duration: float):
        """Record a finished run"""
        self.metrics["total_runs"] += 1
        self._increment_status_counter(status)
        self._update_average_time(duration)

    def record_step(self, step_name: str, succeeded: bool):
        """Record one step outcome"""
        self._bump(self.metrics["steps"], step_name, succeeded)

    def record_compensation(self, step_name: str, succeeded: bool):
        """Record one rollback outcome"""
        self._bump(self.metrics["compensations"], step_name, succeeded)

    def _increment_status_counter(self, status: MigrationStatus) -> None:
        status_map = {
            MigrationStatus.COMPLETED: "total_completed",
            MigrationStatus.ABORTED: "total_aborted",
            MigrationStatus.FAILED: "total_failed",
        }
        counter = status_map.get(status)
        if counter:
            self.metrics[counter] += 1

    def _update_average_time(self, duration: float) -> None:
        total_time = self.metrics["average_run_time"] * (self.metrics["total_runs"] - 1)
        self.metrics["average_run_time"] = (total_time + duration) / self.metrics["total_runs"]

    @staticmethod
    def _bump(table: dict[str, dict[str, int]], name: str, succeeded: bool) -> None:
        if name not in table:
            table[name] = {"count": 0, "success": 0, "failed": 0}

        table[name]["count"] += 1
        if succeeded:
            table[name]["success"] += 1
        else:
            table[name]["failed"] += 1

    def get_metrics(self) -> dict[str, Any]:
        """Get all metrics"""
        success_rate = (
            self.metrics["total_completed"] / self.metrics["total_runs"] * 100
            if self.metrics["total_runs"] > 0
            else 0
        )

        return {
            **self.metrics,
            "success_rate": f"{success_rate:.2f}%",
        }
