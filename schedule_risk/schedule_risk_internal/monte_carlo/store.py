"""
Keep the records of finished simulation runs.

Each run is archived once and never updated in place. Lookups by simulation
id and by project (newest first) serve the history views of the caller.
"""
import logging
import threading
from typing import TYPE_CHECKING, Dict, List, Optional

from schedule_risk_internal.monte_carlo.exceptions import SimulationNotFoundError

if TYPE_CHECKING:
    from schedule_risk_internal.monte_carlo.service import SimulationRecord

logger = logging.getLogger(__name__)

__all__ = ["SimulationStore", "get_simulation_store"]

# Global instance (lazy-loaded)
_simulation_store: Optional['SimulationStore'] = None
_simulation_store_lock = threading.Lock()


def get_simulation_store() -> 'SimulationStore':
    """Get or create the global SimulationStore instance."""
    global _simulation_store
    with _simulation_store_lock:
        if _simulation_store is None:
            _simulation_store = SimulationStore()
        return _simulation_store


class SimulationStore:
    """In-process archive of simulation records, safe to share between threads."""

    def __init__(self):
        self._records: Dict[str, 'SimulationRecord'] = {}
        self._lock = threading.Lock()

    def save(self, record: 'SimulationRecord') -> None:
        with self._lock:
            if record.simulation_id in self._records:
                raise ValueError(f"Simulation already archived: {record.simulation_id!r}")
            self._records[record.simulation_id] = record
        logger.debug(f"Archived simulation {record.simulation_id} for project {record.project_id}")

    def get(self, simulation_id: str) -> 'SimulationRecord':
        with self._lock:
            record = self._records.get(simulation_id)
        if record is None:
            raise SimulationNotFoundError(simulation_id)
        return record

    def list_for_project(self, project_id: str) -> List['SimulationRecord']:
        """All runs of a project, newest first."""
        with self._lock:
            records = [r for r in self._records.values() if r.project_id == project_id]
        return sorted(records, key=lambda r: r.run_at, reverse=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
