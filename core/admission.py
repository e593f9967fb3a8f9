# core/admission.py
import logging
import threading
from typing import Dict, List
from core.entities import AdmissionSlot

logger = logging.getLogger(__name__)


class AdmissionController:
    """
    Fixed-capacity slot table shared by every job in the process.

    Flow:
    - try_admit() is a single check-and-set under the lock, so two callers
      racing for the last slot cannot both win.
    - release() is idempotent; a second call for the same job is a no-op.
    - in_flight_count() is for observability only, never for admission.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = capacity
        self._slots: Dict[str, AdmissionSlot] = {}
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def try_admit(self, job_id: str) -> bool:
        with self._lock:
            if job_id in self._slots or len(self._slots) >= self._capacity:
                in_flight = len(self._slots)
                admitted = False
            else:
                self._slots[job_id] = AdmissionSlot(job_id=job_id)
                in_flight = len(self._slots)
                admitted = True
        logger.info(
            "admission.%s job=%s in_flight=%d cap=%d",
            "accept" if admitted else "reject",
            job_id,
            in_flight,
            self._capacity,
        )
        return admitted

    def release(self, job_id: str) -> bool:
        with self._lock:
            slot = self._slots.pop(job_id, None)
            in_flight = len(self._slots)
        if slot is None:
            return False
        logger.info("admission.release job=%s in_flight=%d", job_id, in_flight)
        return True

    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._slots)

    def slots(self) -> List[AdmissionSlot]:
        with self._lock:
            return list(self._slots.values())
