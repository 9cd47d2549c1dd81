from __future__ import annotations

import logging
import os
import threading
from typing import Callable

from sqlalchemy.orm import Session

from equipment_rental.services.rental_contract_service import finish_expired_contracts

WORKER_LOGGER = logging.getLogger("equipment_rental.worker")

CONTRACT_EXPIRATION_INTERVAL_SECONDS = int(os.environ.get("CONTRACT_EXPIRATION_INTERVAL_SECONDS") or str(12 * 3600))
CONTRACT_EXPIRATION_WORKER_ENABLED = str(os.environ.get("CONTRACT_EXPIRATION_WORKER_ENABLED", "false")).strip().lower() in {
    "1",
    "true",
    "yes",
    "on",
}


class ContractExpirationWorker:
    """Periodically finishes Active rental contracts that ran past their end date."""

    def __init__(self, session_factory: Callable[[], Session], interval_seconds: int = CONTRACT_EXPIRATION_INTERVAL_SECONDS):
        self.session_factory = session_factory
        self.interval_seconds = max(int(interval_seconds), 1)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def run_once(self) -> int:
        db = self.session_factory()
        try:
            return finish_expired_contracts(db)
        finally:
            db.close()

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                finished = self.run_once()
                WORKER_LOGGER.debug("Expiration sweep finished %s contracts", finished)
            except Exception:
                WORKER_LOGGER.exception("Expiration sweep failed; retrying in %s seconds", self.interval_seconds)
            self._stop.wait(self.interval_seconds)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="contract-expiration-worker")
        self._thread.start()
        WORKER_LOGGER.info("Contract expiration worker started (interval=%ss)", self.interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        WORKER_LOGGER.info("Contract expiration worker stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
