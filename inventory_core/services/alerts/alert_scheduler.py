"""
Alert Scheduler
Background thread running the alert sweeps on a fixed interval
"""
import threading
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from inventory_core.core.clock import Clock, utcnow
from inventory_core.core.config import InventoryPolicy
from inventory_core.core.database import SessionLocal
from inventory_core.core.logging import get_logger
from inventory_core.services.alerts.alert_engine import AlertEngineService

logger = get_logger("alerts")


class AlertScheduler:
    """Runs AlertEngineService.run_all with a fresh session per run"""

    def __init__(
        self,
        interval_seconds: float,
        session_factory: Callable[[], Session] = SessionLocal,
        policy: Optional[InventoryPolicy] = None,
        clock: Clock = utcnow,
    ):
        self.interval_seconds = interval_seconds
        self.session_factory = session_factory
        self.policy = policy or InventoryPolicy.from_settings()
        self.clock = clock
        self.scheduler_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self.scheduler_thread is not None and self.scheduler_thread.is_alive()

    def start(self) -> bool:
        """Start the scheduler"""
        if self.running:
            return False

        self._stop_event.clear()
        self.scheduler_thread = threading.Thread(
            target=self._scheduler_loop, name="alert-scheduler", daemon=True
        )
        self.scheduler_thread.start()

        logger.info(f"Alert scheduler started (every {self.interval_seconds}s)")
        return True

    def stop(self, timeout: float = 10) -> bool:
        """Stop the scheduler"""
        if not self.running:
            return False

        self._stop_event.set()
        self.scheduler_thread.join(timeout=timeout)
        self.scheduler_thread = None

        logger.info("Alert scheduler stopped")
        return True

    def run_once(self) -> Dict[str, int]:
        db = self.session_factory()
        try:
            return AlertEngineService(db, self.policy, self.clock).run_all()
        finally:
            db.close()

    def _scheduler_loop(self):
        """Main scheduler loop"""
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception as e:
                # Keep sweeping; the next run starts from fresh state
                logger.error(f"Alert sweep failed: {e}", exc_info=True)
            self._stop_event.wait(self.interval_seconds)
