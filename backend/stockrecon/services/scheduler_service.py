"""Background task scheduler for periodic jobs (POS sales sync)."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from stockrecon.core.config import settings

logger = logging.getLogger(__name__)


class TaskScheduler:
    """Lightweight asyncio-based task scheduler.

    Runs registered tasks at fixed intervals. State is ephemeral; the sync
    watermark itself is persisted by the jobs. Started and stopped as a whole,
    a stop never interrupts a job mid-run.
    """

    def __init__(self, tick_seconds: Optional[int] = None):
        self._tasks: Dict[str, Dict[str, Any]] = {}
        self._running = False
        self._task_handle: Optional[asyncio.Task] = None
        self._tick_seconds = tick_seconds or settings.scheduler_tick_seconds

    @property
    def is_running(self) -> bool:
        return self._running

    async def run_due_tasks(self) -> None:
        """Run every task whose next run time has passed."""
        now = datetime.now(timezone.utc)
        for name, task in list(self._tasks.items()):
            if now < task["next_run"]:
                continue
            try:
                if asyncio.iscoroutinefunction(task["func"]):
                    await task["func"]()
                else:
                    task["func"]()
                task["last_run"] = now
                task["run_count"] = task.get("run_count", 0) + 1
                task["last_error"] = None
                logger.debug(f"Scheduled task '{name}' completed")
            except Exception as e:
                task["last_error"] = str(e)
                logger.error(f"Scheduled task '{name}' failed: {e}")
            task["next_run"] = now + task["interval"]

    async def _loop(self) -> None:
        logger.info("Task scheduler started")
        # A loop orphaned by stop() exits even if start() ran again meanwhile
        while self._running and self._task_handle is asyncio.current_task():
            await self.run_due_tasks()
            await asyncio.sleep(self._tick_seconds)
        logger.info("Task scheduler stopped")

    def start(self) -> bool:
        """Start the loop on the running event loop. Returns False if already running."""
        if self._running:
            logger.info("Task scheduler already running")
            return False
        self._running = True
        self._task_handle = asyncio.get_running_loop().create_task(self._loop())
        return True

    def stop(self) -> bool:
        """Stop the loop after the current cycle. Returns False if not running."""
        if not self._running:
            return False
        self._running = False
        self._task_handle = None
        return True

    async def shutdown(self) -> None:
        """Stop and wait for the loop to exit (application shutdown)."""
        handle = self._task_handle
        self.stop()
        if handle is not None:
            handle.cancel()
            try:
                await handle
            except asyncio.CancelledError:
                pass

    def add_task(self, name: str, func: Callable, interval_seconds: int, run_immediately: bool = True):
        first_delay = 0 if run_immediately else interval_seconds
        self._tasks[name] = {
            "func": func,
            "interval": timedelta(seconds=interval_seconds),
            "next_run": datetime.now(timezone.utc) + timedelta(seconds=first_delay),
            "last_run": None,
            "run_count": 0,
            "last_error": None,
        }
        logger.info(f"Scheduled task '{name}' every {interval_seconds}s")

    def remove_task(self, name: str):
        self._tasks.pop(name, None)

    def get_status(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "tasks": {
                name: {
                    "last_run": t["last_run"].isoformat() if t["last_run"] else None,
                    "next_run": t["next_run"].isoformat(),
                    "interval_seconds": int(t["interval"].total_seconds()),
                    "run_count": t.get("run_count", 0),
                    "last_error": t.get("last_error"),
                }
                for name, t in self._tasks.items()
            },
        }


scheduler = TaskScheduler()
