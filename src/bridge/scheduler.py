"""
Task Scheduler
==============

Runs the ingest and publish cycles on independent periods.

A single loop ticks at a fixed resolution. Non-blocking tasks run inline
on the loop; blocking tasks (network round trips) run on a worker thread
so a stalled fetch never delays the other tasks. A task that is still in
flight when its next period comes up is skipped for that tick.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, List
import logging

logger = logging.getLogger(__name__)


@dataclass
class PeriodicTask:
    """A named task with its period and run bookkeeping."""
    name: str
    func: Callable[[], object]
    interval_s: Optional[float] = None   # None: runs only when triggered
    blocking: bool = False               # Run on a worker thread
    last_run: Optional[float] = None

    # Bookkeeping
    run_count: int = 0
    skip_count: int = 0
    error_count: int = 0
    busy: bool = False
    triggered: bool = False
    _thread: Optional[threading.Thread] = field(default=None, repr=False)

    def is_due(self, now: float) -> bool:
        if self.triggered:
            return True
        if self.interval_s is None:
            return False
        return self.last_run is None or now - self.last_run >= self.interval_s


class Scheduler:
    """
    Cooperative periodic task runner.

    Usage:
        scheduler = Scheduler()
        scheduler.add("publish", engine.publish_own_boat, interval_s=1.0)
        scheduler.add("ingest", engine.ingest_own_boat, interval_s=300, blocking=True)
        scheduler.run()
    """

    def __init__(self, resolution_s: float = 0.05, clock=time.monotonic):
        self.resolution_s = resolution_s
        self._clock = clock
        self._tasks: Dict[str, PeriodicTask] = {}
        self._lock = threading.Lock()
        self._running = False

    def add(self, name: str, func: Callable[[], object],
            interval_s: Optional[float] = None, blocking: bool = False) -> PeriodicTask:
        """
        Register a task.

        Args:
            name: Unique task name
            func: Callable run on each period
            interval_s: Period in seconds, None for trigger-only tasks
            blocking: Run on a worker thread with an in-flight guard

        Returns:
            The registered task
        """
        if name in self._tasks:
            raise ValueError(f"Task {name!r} already registered")
        task = PeriodicTask(name=name, func=func, interval_s=interval_s, blocking=blocking)
        self._tasks[name] = task
        return task

    def get(self, name: str) -> PeriodicTask:
        return self._tasks[name]

    def trigger(self, name: str):
        """Request a one-shot run of a task on the next tick."""
        with self._lock:
            self._tasks[name].triggered = True

    def tick(self, now: Optional[float] = None):
        """Run every task that is due."""
        if now is None:
            now = self._clock()

        for task in list(self._tasks.values()):
            with self._lock:
                if not task.is_due(now):
                    continue
                if task.busy:
                    # A pending trigger waits for the running invocation
                    if not task.triggered:
                        task.last_run = now
                        task.skip_count += 1
                        logger.debug(f"Task {task.name} still running, tick skipped")
                    continue
                task.triggered = False
                task.last_run = now
                if task.blocking:
                    task.busy = True

            if task.blocking:
                task._thread = threading.Thread(
                    target=self._run_task, args=(task,),
                    name=f"task-{task.name}", daemon=True
                )
                task._thread.start()
            else:
                self._run_task(task)

    def _run_task(self, task: PeriodicTask):
        failed = False
        try:
            task.func()
        except Exception as e:
            failed = True
            logger.exception(f"Task {task.name} failed: {e}")
        finally:
            with self._lock:
                if failed:
                    task.error_count += 1
                else:
                    task.run_count += 1
                task.busy = False

    def run(self):
        """Tick until stop() is called."""
        self._running = True
        logger.info(f"Scheduler running {len(self._tasks)} tasks")
        while self._running:
            self.tick()
            time.sleep(self.resolution_s)

    def stop(self, timeout: float = 1.0):
        """Stop the loop and wait briefly for in-flight workers."""
        self._running = False
        self.join(timeout)

    def join(self, timeout: Optional[float] = None):
        """Wait for in-flight blocking tasks."""
        threads: List[threading.Thread] = [
            t._thread for t in self._tasks.values() if t._thread is not None
        ]
        for thread in threads:
            thread.join(timeout)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict:
        return {
            name: {
                "runs": task.run_count,
                "skips": task.skip_count,
                "errors": task.error_count,
                "busy": task.busy,
            }
            for name, task in self._tasks.items()
        }
