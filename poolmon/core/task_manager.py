"""
Single place for scheduling: in-memory timers, optionally backed by a BaseTask.
"""
import logging
import threading
from datetime import datetime, timezone
from threading import Timer
from typing import Any, Callable, Dict, List

from poolmon.core.task import BaseTask


class TaskManager:
    def __init__(self):
        self.tasks: Dict[str, Timer] = {}
        self.logger = logging.getLogger("TaskManager")
        self._registered_tasks: Dict[str, BaseTask] = {}
        self._lock = threading.Lock()
        self._stopped = False

    def schedule_task(self, name: str, callback: Callable, delay: float, one_time: bool = True) -> None:
        """Schedule a task to run after delay seconds."""
        with self._lock:
            if self._stopped:
                self.logger.debug(f"Not scheduling {name}: task manager stopped")
                return
            if name in self.tasks:
                self.logger.debug(f"Cancelling existing task {name}")
                self.tasks[name].cancel()

            scheduled_time = datetime.now().timestamp() + delay
            timer = Timer(delay, self._run_task, args=(name, callback, delay, one_time))
            timer.daemon = True
            timer.scheduled_time = scheduled_time
            self.tasks[name] = timer
            timer.start()
        self.logger.info(f"Timer started for {name}, scheduled for {datetime.fromtimestamp(scheduled_time)}")

    def _run_task(self, name: str, callback: Callable, delay: float, one_time: bool) -> None:
        """Run the task and reschedule if needed."""
        try:
            callback()
        except Exception as e:
            self.logger.error(f"Error running task {name}: {e}")
        if not one_time:
            self.schedule_task(name, callback, delay, one_time)

    def register_task(self, task: BaseTask) -> None:
        """Register a BaseTask and schedule it: first at its persisted next run, then every interval."""
        self._registered_tasks[task.task_name] = task
        delay = task.initial_delay()
        self.logger.info(f"Registered task {task.task_name} (every {task.interval_seconds}s, first in {delay}s)")
        self.schedule_task(task.task_name, lambda: self._run_registered(task.task_name), delay, one_time=True)

    def _run_registered(self, task_name: str) -> None:
        task = self._registered_tasks.get(task_name)
        if task is None:
            return
        try:
            task.execute()
        finally:
            self.schedule_task(task_name, lambda: self._run_registered(task_name), task.interval_seconds, one_time=True)

    def run_task_now(self, task_name: str) -> bool:
        """Run a registered task once immediately (e.g. manual refresh). False if unknown."""
        task = self._registered_tasks.get(task_name)
        if task is None:
            self.logger.warning(f"No task registered with name: {task_name}")
            return False
        task.execute()
        return True

    def get_active_timers(self) -> List[Dict[str, Any]]:
        """Return list of active timer names and their next run time (for API)."""
        result = []
        with self._lock:
            timers = list(self.tasks.items())
        for name, timer in timers:
            if getattr(timer, "scheduled_time", None) is not None:
                next_run = datetime.fromtimestamp(timer.scheduled_time, tz=timezone.utc)
                result.append({"name": name, "next_run_at": next_run})
        return result

    def stop(self) -> None:
        """Stop all scheduled tasks."""
        with self._lock:
            self._stopped = True
            for task in self.tasks.values():
                task.cancel()
            self.tasks.clear()
