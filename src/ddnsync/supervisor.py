#  ddnsync - Dynamic DNS record synchronizer
#  Copyright (C) 2023 The ddnsync developers
#
#  This program is free software: you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation, either version 3 of the License, or
#  (at your option) any later version.
#
#  This program is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#
#  You should have received a copy of the GNU General Public License
#  along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Task supervisor: runs every task in its own thread and restarts failed
tasks"""

import logging
import queue
import random
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from .exceptions import DDNSyncException
from .shutdown import ShutdownCoordinator
from .task import Task


@dataclass
class TaskHandle:
    """The current run of a task in the supervisor's pool"""

    #: The task being run
    task: Task
    #: Thread running it
    thread: threading.Thread
    #: Seconds the task waited before its first pass
    delay: float
    #: Number of times the task has been started
    runs: int = 1


class TaskSupervisor:
    """Runs a set of tasks concurrently until shutdown.

    Task *i* starts ``i * startup_interval`` seconds after the supervisor, to
    spread out the load on providers. When a task fails, the error is logged
    and the task is started again in the same slot after
    ``retry_timeout + random.random() * retry_jitter`` seconds.

    The supervisor subscribes to the shutdown coordinator while it runs, so
    :meth:`ShutdownCoordinator.signal` returns only once the supervisor and
    every task it started have finished.

    :param tasks: The tasks to run
    :param shutdown: The coordinator that signals shutdown
    :param startup_interval: Seconds between the starts of consecutive tasks
    :param retry_timeout: Minimum seconds before restarting a failed task
    :param retry_jitter: Upper bound (exclusive) of the random seconds added
                         to ``retry_timeout``
    """

    def __init__(self,
                 tasks: Sequence[Task],
                 shutdown: ShutdownCoordinator,
                 startup_interval: float = 5,
                 retry_timeout: float = 10,
                 retry_jitter: float = 5):
        self.log = logging.getLogger('ddnsync.supervisor')
        self.tasks = tuple(tasks)
        self.shutdown = shutdown
        self.startup_interval = startup_interval
        self.retry_timeout = retry_timeout
        self.retry_jitter = retry_jitter

        #: Current handle for each task, keyed by the task's index
        self.handles: Dict[int, TaskHandle] = dict()
        self._done: 'queue.Queue[Tuple[int, Optional[BaseException]]]' = \
            queue.Queue()

    def retry_delay(self) -> float:
        """Pick the delay before restarting a failed task"""
        return self.retry_timeout + random.random() * self.retry_jitter

    def _spawn(self, index: int, delay: float) -> None:
        task = self.tasks[index]
        thread = threading.Thread(target=self._task_main,
                                  args=(index, task, delay),
                                  name=f'task-{task.name}')
        previous = self.handles.get(index)
        runs = 1 if previous is None else previous.runs + 1
        self.handles[index] = TaskHandle(task, thread, delay, runs)
        thread.start()

    def _task_main(self, index: int, task: Task, delay: float) -> None:
        """Thread body: run the task and report how it ended"""
        error = None
        try:
            task.run(self.shutdown, delay)
        except Exception as e:
            error = e
        finally:
            self._done.put((index, error))

    def _report(self, task: Task, error: Optional[BaseException],
                delay: float) -> None:
        """Log why a task ended, once"""
        if error is None:
            self.log.error("Task %s stopped unexpectedly. Restarting in %.1f "
                           "seconds.", task.name, delay)
        elif isinstance(error, DDNSyncException):
            self.log.error("Task %s failed: %s. Restarting in %.1f seconds.",
                           task.name, error, delay)
        else:
            self.log.error("Task %s failed with unexpected error: %s. "
                           "Restarting in %.1f seconds.", task.name, error,
                           delay, exc_info=error)

    def run(self) -> None:
        """Run the tasks. Blocks until shutdown is signaled and every task has
        finished. Returns immediately if there are no tasks."""
        if not self.tasks:
            self.log.info("No tasks configured, nothing to do")
            return

        with self.shutdown.subscribe() as sub:
            self.log.info("Starting %d task(s)", len(self.tasks))
            for index in range(len(self.tasks)):
                self._spawn(index, index * self.startup_interval)

            while self.handles:
                index, error = self._done.get()
                handle = self.handles[index]
                handle.thread.join()

                if sub.is_set:
                    if error is not None:
                        self.log.error("Task %s failed during shutdown: %s",
                                       handle.task.name, error)
                    del self.handles[index]
                    continue

                delay = self.retry_delay()
                self._report(handle.task, error, delay)
                self._spawn(index, delay)

        self.log.info("All tasks stopped")
