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

"""Cooperative shutdown signal with a drain barrier"""

import logging
import threading
from typing import Optional


class Subscription:
    """A registration with a :class:`ShutdownCoordinator`. While it is open,
    :meth:`ShutdownCoordinator.signal` will not return. Use as a context
    manager:

    .. code-block:: python

        with coordinator.subscribe() as sub:
            while not sub.wait(interval):
                do_work()

    :param coordinator: The coordinator this subscription belongs to
    """

    def __init__(self, coordinator: 'ShutdownCoordinator'):
        self._coordinator = coordinator
        self._closed = False

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until shutdown is signaled or the timeout expires, whichever
        comes first

        :param timeout: Seconds to wait, or ``None`` to wait indefinitely
        :return: ``True`` if shutdown was signaled, ``False`` if the timeout
                 expired first
        """
        return self._coordinator._wait(timeout)

    @property
    def is_set(self) -> bool:
        """Whether shutdown has been signaled"""
        return self._coordinator.is_set

    def close(self) -> None:
        """Unsubscribe. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._coordinator._unsubscribe()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class ShutdownCoordinator:
    """Process-wide cancellation signal with a drain barrier.

    Consumers register with :meth:`subscribe` (or do a one-off
    :meth:`wait`). :meth:`signal` sets the shutdown flag, wakes every waiting
    consumer, and then blocks until every subscription has been closed. A
    caller of :meth:`signal` therefore never returns while a subscribed task
    is still in the middle of a pass.

    The flag and the subscriber count are guarded by a single
    :class:`threading.Condition`, so a signal can never be missed by a
    consumer that subscribes concurrently.
    """

    def __init__(self):
        self.log = logging.getLogger('ddnsync.shutdown')
        self._cond = threading.Condition()
        self._shutdown = False
        self._subscribers = 0

    @property
    def is_set(self) -> bool:
        """Whether shutdown has been signaled"""
        with self._cond:
            return self._shutdown

    @property
    def subscriber_count(self) -> int:
        """Number of currently open subscriptions"""
        with self._cond:
            return self._subscribers

    def subscribe(self) -> Subscription:
        """Open a new subscription. Subscribing after shutdown was signaled is
        allowed; waits on the subscription return immediately."""
        with self._cond:
            self._subscribers += 1
        return Subscription(self)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for shutdown to be signaled. Returns immediately if it already
        was. The caller counts as a subscriber only for the duration of the
        wait.

        :param timeout: Seconds to wait, or ``None`` to wait indefinitely
        :return: ``True`` if shutdown was signaled, ``False`` on timeout
        """
        with self._cond:
            if self._shutdown:
                return True
        with self.subscribe() as sub:
            return sub.wait(timeout)

    def signal(self) -> None:
        """Signal shutdown to all subscribers and block until all of them have
        unsubscribed. Calling this more than once is harmless; later calls
        also wait for the drain."""
        with self._cond:
            if not self._shutdown:
                self.log.debug("Signaling shutdown to %d subscriber(s)",
                               self._subscribers)
            self._shutdown = True
            self._cond.notify_all()
            self._cond.wait_for(lambda: self._subscribers == 0)
        self.log.debug("All subscribers drained")

    def _wait(self, timeout: Optional[float]) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._shutdown, timeout)

    def _unsubscribe(self) -> None:
        with self._cond:
            self._subscribers -= 1
            self._cond.notify_all()
