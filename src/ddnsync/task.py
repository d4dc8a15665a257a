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

"""A task: periodically sync one provider's records with one source's
addresses"""

import logging
import math
import time
from typing import List, Sequence

from .exceptions import SourceError
from .family import Family
from .notifiers import BaseNotifier
from .providers import BaseProvider
from .reconcile import reconcile
from .shutdown import ShutdownCoordinator, Subscription
from .sources import BaseSource


class Task:
    """Keeps the records of one provider in sync with the addresses reported
    by one source, for one or both address families, checking every
    ``interval`` seconds. Whenever records change, the notifiers are told
    which addresses were applied.

    A task holds no state between passes, so a failed task can simply be run
    again.

    :param name: Name of the task (from config section heading)
    :param families: The families to sync, in order
    :param interval: Seconds between the starts of consecutive passes
    :param source: Where to get the current addresses
    :param provider: Where the DNS records are kept
    :param notifiers: Notifiers to call, in order, after records change
    :param ttl: TTL for newly created records
    :param force: Whether to re-send unchanged records on every pass
    """

    def __init__(self,
                 name: str,
                 families: Sequence[Family],
                 interval: float,
                 source: BaseSource,
                 provider: BaseProvider,
                 notifiers: Sequence[BaseNotifier] = (),
                 ttl: int = 300,
                 force: bool = False):
        #: Task name (from config section heading)
        self.name = name

        #: Logger (see standard :mod:`logging` module)
        self.log = logging.getLogger(f'ddnsync.task.{self.name}')

        self.families = tuple(families)
        self.interval = interval
        self.source = source
        self.provider = provider
        self.notifiers = tuple(notifiers)
        self.ttl = ttl
        self.force = force

    def __repr__(self):
        return f"<Task {self.name}>"

    def sync_family(self, family: Family) -> List:
        """Do one reconciliation pass for one family and notify if anything
        changed.

        :param family: The family to sync
        :return: The applied addresses (empty if nothing changed or the family
                 was skipped)
        :raises ProviderError: if a provider operation fails
        :raises NotifyError: if a notifier fails. Remaining notifiers are not
                             called.
        """
        try:
            desired = self.source.get_addresses(family)
        except SourceError as e:
            self.log.warning("Skipping %s for this pass, could not get "
                             "current address: %s", family, e)
            return []

        wrong = [a for a in desired if not family.matches(a)]
        if wrong:
            self.log.warning("Skipping %s for this pass, source %s returned "
                             "address(es) of the wrong family: %s", family,
                             self.source.name,
                             ", ".join(str(a) for a in wrong))
            return []

        self.log.debug("Current %s address(es): %s", family,
                       ", ".join(str(a) for a in desired))
        existing = self.provider.list_records(family)
        applied = reconcile(self.provider, existing, desired, self.ttl,
                            self.force, log=self.log)

        if applied:
            for notifier in self.notifiers:
                self.log.debug("Sending notification via %s", notifier.name)
                notifier.notify(applied)
        return applied

    def run_once(self, shutdown=None) -> None:
        """Do one pass over all the configured families.

        :param shutdown: Optional :class:`~ddnsync.ShutdownCoordinator` or
                         :class:`~ddnsync.shutdown.Subscription`. If shutdown
                         is signaled between families, the pass stops early.
        :raises ProviderError: if a provider operation fails
        :raises NotifyError: if a notifier fails
        """
        for family in self.families:
            if shutdown is not None and shutdown.is_set:
                self.log.debug("Shutdown signaled, ending pass early")
                return
            self.sync_family(family)

    def run(self, shutdown: ShutdownCoordinator,
            start_delay: float = 0) -> None:
        """Run passes on a fixed schedule until shutdown is signaled. The
        first pass starts after ``start_delay`` seconds. If a pass overruns
        the interval, the missed ticks are skipped.

        Holds a subscription on the coordinator the whole time, so
        :meth:`ShutdownCoordinator.signal` does not return until this does.

        :param shutdown: The coordinator to watch for shutdown
        :param start_delay: Seconds to wait before the first pass
        :raises ProviderError: if a provider operation fails
        :raises NotifyError: if a notifier fails
        """
        with shutdown.subscribe() as sub:
            self._run(sub, start_delay)

    def _run(self, sub: Subscription, start_delay: float) -> None:
        if start_delay > 0:
            self.log.debug("Starting in %.1f seconds", start_delay)
        if sub.wait(start_delay):
            return
        self.log.info("Task started, checking every %s seconds",
                      self.interval)

        next_tick = time.monotonic()
        while not sub.is_set:
            self.run_once(sub)

            next_tick += self.interval
            now = time.monotonic()
            if next_tick < now:
                missed = math.ceil((now - next_tick) / self.interval)
                self.log.warning("Pass took longer than the interval, "
                                 "skipping %d tick(s)", missed)
                next_tick += missed * self.interval
            if sub.wait(next_tick - now):
                break
        self.log.info("Task stopped")
