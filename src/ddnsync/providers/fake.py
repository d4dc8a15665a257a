"""In-memory ddnsync provider, useful for trial runs and testing"""

import dataclasses
import itertools
import threading
import time
from typing import Dict

from ..exceptions import ProviderError
from ..family import Family
from .provider import BaseProvider, Record


@dataclasses.dataclass(frozen=True, eq=False)
class FakeRecord(Record):
    """A record held by :class:`FakeProvider`"""

    ttl: int = 0

    #: :func:`time.monotonic` timestamp after which the record expires
    deadline: float = 0.0


class FakeProvider(BaseProvider):
    """Provider that keeps records in memory. Records expire once their TTL
    has passed, so a task whose interval is longer than its TTL recreates its
    records on every pass.

    :param name: Name of the provider (from config section heading)
    :param config: Dict of config options for this provider
    """

    def __init__(self, name, config):
        super().__init__(name, config)
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._records: Dict[str, FakeRecord] = dict()

    def _expire(self):
        """Drop records whose TTL has passed. Must hold the lock."""
        now = time.monotonic()
        for record_id, record in list(self._records.items()):
            if record.deadline <= now:
                self.log.info("TTL of record %s has passed, deleting it",
                              record)
                del self._records[record_id]

    def list_records(self, family):
        with self._lock:
            self._expire()
            return [r for r in self._records.values()
                    if Family.of(r.address) is family]

    def create_record(self, address, ttl):
        with self._lock:
            record = FakeRecord(str(next(self._ids)), address, ttl,
                                time.monotonic() + ttl)
            self._records[record.id] = record

    def update_record(self, record, address):
        with self._lock:
            try:
                current = self._records[record.id]
            except KeyError:
                raise ProviderError(f"No record with id {record.id}") from None
            self._records[record.id] = dataclasses.replace(current,
                                                           address=address)

    def delete_record(self, record):
        with self._lock:
            try:
                del self._records[record.id]
            except KeyError:
                raise ProviderError(f"No record with id {record.id}") from None
