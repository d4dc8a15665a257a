"""Base class for ddnsync providers and the record type they return"""

import dataclasses
import logging
# Note: We are not using abstractmethod the way it is intended. We are using it
# purely to get Sphinx to mark methods as abstract. Thus, we intentionally do
# NOT use ABCMeta or inherit from ABC.
from abc import abstractmethod
from typing import Dict, List

from ..exceptions import ConfigError
from ..family import Address, Family


@dataclasses.dataclass(frozen=True, eq=False)
class Record:
    """A DNS record held by a provider.

    Equality and hashing consider the address only, never the identifier, so
    records can be compared against observed addresses by set operations.
    Providers that need to keep more data per record (e.g. the TTL) can
    subclass this, declaring the subclass with ``eq=False`` so the
    address-only comparison is kept.
    """

    #: Opaque, provider-defined identifier. Only used to address provider
    #: operations.
    id: str

    #: The address the record points to
    address: Address

    @property
    def family(self) -> Family:
        return Family.of(self.address)

    def __eq__(self, other):
        if not isinstance(other, Record):
            return NotImplemented
        return self.address == other.address

    def __hash__(self):
        return hash(self.address)

    def __str__(self):
        return f"{self.id} ({self.address})"


class BaseProvider:
    """Base class for all ddnsync providers (DNS record stores). Sets up the
    logger and a few useful member variables.

    A provider manages the A and AAAA records of a single DNS name. Each
    method should raise :exc:`~ddnsync.ProviderError` on failure.

    :param name: Name of the provider (from config section heading)
    :param config: Dict of config options for this provider

    :raises ConfigError: if the configuration is invalid
    """

    def __init__(self, name: str, config: Dict[str, str]):
        #: Provider name (from config section heading)
        self.name: str = name

        #: Logger (see standard :mod:`logging` module)
        self.log = logging.getLogger(f'ddnsync.provider.{self.name}')

        # Timeout for each API call, in seconds
        try:
            self.timeout: float = float(config.get('timeout', '10'))
        except ValueError:
            self.log.critical("'timeout' config option must be a number")
            raise ConfigError(f"'timeout' option for {self.name} provider "
                              "must be a number") from None

    @abstractmethod
    def list_records(self, family: Family) -> List[Record]:
        """Fetch the records of the given family currently held by the
        provider.

        **Must be overridden by subclasses.** Records of the other family must
        never be returned.

        :param family: The address family to list records for
        :return: A list of :class:`Record` (possibly empty)
        :raises ProviderError: if the records could not be fetched
        """
        raise NotImplementedError

    @abstractmethod
    def create_record(self, address: Address, ttl: int) -> None:
        """Create a new record pointing to the given address.

        **Must be overridden by subclasses.**

        :param address: The address for the new record
        :param ttl: The TTL for the new record, in seconds
        :raises ProviderError: if the record could not be created
        """
        raise NotImplementedError

    @abstractmethod
    def update_record(self, record: Record, address: Address) -> None:
        """Point an existing record to a new address, keeping its identity.

        **Must be overridden by subclasses.** The address may equal the
        record's current address (a forced refresh).

        :param record: A record previously returned by :meth:`list_records`
        :param address: The new address
        :raises ProviderError: if the record could not be updated
        """
        raise NotImplementedError

    @abstractmethod
    def delete_record(self, record: Record) -> None:
        """Delete an existing record.

        **Must be overridden by subclasses.**

        :param record: A record previously returned by :meth:`list_records`
        :raises ProviderError: if the record could not be deleted
        """
        raise NotImplementedError
