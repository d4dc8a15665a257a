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

"""Compute and apply the changes that make a provider's records match a set of
observed addresses"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .family import Address, Family
from .providers import BaseProvider, Record


@dataclass
class Plan:
    """The operations needed for one reconciliation pass. No address appears
    in more than one operation."""

    #: Unchanged records to re-send with their own address (force mode)
    refreshes: List[Record] = field(default_factory=list)
    #: Obsolete records to re-target, paired with their new address
    updates: List[Tuple[Record, Address]] = field(default_factory=list)
    #: Obsolete records with no new address left to re-target them to
    deletes: List[Record] = field(default_factory=list)
    #: New addresses with no obsolete record left to re-target
    creates: List[Address] = field(default_factory=list)

    def __bool__(self):
        return bool(self.refreshes or self.updates or self.deletes or
                    self.creates)


def _check_family(existing: List[Record], desired: List[Address]):
    """Raise :exc:`ValueError` if the records and addresses span more than one
    family"""
    families = {Family.of(a) for a in desired}
    families.update(r.family for r in existing)
    if len(families) > 1:
        raise ValueError("Cannot reconcile IPv4 and IPv6 addresses together")


def plan(existing: Iterable[Record], desired: Iterable[Address],
         force: bool = False) -> Plan:
    """Work out the minimal set of operations to turn the existing records into
    exactly the desired addresses.

    Both inputs are deduplicated by address (first occurrence wins). Obsolete
    records are re-targeted to new addresses where possible, pairing them in
    order, rather than deleted and recreated.

    :param existing: Records currently held by the provider
    :param desired: Addresses the records should point to
    :param force: Whether unchanged records should be refreshed anyway
    :return: The :class:`Plan`
    :raises ValueError: if the inputs mix IPv4 and IPv6
    """
    existing_by_addr = {}
    for record in existing:
        existing_by_addr.setdefault(record.address, record)
    desired_addrs = list(dict.fromkeys(desired))
    _check_family(list(existing_by_addr.values()), desired_addrs)

    desired_set = set(desired_addrs)
    result = Plan()

    olds = [r for a, r in existing_by_addr.items() if a not in desired_set]
    news = [a for a in desired_addrs if a not in existing_by_addr]

    if force:
        result.refreshes = [r for a, r in existing_by_addr.items()
                            if a in desired_set]

    paired = min(len(olds), len(news))
    result.updates = list(zip(olds[:paired], news[:paired]))
    result.deletes = olds[paired:]
    result.creates = news[paired:]
    return result


def reconcile(provider: BaseProvider, existing: Iterable[Record],
              desired: Iterable[Address], ttl: int, force: bool = False,
              log: Optional[logging.Logger] = None) -> List[Address]:
    """Make the provider's records match the desired addresses.

    Operations are issued in this order: forced refreshes, updates, deletes,
    creates. A :exc:`~ddnsync.ProviderError` from any of them aborts the rest
    of the pass and propagates. Changes already made are not rolled back; the
    next pass will diff against whatever the provider then holds.

    :param provider: The provider to apply the changes to
    :param existing: Records currently held by the provider for one family
    :param desired: Addresses of the same family that should be published
    :param ttl: TTL for newly created records
    :param force: Re-send unchanged records as updates
    :param log: Logger to report operations on. Defaults to the provider's.
    :return: The addresses applied in this pass (refreshed, updated or
             created, in that order). Deletions are not included. Empty if
             the provider already matched.
    :raises ProviderError: if a provider operation fails
    :raises ValueError: if the inputs mix IPv4 and IPv6
    """
    if log is None:
        log = provider.log
    ops = plan(existing, desired, force)
    applied: List[Address] = []

    for record in ops.refreshes:
        log.info("Force updating record %s", record)
        provider.update_record(record, record.address)
        applied.append(record.address)

    for record, address in ops.updates:
        log.info("Updating record %s to %s", record, address)
        provider.update_record(record, address)
        applied.append(address)

    for record in ops.deletes:
        log.info("Deleting record %s: address no longer current", record)
        provider.delete_record(record)

    for address in ops.creates:
        log.info("Creating record for %s", address)
        provider.create_record(address, ttl)
        applied.append(address)

    if not ops:
        log.info("Records already up to date, nothing to do")
    return applied
