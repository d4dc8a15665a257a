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

"""Address families and the address type used throughout ddnsync"""

import enum
import ipaddress
from typing import List, Union

Address = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class Family(enum.Enum):
    """An IP address family. Reconciliation never mixes the two."""

    V4 = 4
    V6 = 6

    def __str__(self):
        return f"IPv{self.value}"

    @classmethod
    def of(cls, address: Address) -> 'Family':
        """Get the family of the given address"""
        return cls(address.version)

    def matches(self, address: Address) -> bool:
        """Check whether the given address belongs to this family"""
        return address.version == self.value

    @property
    def record_type(self) -> str:
        """The DNS record type holding addresses of this family"""
        return 'A' if self is Family.V4 else 'AAAA'

    @property
    def unspecified(self) -> str:
        """The unspecified address (for binding to any local address of this
        family)"""
        return '0.0.0.0' if self is Family.V4 else '::'


#: Family selector values accepted in task configuration
FAMILY_SELECTORS = {
    'ipv4': [Family.V4],
    'v4': [Family.V4],
    'ipv6': [Family.V6],
    'v6': [Family.V6],
    'all': [Family.V4, Family.V6],
    'both': [Family.V4, Family.V6],
}


def parse_families(selector: str) -> List[Family]:
    """Translate a family selector from the config into a list of families

    :param selector: One of ``ipv4``, ``ipv6``, ``all`` (or the aliases
                     ``v4``, ``v6``, ``both``), case insensitive
    :raises ValueError: if the selector is not recognized
    """
    try:
        return list(FAMILY_SELECTORS[selector.strip().lower()])
    except KeyError:
        raise ValueError(f"unknown family {selector}") from None


def parse_address(text: str) -> Address:
    """Parse an IPv4 or IPv6 address, dropping any ``%scope`` suffix

    :raises ValueError: if the text is not a valid address
    """
    return ipaddress.ip_address(text.strip().partition('%')[0])
