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


"""Look up the addresses assigned to a local network interface"""

from typing import List

import netifaces

from ..family import Address, Family, parse_address

NETIFACES_FAMILY = {
    Family.V4: netifaces.AF_INET,
    Family.V6: netifaces.AF_INET6,
}


def get_iface_addrs(if_name: str, family: Family,
                    allow_private: bool = False) -> List[Address]:
    """Get the addresses of one family assigned to the named interface, in
    the order the system reports them. Loopback and link-local addresses are
    never returned. Private addresses (including unique local and
    documentation ranges) follow the public ones when allowed.

    :param if_name: Name of the interface
    :param family: Which family of addresses to get
    :param allow_private: Whether to include private addresses
    :raises ValueError: if there is no interface with the given name
    """
    entries = netifaces.ifaddresses(if_name).get(NETIFACES_FAMILY[family], [])

    public: List[Address] = []
    private: List[Address] = []
    for entry in entries:
        address = parse_address(entry['addr'])
        if address.is_loopback or address.is_link_local:
            continue
        if address.is_private:
            private.append(address)
        else:
            public.append(address)

    if allow_private:
        return public + private
    return public
