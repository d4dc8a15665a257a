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

"""Requests sessions whose connections are bound to a local address, which
also restricts them to that address's family"""

from typing import Optional

import requests
from requests.adapters import HTTPAdapter

from ..configuration import USER_AGENT
from ..family import Family


class SourceAddressAdapter(HTTPAdapter):
    """Transport adapter that binds every outgoing connection to the given
    local address. Binding to ``0.0.0.0`` allows only IPv4 connections and
    binding to ``::`` allows only IPv6 connections.

    :param source_address: The local address to bind to
    """

    def __init__(self, source_address: str, **kwargs):
        self.source_address = (source_address, 0)
        super().__init__(**kwargs)

    def init_poolmanager(self, connections, maxsize, block=False,
                         **pool_kwargs):
        pool_kwargs['source_address'] = self.source_address
        super().init_poolmanager(connections, maxsize, block, **pool_kwargs)

    def proxy_manager_for(self, proxy, **proxy_kwargs):
        proxy_kwargs['source_address'] = self.source_address
        return super().proxy_manager_for(proxy, **proxy_kwargs)


def bound_session(local_address: Optional[str] = None) -> requests.Session:
    """Create a :class:`requests.Session` with the ddnsync User-Agent,
    optionally bound to a local address. The caller should close it (it can be
    used as a context manager).

    :param local_address: Local address to bind connections to, or ``None``
    """
    session = requests.Session()
    session.headers['User-Agent'] = USER_AGENT
    if local_address is not None:
        adapter = SourceAddressAdapter(local_address)
        session.mount('http://', adapter)
        session.mount('https://', adapter)
    return session


def family_session(family: Family) -> requests.Session:
    """Create a :class:`requests.Session` that only connects over the given
    address family

    :param family: The family to restrict connections to
    """
    return bound_session(family.unspecified)
