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

"""Tools for splitting a DNS name into host part and zone part"""

import os
import os.path
from typing import Tuple

import tldextract


class ZoneSplitter:
    """A utility to split DNS names into host part and zone part using the
    `Public Suffix List`_. The list is fetched on first use and cached in the
    data directory.

    .. _Public Suffix List: https://publicsuffix.org/

    :param datadir: The data directory configured for ddnsync
    """

    def __init__(self, datadir: str):
        self._tld_cache_dir: str = os.path.join(datadir, 'tldextract')
        self._extract_func = tldextract.TLDExtract(
            cache_dir=self._tld_cache_dir,
            include_psl_private_domains=True,
        )

    def split(self, domain: str) -> Tuple[str, str]:
        """Split a DNS name into host part and zone part

        :param domain: The FQDN to split. A trailing dot is ignored.
        :return: A tuple with the two parts. The host part is empty if the
                 FQDN is the apex of its zone.
        :raises OSError: if the cache directory could not be created
        """
        os.makedirs(self._tld_cache_dir, exist_ok=True)
        result = self._extract_func(domain.rstrip('.'))
        zone = '.'.join(part for part in (result.domain, result.suffix)
                        if part != '')
        return (result.subdomain, zone)
