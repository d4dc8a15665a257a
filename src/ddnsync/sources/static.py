"""ddnsync address source that returns statically-configured addresses"""

import ipaddress

from ..configuration import get_list
from ..exceptions import ConfigError, SourceError
from ..family import Family
from .source import BaseSource


class StaticSource(BaseSource):
    """ddnsync address source that returns statically-configured addresses"""

    def __init__(self, name, config):
        super().__init__(name, config)

        # Static IPv4 and IPv6 addresses to use. Either option may hold more
        # than one address, separated by commas or whitespace.
        try:
            self.ipv4s = [ipaddress.IPv4Address(a)
                          for a in get_list(config, 'ipv4')]
        except ValueError:
            self.log.critical("'ipv4' option contains an invalid IPv4 "
                              "address")
            raise ConfigError(f"{self.name} source contains invalid address "
                              "for 'ipv4' option") from None
        try:
            self.ipv6s = [ipaddress.IPv6Address(a)
                          for a in get_list(config, 'ipv6')]
        except ValueError:
            self.log.critical("'ipv6' option contains an invalid IPv6 "
                              "address")
            raise ConfigError(f"{self.name} source contains invalid address "
                              "for 'ipv6' option") from None

        if not (self.ipv4s or self.ipv6s):
            self.log.critical("No 'ipv4' or 'ipv6' option")
            raise ConfigError(f"{self.name} source requires either an IPv4 "
                              "or IPv6 address configured")

    def get_addresses(self, family):
        addresses = self.ipv4s if family is Family.V4 else self.ipv6s
        if not addresses:
            raise SourceError(f"{self.name} source has no {family} address "
                              "configured")
        return list(addresses)
