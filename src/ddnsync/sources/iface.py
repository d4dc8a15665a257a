"""ddnsync address source that reads the addresses assigned to a local
interface"""

from ..configuration import get_bool
from ..exceptions import ConfigError, SourceError
from ..util import get_iface_addrs
from .source import BaseSource


class IFaceSource(BaseSource):
    """ddnsync address source that reads the addresses assigned to a local
    interface"""

    def __init__(self, name, config):
        super().__init__(name, config)

        # Interface to get addresses from
        try:
            self.iface = config.get('iface') or config['name']
        except KeyError:
            self.log.critical("'iface' config option is required")
            raise ConfigError(f"{self.name} source requires 'iface' config "
                              "option") from None

        # Allow private addresses: By default, addresses in private IP space
        # (192.168.0.0/16, 10.0.0.0/8, fc00::/7, 2001:db8::/32, etc.) are
        # ignored. If this is set to 'true', 'on', or 'yes', they are returned
        # as well, after any non-private addresses. Link-local addresses are
        # always ignored.
        try:
            self.allow_private = get_bool(config, 'allow_private', 'no',
                                          f"{self.name} source")
        except ConfigError:
            self.log.critical("'allow_private' config option must be "
                              "boolean")
            raise

    def get_addresses(self, family):
        self.log.info("Checking %s addresses on %s", family, self.iface)
        try:
            addresses = get_iface_addrs(self.iface, family,
                                        allow_private=self.allow_private)
        except ValueError:
            self.log.error("Interface %s does not exist", self.iface)
            raise SourceError(f"Interface {self.iface} does not exist"
                              ) from None
        if not addresses:
            self.log.warning("Interface %s has no usable %s address",
                             self.iface, family)
            raise SourceError(f"Interface {self.iface} has no usable {family} "
                              "address")
        return addresses
