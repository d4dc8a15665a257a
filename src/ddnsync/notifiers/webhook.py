"""ddnsync notifier that POSTs the new addresses to a webhook as JSON"""

import ipaddress

import requests

from ..configuration import get_number
from ..exceptions import ConfigError, NotifyError
from ..util import bound_session
from .notifier import BaseNotifier


class WebhookNotifier(BaseNotifier):
    """ddnsync notifier that POSTs the new addresses to a URL. The body is
    a JSON array holding one object with ``ipv4_list`` and ``ipv6_list``
    members.

    :param name: Name of the notifier (from config section heading)
    :param config: Dict of config options for this notifier
    """

    def __init__(self, name, config):
        super().__init__(name, config)

        try:
            self.url = config['url']
        except KeyError:
            self.log.critical("'url' config option is required")
            raise ConfigError(f"{self.name} notifier requires 'url' config "
                              "option") from None

        # Value for the Authorization header, sent as-is
        self.authorization = config.get('authorization_header')

        # Local address to send the request from. This also determines the
        # address family used.
        self.local_address = config.get('local_address')
        if self.local_address is not None:
            try:
                ipaddress.ip_address(self.local_address)
            except ValueError:
                self.log.critical("'local_address' config option must be an "
                                  "IP address")
                raise ConfigError(f"'local_address' option for {self.name} "
                                  "notifier must be an IP address") from None

        try:
            self.timeout = get_number(config, 'timeout', '10',
                                      f"{self.name} notifier")
        except ConfigError:
            self.log.critical("'timeout' config option must be a number")
            raise

    def notify(self, addresses):
        payload = [{
            'ipv4_list': [a.compressed for a in addresses if a.version == 4],
            'ipv6_list': [a.compressed for a in addresses if a.version == 6],
        }]
        headers = {}
        if self.authorization is not None:
            headers['Authorization'] = self.authorization

        self.log.info("Posting %d address(es) to %s", len(addresses),
                      self.url)
        with bound_session(self.local_address) as session:
            try:
                r = session.post(self.url, json=payload, headers=headers,
                                 timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                self.log.error("Could not post to %s: %s", self.url, e)
                raise NotifyError(f"Could not post to webhook for {self.name} "
                                  "notifier") from e
        try:
            r.raise_for_status()
        except requests.exceptions.HTTPError as e:
            self.log.error("Received HTTP %d from %s: %s", r.status_code,
                           self.url, r.text)
            raise NotifyError(f"Webhook for {self.name} notifier returned "
                              f"HTTP {r.status_code}") from e
