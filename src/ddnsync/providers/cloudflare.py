"""ddnsync provider for the Cloudflare v4 API"""

import threading
from json import JSONDecodeError
from typing import Optional

import requests

from ..configuration import USER_AGENT
from ..exceptions import ConfigError, ProviderError
from ..family import Family, parse_address
from ..util import ZoneSplitter
from .provider import BaseProvider, Record


class CloudflareProvider(BaseProvider):
    """ddnsync provider for the Cloudflare v4 API

    :param name: Name of the provider (from config section heading)
    :param config: Dict of config options for this provider
    """

    #: Records fetched per page when listing
    PAGE_SIZE = 50

    def __init__(self, name, config):
        super().__init__(name, config)

        # Cloudflare API token. Needs Zone:Read and DNS:Edit permissions.
        try:
            self.token = config['token']
        except KeyError:
            self.log.critical("'token' config option is required")
            raise ConfigError(f"{self.name} provider requires 'token' config "
                              "option") from None

        # The DNS name whose records are managed
        try:
            self.dns = config['dns'].rstrip('.')
        except KeyError:
            self.log.critical("'dns' config option is required")
            raise ConfigError(f"{self.name} provider requires 'dns' config "
                              "option") from None

        # Zone the name belongs to. Normally worked out from the Public Suffix
        # List, but can be given explicitly.
        self.zone: Optional[str] = config.get('zone')
        self._datadir = config.get('datadir')

        # API endpoint. Normally not required.
        self.endpoint = config.get('endpoint',
                                   'https://api.cloudflare.com/client/v4')

        self._zone_id: Optional[str] = None
        self._zone_lock = threading.Lock()

    def _api_request(self, method, api, params=None, data=None):
        """Issue a Cloudflare API request.

        :param method: HTTP method, e.g. ``'GET'`` or ``'PATCH'``
        :param api: Specific API to access, e.g. ``'/zones'``
        :param params: A dict of URL parameters
        :param data: A JSON-serializable dict to become the request body

        :return: The ``result`` member of the response
        :raises ProviderError: if the request failed for any reason
        """
        headers = {'Authorization': "Bearer " + self.token,
                   'User-Agent': USER_AGENT}
        url = self.endpoint + api
        try:
            r = requests.request(method, url, headers=headers, params=params,
                                 json=data, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            self.log.error("Could not %s %s: %s", method, url, e)
            raise ProviderError(f"Could not {method} {api}") from e

        try:
            obj = r.json()
        except (JSONDecodeError, ValueError):
            self.log.error("Could not parse JSON response from %s %s (HTTP "
                           "%d):\n%s", method, url, r.status_code, r.text)
            raise ProviderError(f"Invalid response from {method} {api}"
                                ) from None

        if not isinstance(obj, dict):
            self.log.error("Unknown response structure from %s %s:\n%s",
                           method, url, r.text)
            raise ProviderError(f"Invalid response from {method} {api}")
        if not r.ok or not obj.get('success', False):
            self.log.error("Received HTTP %d when trying to %s %s: %s",
                           r.status_code, method, url,
                           obj.get('errors') or r.text)
            raise ProviderError(f"Cloudflare API error for {method} {api}")
        return obj.get('result')

    def _zone_name(self) -> str:
        if self.zone is not None:
            return self.zone
        if self._datadir is None:
            raise ProviderError(f"No zone configured for {self.name} "
                                "provider and no data directory to cache the "
                                "Public Suffix List")
        try:
            _, zone = ZoneSplitter(self._datadir).split(self.dns)
        except OSError as e:
            raise ProviderError(f"Could not determine zone of {self.dns}"
                                ) from e
        return zone

    def zone_id(self) -> str:
        """Look up the identifier of the zone holding the managed name. The
        result is cached after the first successful lookup.

        :raises ProviderError: if the zone could not be found
        """
        with self._zone_lock:
            if self._zone_id is not None:
                return self._zone_id
        zone = self._zone_name()
        self.log.debug("Zone name is %s", zone)
        result = self._api_request('GET', '/zones',
                                   params={'name': zone, 'status': 'active'})
        if not result:
            self.log.error("Cannot find zone %s", zone)
            raise ProviderError(f"Cannot find zone {zone}")
        if len(result) > 1:
            self.log.warning("More than one zone named %s, using the first",
                             zone)
        try:
            zone_id = result[0]['id']
        except (KeyError, TypeError):
            raise ProviderError("Unknown response structure from /zones"
                                ) from None
        with self._zone_lock:
            self._zone_id = zone_id
        return zone_id

    def list_records(self, family):
        api = f'/zones/{self.zone_id()}/dns_records'
        records = []
        page = 1
        while True:
            result = self._api_request('GET', api, params={
                'name': self.dns,
                'type': family.record_type,
                'page': page,
                'per_page': self.PAGE_SIZE,
            })
            try:
                for rec in result:
                    if rec['type'] != family.record_type:
                        continue
                    address = parse_address(rec['content'])
                    if not family.matches(address):
                        continue
                    records.append(Record(rec['id'], address))
            except (KeyError, TypeError):
                self.log.error("Unknown response structure from %s: %s",
                               api, result)
                raise ProviderError(f"Unknown response structure from {api}"
                                    ) from None
            except ValueError:
                self.log.error("Invalid IP from %s: %s", api, result)
                raise ProviderError(f"Invalid IP from {api}") from None
            if len(result) < self.PAGE_SIZE:
                break
            page += 1
        return records

    def create_record(self, address, ttl):
        self._api_request('POST', f'/zones/{self.zone_id()}/dns_records',
                          data={
                              'type': Family.of(address).record_type,
                              'name': self.dns,
                              'content': address.compressed,
                              'ttl': ttl,
                          })

    def update_record(self, record, address):
        self._api_request(
            'PATCH', f'/zones/{self.zone_id()}/dns_records/{record.id}',
            data={
                'type': Family.of(address).record_type,
                'name': self.dns,
                'content': address.compressed,
            }
        )

    def delete_record(self, record):
        self._api_request(
            'DELETE', f'/zones/{self.zone_id()}/dns_records/{record.id}'
        )
