"""ddnsync provider for the GoDaddy v1 domains API"""

import dataclasses
from json import JSONDecodeError
from typing import List, Optional, Tuple

import requests

from ..exceptions import ConfigError, ProviderError
from ..family import Family, parse_address
from ..util import ZoneSplitter, family_session
from .provider import BaseProvider, Record


@dataclasses.dataclass(frozen=True, eq=False)
class GodaddyRecord(Record):
    """A value of a GoDaddy A or AAAA record set"""

    ttl: int = 600


class GodaddyProvider(BaseProvider):
    """ddnsync provider for the GoDaddy v1 domains API.

    GoDaddy manages records as sets of values per name and type, with no
    per-value identifier. Each value is exposed as its own record, and updates
    and deletes rewrite the whole set so the other values are kept. The API
    does not support IPv6 connections, so all requests go over IPv4.

    :param name: Name of the provider (from config section heading)
    :param config: Dict of config options for this provider
    """

    def __init__(self, name, config):
        super().__init__(name, config)

        try:
            self.api_key = config['api_key']
            self.secret = config['secret']
        except KeyError as e:
            self.log.critical("'%s' config option is required", e.args[0])
            raise ConfigError(f"{self.name} provider requires '{e.args[0]}' "
                              "config option") from None

        # The DNS name whose records are managed
        try:
            self.dns = config['dns'].rstrip('.')
        except KeyError:
            self.log.critical("'dns' config option is required")
            raise ConfigError(f"{self.name} provider requires 'dns' config "
                              "option") from None

        # Registered domain the name belongs to. Normally worked out from the
        # Public Suffix List, but can be given explicitly.
        self.domain: Optional[str] = config.get('domain')
        self._datadir = config.get('datadir')

        # API endpoint. Use https://api.ote-godaddy.com for the test
        # environment.
        self.endpoint = config.get('endpoint', 'https://api.godaddy.com')

    def _split(self) -> Tuple[str, str]:
        """Get the (host, domain) of the managed name, with ``@`` for the
        apex"""
        if self.domain is not None:
            domain = self.domain.rstrip('.')
            host = self.dns[:-len(domain)].rstrip('.')
        elif self._datadir is None:
            raise ProviderError(f"No domain configured for {self.name} "
                                "provider and no data directory to cache the "
                                "Public Suffix List")
        else:
            try:
                host, domain = ZoneSplitter(self._datadir).split(self.dns)
            except OSError as e:
                raise ProviderError(f"Could not determine domain of "
                                    f"{self.dns}") from e
        return (host or '@', domain)

    def _api_request(self, method, api, data=None):
        """Issue a GoDaddy API request over IPv4.

        :param method: HTTP method
        :param api: Specific API to access, e.g. ``'/v1/domains/x/records'``
        :param data: A JSON-serializable object to become the request body
        :return: The decoded JSON response, or ``None`` if the body is empty
        :raises ProviderError: if the request failed for any reason
        """
        headers = {'Authorization': f"sso-key {self.api_key}:{self.secret}"}
        url = self.endpoint + api
        with family_session(Family.V4) as session:
            try:
                r = session.request(method, url, headers=headers, json=data,
                                    timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                self.log.error("Could not %s %s: %s", method, url, e)
                raise ProviderError(f"Could not {method} {api}") from e
        try:
            r.raise_for_status()
        except requests.exceptions.HTTPError as e:
            self.log.error("Received HTTP %d when trying to %s %s:\n%s",
                           r.status_code, method, url, r.text)
            raise ProviderError(f"HTTP {r.status_code} for {method} {api}"
                                ) from e
        if not r.text.strip():
            return None
        try:
            return r.json()
        except (JSONDecodeError, ValueError):
            self.log.error("Could not parse JSON response from %s %s:\n%s",
                           method, url, r.text)
            raise ProviderError(f"Invalid response from {method} {api}"
                                ) from None

    def _fetch(self, family: Family) -> List[GodaddyRecord]:
        host, domain = self._split()
        api = f'/v1/domains/{domain}/records/{family.record_type}/{host}'
        response = self._api_request('GET', api)
        records = []
        try:
            for rec in response or []:
                address = parse_address(rec['data'])
                if not family.matches(address):
                    continue
                records.append(GodaddyRecord(
                    f"{family.record_type}/{host}/{address.compressed}",
                    address, int(rec.get('ttl', 600)),
                ))
        except (KeyError, TypeError, AttributeError):
            self.log.error("Unknown response structure from %s: %s",
                           api, response)
            raise ProviderError(f"Unknown response structure from {api}"
                                ) from None
        except ValueError:
            self.log.error("Invalid IP from %s: %s", api, response)
            raise ProviderError(f"Invalid IP from {api}") from None
        return records

    def _put(self, family: Family, records: List[GodaddyRecord]):
        """Replace the whole record set of the given family"""
        host, domain = self._split()
        api = f'/v1/domains/{domain}/records/{family.record_type}/{host}'
        if records:
            self._api_request('PUT', api, data=[
                {'data': r.address.compressed, 'ttl': r.ttl} for r in records
            ])
        else:
            self._api_request('DELETE', api)

    def list_records(self, family):
        return self._fetch(family)

    def create_record(self, address, ttl):
        host, domain = self._split()
        self._api_request('PATCH', f'/v1/domains/{domain}/records', data=[{
            'data': address.compressed,
            'name': host,
            'type': Family.of(address).record_type,
            'ttl': ttl,
        }])

    def update_record(self, record, address):
        family = Family.of(address)
        current = self._fetch(family)
        if record not in current:
            raise ProviderError(f"Record {record} no longer exists")
        replaced = [dataclasses.replace(r, address=address) if r == record
                    else r for r in current]
        self._put(family, list(dict.fromkeys(replaced)))

    def delete_record(self, record):
        current = self._fetch(record.family)
        if record not in current:
            raise ProviderError(f"Record {record} no longer exists")
        self._put(record.family, [r for r in current if r != record])
