"""ddnsync address source that checks the IP address using a
what-is-my-ip-style website"""

import re
from json import JSONDecodeError

import requests

from ..configuration import get_number
from ..exceptions import ConfigError, SourceError
from ..family import Family, parse_address
from ..util import family_session
from .source import BaseSource


class WebSource(BaseSource):
    """ddnsync address source that checks the IP address using a
    what-is-my-ip-style website. Each family is requested over a connection
    of that family."""

    def __init__(self, name, config):
        super().__init__(name, config)

        # URL to request IP addresses from. Normally, both IPv4 and IPv6
        # addresses will be requested from the same URL (by issuing separate
        # requests over IPv4 and IPv6). If a different URL should be used for
        # IPv6, specify it with "url6=".
        try:
            self.url4 = config['url']
        except KeyError:
            self.log.critical("'url' config option is required")
            raise ConfigError(f"{self.name} source requires 'url' config "
                              "option") from None
        self.url6 = config.get('url6', self.url4)

        # Timeout to use waiting for a response from the HTTP server, in
        # seconds
        try:
            self.timeout = get_number(config, 'timeout', '10',
                                      f"{self.name} source")
        except ConfigError:
            self.log.critical("'timeout' config option must be a number")
            raise

        # How to find the address in the response body:
        #   text                      the whole body (default)
        #   regex:<group>:<pattern>   a capture group of a regular expression
        #   json:<key>[.<key>...]     a field of a JSON object
        self.extract = config.get('extract', 'text').strip()
        self._extract_func = self._make_extractor(self.extract)

    def _make_extractor(self, extract):
        """Build the function that pulls the address text out of a response

        :raises ConfigError: if the extraction method is invalid
        """
        method, _, arg = extract.partition(':')
        if method == 'text' and arg == '':
            return lambda r: r.text
        if method == 'regex':
            group, sep, pattern = arg.partition(':')
            try:
                group = int(group)
                regex = re.compile(pattern)
            except (ValueError, re.error):
                group = None
            if not sep or group is None or group > regex.groups:
                self.log.critical("'extract' regex must be in the form "
                                  "regex:<group>:<pattern>")
                raise ConfigError(f"Invalid 'extract' option for {self.name} "
                                  "source")
            return lambda r: self._extract_regex(regex, group, r)
        if method == 'json' and arg != '':
            return lambda r: self._extract_json(arg.split('.'), r)
        self.log.critical("'extract' must be text, regex:<group>:<pattern>, "
                          "or json:<path>")
        raise ConfigError(f"Invalid 'extract' option for {self.name} source")

    @staticmethod
    def _extract_regex(regex, group, response):
        match = regex.search(response.text)
        if match is None or match.group(group) is None:
            raise SourceError("Response did not match the extraction pattern")
        return match.group(group)

    @staticmethod
    def _extract_json(path, response):
        try:
            value = response.json()
        except (JSONDecodeError, ValueError):
            raise SourceError("Response was not valid JSON") from None
        for key in path:
            if isinstance(value, list) and key.isdigit():
                try:
                    value = value[int(key)]
                except IndexError:
                    raise SourceError(f"No field {'.'.join(path)} in "
                                      "response") from None
            elif isinstance(value, dict) and key in value:
                value = value[key]
            else:
                raise SourceError(f"No field {'.'.join(path)} in response")
        if not isinstance(value, str):
            raise SourceError(f"Field {'.'.join(path)} is not a string")
        return value

    def get_addresses(self, family):
        url = self.url4 if family is Family.V4 else self.url6
        self.log.info("Checking %s address from %s", family, url)

        with family_session(family) as session:
            try:
                r = session.get(url, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                self.log.error("Could not get %s address from %s: %s",
                               family, url, e)
                raise SourceError(f"Could not get {family} address for "
                                  f"{self.name} source") from e
        try:
            r.raise_for_status()
        except requests.exceptions.HTTPError as e:
            self.log.error("Received HTTP %d from %s: %s",
                           r.status_code, url, r.text)
            raise SourceError(f"HTTP error for {family} in {self.name} "
                              "source") from e

        text = self._extract_func(r)
        try:
            address = parse_address(text)
        except ValueError:
            self.log.error('Response from %s did not contain a valid '
                           'address: "%s"', url, text)
            raise SourceError(f"Invalid address from {self.name} source"
                              ) from None
        return [address]
