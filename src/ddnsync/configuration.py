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

"""ddnsync configuration parsing"""

import configparser
import os.path
import pathlib
from importlib.metadata import version
from typing import Callable, Dict, List, Optional, TextIO, Union

from .exceptions import ConfigError
from .family import parse_families


USER_AGENT = f"ddnsync/{version('ddnsync')}"

DEFAULT_DATA_DIR = '/var/lib/ddnsync'

#: Defaults for the ``[ddnsync]`` section
MAIN_DEFAULTS = {
    'datadir': DEFAULT_DATA_DIR,
    'logfile': 'syslog',
    'task_startup_interval': '5',
    'task_retry_timeout': '10',
    'task_retry_jitter': '5',
}

#: Defaults for ``[task.<name>]`` sections
TASK_DEFAULTS = {
    'interval': '60',
    'ttl': '300',
    'force': 'false',
    'notifiers': '',
}

TRUE_VALUES = ('true', 'on', 'yes', '1')
FALSE_VALUES = ('false', 'off', 'no', '0')

ComponentConfigs = Dict[str, Dict[str, str]]
TypeValidator = Callable[[Optional[str], str], bool]


def get_bool(config: Dict[str, str], option: str, default: str,
             owner: str) -> bool:
    """Read a boolean option from a config dict

    :param config: The config dict
    :param option: Name of the option
    :param default: Value to use when the option is absent
    :param owner: Description of the config section, for error messages
    :raises ConfigError: if the value is not a recognized boolean
    """
    value = config.get(option, default).strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigError(f"'{option}' option for {owner} must be boolean "
                      "(true/yes/on/1/false/no/off/0)")


def get_number(config: Dict[str, str], option: str, default: str,
               owner: str, minimum: float = 0, integer: bool = False,
               ) -> Union[int, float]:
    """Read a numeric option from a config dict

    :param config: The config dict
    :param option: Name of the option
    :param default: Value to use when the option is absent
    :param owner: Description of the config section, for error messages
    :param minimum: Smallest allowed value (inclusive)
    :param integer: Whether the value must be an integer
    :raises ConfigError: if the value is not a number or is out of range
    """
    kind = "an integer" if integer else "a number"
    try:
        value: Union[int, float]
        if integer:
            value = int(config.get(option, default))
        else:
            value = float(config.get(option, default))
    except ValueError:
        raise ConfigError(f"'{option}' option for {owner} must be {kind} "
                          f">= {minimum}") from None
    if value < minimum:
        raise ConfigError(f"'{option}' option for {owner} must be {kind} "
                          f">= {minimum}")
    return value


def get_list(config: Dict[str, str], option: str) -> List[str]:
    """Read a list option (comma and/or whitespace separated)"""
    return config.get(option, '').replace(',', ' ').split()


class Config:
    """ddnsync configuration data"""

    def __init__(self,
                 main: Dict[str, str],
                 sources: ComponentConfigs,
                 providers: ComponentConfigs,
                 notifiers: ComponentConfigs,
                 tasks: ComponentConfigs):
        #: Dict containing global configuration (from the ``[ddnsync]``
        #: section)
        self._main: Dict[str, str] = main

        #: Address source configurations (from ``[source.<name>]`` sections)
        self._sources: ComponentConfigs = sources

        #: Provider configurations (from ``[provider.<name>]`` sections)
        self._providers: ComponentConfigs = providers

        #: Notifier configurations (from ``[notifier.<name>]`` sections)
        self._notifiers: ComponentConfigs = notifiers

        #: Task configurations (from ``[task.<name>]`` sections), in the
        #: order they appear in the file
        self._tasks: ComponentConfigs = tasks

        #: Whether the config has been finalized yet
        self._finalized = False

    def _check_finalized(self):
        """Raise an exception if the config is not finalized"""
        if not self._finalized:
            raise ConfigError("Tried to access config before it was finalized")

    @property
    def main(self) -> Dict[str, str]:
        self._check_finalized()
        return self._main

    @property
    def sources(self) -> ComponentConfigs:
        self._check_finalized()
        return self._sources

    @property
    def providers(self) -> ComponentConfigs:
        self._check_finalized()
        return self._providers

    @property
    def notifiers(self) -> ComponentConfigs:
        self._check_finalized()
        return self._notifiers

    @property
    def tasks(self) -> ComponentConfigs:
        self._check_finalized()
        return self._tasks

    @property
    def logfile(self) -> str:
        """Where to send logs: ``syslog``, ``stderr``, or a file path. Can be
        read and set before the config is finalized."""
        return self._main.get('logfile', MAIN_DEFAULTS['logfile'])

    @logfile.setter
    def logfile(self, value: str):
        self._main['logfile'] = value

    def _fill_defaults(self):
        """Fill in defaults if they are not yet set and validate the global
        options"""
        for option, default in MAIN_DEFAULTS.items():
            self._main.setdefault(option, default)
        if not os.path.isabs(self._main['datadir']):
            raise ConfigError("Config option 'datadir' cannot be a relative "
                              "path")
        for option in ('task_startup_interval', 'task_retry_timeout',
                       'task_retry_jitter'):
            get_number(self._main, option, MAIN_DEFAULTS[option],
                       'the main section')

        for task_config in self._tasks.values():
            for option, default in TASK_DEFAULTS.items():
                task_config.setdefault(option, default)

    def _validate_types(
        self,
        kind: str,
        config_dict: ComponentConfigs,
        validate_type: TypeValidator,
    ) -> None:
        """Verify that source, provider, or notifier types are assigned and
        that they are valid

        :param kind: ``'Source'``, ``'Provider'``, or ``'Notifier'``
        :param config_dict: The config dict for those items
        :param validate_type: A callable that validates the type names

        :raises ConfigError: if any type is missing or invalid
        """
        for name, config in config_dict.items():
            module = config.get('module')
            try:
                type_ = config['type']
            except KeyError:
                raise ConfigError(f"{kind} {name} requires a type") from None
            exists = validate_type(module, type_)
            if not exists and module is None:
                raise ConfigError(f"No built-in {kind.lower()} of type "
                                  f"{type_}")
            elif not exists:
                raise ConfigError(f"{kind} module or class {module}.{type_} "
                                  "does not exist")

    def _validate_tasks(self) -> None:
        """Check each task's options and that the source, provider, and
        notifiers it references are defined

        :raises ConfigError: if any task is invalid
        """
        for name, config in self._tasks.items():
            owner = f"task {name}"
            try:
                parse_families(config['family'])
            except KeyError:
                raise ConfigError(f"Task {name} requires a family") from None
            except ValueError:
                raise ConfigError(f"Task {name} has unknown family "
                                  f"{config['family']} (must be ipv4, ipv6, "
                                  "or all)") from None

            get_number(config, 'interval', TASK_DEFAULTS['interval'], owner,
                       minimum=1)
            get_number(config, 'ttl', TASK_DEFAULTS['ttl'], owner,
                       minimum=1, integer=True)
            get_bool(config, 'force', TASK_DEFAULTS['force'], owner)

            for option, defined in (('source', self._sources),
                                    ('provider', self._providers)):
                try:
                    ref = config[option]
                except KeyError:
                    raise ConfigError(f"Task {name} requires a {option}"
                                      ) from None
                if ref not in defined:
                    raise ConfigError(f"{option.capitalize()} {ref} (used by "
                                      f"task {name}) does not exist")

            for notifier in get_list(config, 'notifiers'):
                if notifier not in self._notifiers:
                    raise ConfigError(f"Notifier {notifier} (used by task "
                                      f"{name}) does not exist")

    def _copy_globals(self) -> None:
        """Copy relevant global (e.g. ``[ddnsync]``) config options into
        component configs. For example, the data directory."""
        for configs in (self._sources, self._providers, self._notifiers):
            for config in configs.values():
                config['datadir'] = self._main['datadir']

    def finalize(self,
                 validate_source_type: TypeValidator,
                 validate_provider_type: TypeValidator,
                 validate_notifier_type: TypeValidator):
        """Used by :class:`~ddnsync.DDNSManager` to finalize the
        configuration. This consists of validating the component types and
        task references, filling default values, and doing some
        normalization.

        :param validate_source_type: A callable to check if a source type is
                                     valid. First parameter is a module name,
                                     or ``None`` if it's a built-in type.
                                     Second parameter is a class name or
                                     built-in type name.
        :param validate_provider_type: Likewise, for providers
        :param validate_notifier_type: Likewise, for notifiers
        :raises ConfigError: if the configuration is invalid
        """
        if self._finalized:
            return

        self._fill_defaults()
        self._validate_types('Source', self._sources, validate_source_type)
        self._validate_types('Provider', self._providers,
                             validate_provider_type)
        self._validate_types('Notifier', self._notifiers,
                             validate_notifier_type)
        self._validate_tasks()
        self._copy_globals()

        self._finalized = True


def _process_config(config: configparser.ConfigParser) -> Config:
    """Process the given :class:`~configparser.ConfigParser` into a
    :class:`Config`

    :param config: The configuration to process
    :raises ConfigError: if the configuration is invalid
    :returns: the processed configuration
    """
    # Note: ConfigParser already handles catching duplicate sections and
    #   duplicate keys

    main: Dict[str, str] = dict()
    sections: Dict[str, ComponentConfigs] = {
        'source': dict(),
        'provider': dict(),
        'notifier': dict(),
        'task': dict(),
    }

    for section in config.sections():
        if section == 'ddnsync':
            main.update(config[section])
            continue

        kind, _, name = section.partition('.')
        if kind not in sections or name == '':
            raise ConfigError("Config section %s is not a source, provider, "
                              "notifier, or task section" % section)
        sections[kind][name] = dict(config[section])

    return Config(main, sections['source'], sections['provider'],
                  sections['notifier'], sections['task'])


def read_file_from_path(filename: Union[str, pathlib.Path]) -> Config:
    """Read configuration from the named file or :class:`~pathlib.Path`

    :param filename: Filename or path to read from
    :raises ConfigError: if the config file cannot be read or is invalid
    :return: A :class:`Config` ready to be passed to
             :class:`~ddnsync.DDNSManager`
    """
    try:
        with open(filename, 'r', encoding='utf-8') as f:
            return read_file(f)
    except OSError as e:
        raise ConfigError("Could not read config file %s: %s" %
                          (filename, e.strerror)) from e


def read_file(configfile: TextIO) -> Config:
    """Read configuration in from the given file

    :param configfile: Filelike object to read the config from
    :raises ConfigError: if the config file cannot be read or is invalid
    :return: A :class:`Config` ready to be passed to
             :class:`~ddnsync.DDNSManager`
    """
    config = configparser.ConfigParser(interpolation=None)
    try:
        config.read_file(configfile)
    except configparser.Error as e:
        raise ConfigError("Error in config file: %s" % e) from e
    except OSError as e:
        raise ConfigError("Could not read config file: %s" % e.strerror
                          ) from e
    except UnicodeDecodeError as e:
        raise ConfigError("Config file is not valid text: %s" % e) from e

    return _process_config(config)
