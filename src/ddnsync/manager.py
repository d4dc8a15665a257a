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

"""DDNS Manager: Initializes sources, providers, notifiers, and tasks and runs
them under a supervisor"""

import importlib
import logging
import threading
from importlib.metadata import entry_points
from typing import Any, Callable, Dict, List, Optional, Tuple, Union, cast

from . import configuration
from . import notifiers
from . import providers
from . import sources
from .configuration import get_bool, get_list, get_number
from .exceptions import ConfigError
from .family import parse_families
from .shutdown import ShutdownCoordinator
from .supervisor import TaskSupervisor
from .task import Task


class DDNSManager:
    """Manages the rest of the ddnsync system. Creates the sources, providers,
    notifiers, and tasks, and runs the tasks under a
    :class:`~ddnsync.TaskSupervisor`.

    :param config: A :class:`~ddnsync.Config` with the configuration to use

    :raises ConfigError: if configuration is not valid
    """

    def __init__(self, config: configuration.Config):
        self.log = logging.getLogger('ddnsync')

        try:
            config.finalize(validate_source_type, validate_provider_type,
                            validate_notifier_type)
        except ConfigError as e:
            self.log.critical("Config error: %s", e)
            raise
        self.config = config

        self.sources: Dict[str, sources.BaseSource] = self._create(
            self.config.sources, sources.sources)
        self.providers: Dict[str, providers.BaseProvider] = self._create(
            self.config.providers, providers.providers)
        self.notifiers: Dict[str, notifiers.BaseNotifier] = self._create(
            self.config.notifiers, notifiers.notifiers)

        #: Tasks, in the order they appear in the config
        self.tasks: List[Task] = self._create_tasks()

        self._warn_unused()

        self._shutdown: Optional[ShutdownCoordinator] = None
        self._thread: Optional[threading.Thread] = None

    @staticmethod
    def _create(configs: Dict[str, Dict[str, str]],
                classes: Dict[Any, Any]) -> Dict[str, Any]:
        """Initialize sources, providers, or notifiers. Assumes their classes
        have been previously imported by the ``validate_*_type``
        functions."""
        created = dict()
        for name, config in configs.items():
            module = config.get('module')
            type_ = config['type']

            if module is None:
                cls = classes[type_]
            else:
                cls = classes[(module, type_)]

            created[name] = cls(name, config)
        return created

    def _create_tasks(self) -> List[Task]:
        """Initialize the tasks. Assumes the config has been validated."""
        tasks = []
        for name, config in self.config.tasks.items():
            owner = f"task {name}"
            tasks.append(Task(
                name,
                parse_families(config['family']),
                get_number(config, 'interval', '60', owner, minimum=1),
                self.sources[config['source']],
                self.providers[config['provider']],
                [self.notifiers[n] for n in get_list(config, 'notifiers')],
                get_number(config, 'ttl', '300', owner, minimum=1,
                           integer=True),
                get_bool(config, 'force', 'false', owner),
            ))
        return tasks

    def _warn_unused(self):
        """Warn about sources, providers, and notifiers no task uses"""
        used = {
            'Source': {t.source.name for t in self.tasks},
            'Provider': {t.provider.name for t in self.tasks},
            'Notifier': {n.name for t in self.tasks for n in t.notifiers},
        }
        for kind, components in (('Source', self.sources),
                                 ('Provider', self.providers),
                                 ('Notifier', self.notifiers)):
            for name in components:
                if name not in used[kind]:
                    self.log.warning("%s %s is not used by any task", kind,
                                     name)

    def make_supervisor(self,
                        shutdown: ShutdownCoordinator) -> TaskSupervisor:
        """Create a :class:`~ddnsync.TaskSupervisor` for the configured
        tasks"""
        main = self.config.main
        return TaskSupervisor(
            self.tasks,
            shutdown,
            get_number(main, 'task_startup_interval', '5', 'the main section'),
            get_number(main, 'task_retry_timeout', '10', 'the main section'),
            get_number(main, 'task_retry_jitter', '5', 'the main section'),
        )

    def start(self, on_exit: Optional[Callable[[], None]] = None) -> None:
        """Start running all tasks. Returns immediately; the tasks keep
        running in background threads.

        :param on_exit: Called from the supervisor thread once the supervisor
                        returns, either after :meth:`stop` or because there
                        were no tasks to run
        """
        self.log.info("Starting all tasks...")
        self._shutdown = ShutdownCoordinator()
        supervisor = self.make_supervisor(self._shutdown)

        def supervise():
            try:
                supervisor.run()
            finally:
                if on_exit is not None:
                    on_exit()

        self._thread = threading.Thread(target=supervise, name='supervisor')
        self._thread.start()

    def stop(self) -> None:
        """Stop all running tasks gracefully, waiting for passes in progress
        to finish.

        Does not raise any exceptions, even if not yet started.
        """
        if self._shutdown is None:
            return
        self.log.info("Stopping all tasks...")
        self._shutdown.signal()
        if self._thread is not None:
            self._thread.join()
        self.log.info("All tasks stopped.")


def validate_source_type(module: Optional[str], type_: str) -> bool:
    """Check if a source type exists, importing it for :class:`DDNSManager`
    if it is not one of the built-in sources that comes with ddnsync

    :param module: ``None`` for built-in sources. Otherwise, the module the
                   source can be imported from.
    :param type_: The name of a built-in source or the class name of a
                  non-built-in source.
    :returns: ``True`` if the source exists, ``False`` otherwise
    """
    return _validate_component_type("source", sources.sources, module, type_)


def validate_provider_type(module: Optional[str], type_: str) -> bool:
    """Check if a provider type exists, importing it for :class:`DDNSManager`
    if it is not one of the built-in providers that comes with ddnsync

    :param module: ``None`` for built-in providers. Otherwise, the module the
                   provider can be imported from.
    :param type_: The name of a built-in provider or the class name of a
                  non-built-in provider.
    :returns: ``True`` if the provider exists, ``False`` otherwise
    """
    return _validate_component_type("provider", providers.providers, module,
                                    type_)


def validate_notifier_type(module: Optional[str], type_: str) -> bool:
    """Check if a notifier type exists, importing it for :class:`DDNSManager`
    if it is not one of the built-in notifiers that comes with ddnsync

    :param module: ``None`` for built-in notifiers. Otherwise, the module the
                   notifier can be imported from.
    :param type_: The name of a built-in notifier or the class name of a
                  non-built-in notifier.
    :returns: ``True`` if the notifier exists, ``False`` otherwise
    """
    return _validate_component_type("notifier", notifiers.notifiers, module,
                                    type_)


def _validate_component_type(
    which: str,
    existing: Dict[Union[str, Tuple[str, str]], Any],
    module: Optional[str],
    type_: str,
) -> bool:
    """Check if a source, provider, or notifier exists and import it

    :param which: ``"source"``, ``"provider"``, or ``"notifier"``
    :param existing: The dict of already known components of that kind and
                     their class. Keys are strings for built-in, (module,
                     class) name tuples for non-built-in
    :param module: ``None`` for built-in components. Otherwise, the module it
                   can be imported from.
    :param type_: The name of a built-in component or the class name of a
                  non-built-in one.
    :returns: ``True`` if the component exists, ``False`` otherwise
    """
    if module is None:
        # Check if built-in or already imported with an entry point
        if type_ in existing:
            return True
        # Check if a ddnsync entry point with this name exists
        discovered = entry_points(group=f"ddnsync.{which}")
        try:
            entry_point = discovered[type_]
        except KeyError:
            return False
        existing[type_] = entry_point.load()
        return True

    # Check if already imported non-built-in
    if (module, type_) in existing:
        return True

    # Check if it's importable
    try:
        imported_module = importlib.import_module(module)
    except ImportError:
        return False
    try:
        imported_class = getattr(imported_module, type_)
    except AttributeError:
        return False
    existing[cast(Tuple[str, str], (module, type_))] = imported_class
    return True
