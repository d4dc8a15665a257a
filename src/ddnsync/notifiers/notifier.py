"""Base class for ddnsync notifiers"""

import logging
# Note: We are not using abstractmethod the way it is intended. We are using it
# purely to get Sphinx to mark methods as abstract. Thus, we intentionally do
# NOT use ABCMeta or inherit from ABC.
from abc import abstractmethod
from typing import Dict, List

from ..family import Address


class BaseNotifier:
    """Base class for all ddnsync notifiers (notification sinks). Sets up the
    logger and a few useful member variables.

    A notifier is told about the addresses a task has just written to its
    provider. It is only called when at least one record changed.

    :param name: Name of the notifier (from config section heading)
    :param config: Dict of config options for this notifier

    :raises ConfigError: if the configuration is invalid
    """

    def __init__(self, name: str, config: Dict[str, str]):
        #: Notifier name (from config section heading)
        self.name: str = name

        #: Logger (see standard :mod:`logging` module)
        self.log = logging.getLogger(f'ddnsync.notifier.{self.name}')

    @abstractmethod
    def notify(self, addresses: List[Address]) -> None:
        """Send a notification about newly applied addresses.

        **Must be overridden by subclasses.**

        :param addresses: The addresses that were refreshed, updated, or
                          created, in the order they were applied
        :raises NotifyError: if the notification could not be delivered
        """
        raise NotImplementedError


class EmptyNotifier(BaseNotifier):
    """Notifier that does nothing. Useful as a placeholder in a config."""

    def notify(self, addresses):
        self.log.debug("Not notifying of %d address(es)", len(addresses))
