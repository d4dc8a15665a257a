"""Base class for ddnsync address sources"""

import logging
# Note: We are not using abstractmethod the way it is intended. We are using it
# purely to get Sphinx to mark methods as abstract. Thus, we intentionally do
# NOT use ABCMeta or inherit from ABC.
from abc import abstractmethod
from typing import Dict, List

from ..family import Address, Family


class BaseSource:
    """Base class for all ddnsync address sources. Sets up the logger and a
    few useful member variables.

    :param name: Name of the source (from config section heading)
    :param config: Dict of config options for this source

    :raises ConfigError: if the configuration is invalid
    """

    def __init__(self, name: str, config: Dict[str, str]):
        #: Source name (from config section heading)
        self.name: str = name

        #: Logger (see standard :mod:`logging` module)
        self.log = logging.getLogger(f'ddnsync.source.{self.name}')

    @abstractmethod
    def get_addresses(self, family: Family) -> List[Address]:
        """Look up the current address(es) for the given family.

        **Must be overridden by subclasses.**

        Returning an address of the wrong family is tolerated by the caller
        (the family is skipped for that pass), but sources should not do it.
        If no address can be found, raise rather than returning an empty list:
        an empty list means all records of that family get deleted.

        :param family: The family to look up
        :return: A non-empty list of addresses
        :raises SourceError: if the lookup failed
        """
        raise NotImplementedError
