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

import logging

import pytest

import ddnsync.configuration
from ddnsync import ShutdownCoordinator


@pytest.fixture
def shutdown():
    """A shutdown coordinator that is signaled at teardown, so tests never
    leave threads waiting on it"""
    coordinator = ShutdownCoordinator()
    yield coordinator
    coordinator.signal()


@pytest.fixture
def configfile_factory(tmp_path):
    """Fixture creating a factory for temporary config files"""
    class ConfigFileFactory:
        def __init__(self, contents):
            with open(self.filename, 'w') as f:
                for line in contents.splitlines():
                    print(line.strip(), file=f)

        @property
        def filename(self):
            return tmp_path / 'config.ini'
    return ConfigFileFactory


@pytest.fixture
def config_factory(configfile_factory):
    """Fixture creating a factory for finalized configs, accepting any
    component type"""
    def factory(contents):
        configfile = configfile_factory(contents)
        config = ddnsync.configuration.read_file_from_path(
            configfile.filename
        )
        config.finalize(lambda mod, typ: True, lambda mod, typ: True,
                        lambda mod, typ: True)
        return config
    return factory


@pytest.fixture
def clean_ddnsync_logger():
    """Remove handlers added to the ``ddnsync`` logger during the test"""
    log = logging.getLogger('ddnsync')
    handlers = list(log.handlers)
    level = log.level
    yield log
    for handler in log.handlers:
        if handler not in handlers:
            log.removeHandler(handler)
            handler.close()
    log.setLevel(level)
