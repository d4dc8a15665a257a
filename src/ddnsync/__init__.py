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

"""ddnsync, the Dynamic DNS record synchronizer

Top-level module, containing classes and objects useful to custom sources,
providers, and notifiers.
"""

from .configuration import Config, read_file, read_file_from_path
from .exceptions import (DDNSyncException, DDNSyncSetupError, ConfigError,
                         SourceError, ProviderError, NotifyError)
from .family import Address, Family
from .manager import DDNSManager
from .notifiers import BaseNotifier
from .providers import BaseProvider, Record
from .reconcile import plan, reconcile
from .shutdown import ShutdownCoordinator
from .sources import BaseSource
from .supervisor import TaskSupervisor
from .task import Task
