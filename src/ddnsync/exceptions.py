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

"""All ddnsync exceptions"""


class DDNSyncException(Exception):
    """Base class for all ddnsync exceptions"""


class DDNSyncSetupError(DDNSyncException):
    """Base class for ddnsync exceptions that happen during startup"""


class ConfigError(DDNSyncSetupError):
    """Raised when the configuration is malformed or has other errors"""


class SourceError(DDNSyncException):
    """Address sources should raise when an attempt to look up the current
    addresses fails. The affected family is skipped for the current pass."""


class ProviderError(DDNSyncException):
    """Providers should raise when any operation on the DNS records fails.
    Doing so aborts the current pass and the task is restarted by the
    supervisor after a delay."""


class NotifyError(DDNSyncException):
    """Notifiers should raise when delivering a notification fails. Handled
    the same way as :exc:`ProviderError`."""
