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

"""Built in notifiers and the notifier base class"""

from .notifier import BaseNotifier, EmptyNotifier

from . import smtp
from . import webhook

notifiers = {
    'email': smtp.EmailNotifier,
    'empty': EmptyNotifier,
    'webhook': webhook.WebhookNotifier,
}

__all__ = [
    'BaseNotifier',
]
