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

"""Minimal implementation of the systemd ``sd_notify(3)`` protocol, enough to
run ddnsync as a ``Type=notify`` service with ``ExecReload`` support.

Every function here does nothing when not running under systemd or when no
notify socket was provided.
"""

import os
import socket
import time


def _notify(msg: bytes):
    """Send the given bytes to the systemd notify socket named in the
    environment. If not on a Unix-like system or no notify socket was named,
    do nothing.

    :param msg: The :class:`bytes` to send
    :raises OSError: if sending to the notify socket fails
    """
    try:
        af = socket.AF_UNIX
    except AttributeError:
        return

    if not os.path.isdir('/run/systemd/system/'):
        return

    sock_name = os.environ.get('NOTIFY_SOCKET')
    if not sock_name:
        return
    # Abstract namespace socket
    if sock_name.startswith('@'):
        sock_name = '\x00' + sock_name[1:]

    sock_type = socket.SOCK_DGRAM | getattr(socket, 'SOCK_CLOEXEC', 0)
    with socket.socket(af, sock_type) as sock:
        sock.sendto(msg, sock_name)


def _args_to_bytes(**kwargs) -> bytes:
    """Convert keyword args to a :class:`bytes` object ready to send to the
    notify socket, e.g. ``READY=1`` becomes ``b'READY=1\\n'``"""
    msg = bytearray()
    for arg, val in kwargs.items():
        msg += arg.encode('utf-8') + b'=' + str(val).encode('utf-8') + b'\n'
    return bytes(msg)


def ready():
    """Tell systemd the service is fully running (also ends a reload)"""
    _notify(_args_to_bytes(READY=1))


def reloading():
    """Tell systemd the service is reloading its configuration. Send
    :func:`ready` when finished."""
    _notify(_args_to_bytes(RELOADING=1,
                          MONOTONIC_USEC=time.monotonic_ns() // 1000))


def stopping():
    """Tell systemd the service is shutting down"""
    _notify(_args_to_bytes(STOPPING=1))
