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

"""Command line entry point: set up logging, start the manager, and handle
reload and termination signals"""

import argparse
import logging
import logging.handlers
import queue
import signal
import sys
from typing import Callable, Optional

from . import configuration, manager
from .exceptions import ConfigError, DDNSyncSetupError
from .util import sdnotify


LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'
SYSLOG_FORMAT = 'ddnsync[%(process)d]: %(levelname)s %(name)s: %(message)s'


def parse_args(argv):
    """Parse command line arguments

    :param argv: Either ``None`` or a list of arguments
    :returns: a :class:`argparse.Namespace` containing the parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Keep DNS records in sync with the current IP addresses",
        epilog="SIGHUP will cause a running instance to finish any updates in "
               "progress and reload its configuration",
    )
    parser.add_argument("-c", "--configfile", default="/etc/ddnsync.conf",
                        help="Path to the config file")
    parser.add_argument("-d", "--debug-logs", action="store_true",
                        help="Increase verbosity of logging significantly")
    parser.add_argument("-s", "--stderr", action="store_true",
                        help="Log to stderr instead of syslog or file")
    return parser.parse_args(argv)


def setup_logging(logfile: str, debug: bool = False) -> logging.Logger:
    """Attach a handler to the ``ddnsync`` logger

    :param logfile: ``syslog``, ``stderr``, or the path of a log file. Log
                    files are rotated at 1 MiB, keeping 10 old files.
    :param debug: Whether to log at DEBUG level instead of INFO
    :return: The ``ddnsync`` logger
    """
    if logfile == 'syslog':
        log_handler: logging.Handler = logging.handlers.SysLogHandler(
            address='/dev/log'
        )
        log_handler.setFormatter(logging.Formatter(SYSLOG_FORMAT))
    elif logfile == 'stderr':
        log_handler = logging.StreamHandler()
        log_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    else:
        log_handler = logging.handlers.RotatingFileHandler(
            logfile, maxBytes=1024 * 1024, backupCount=10
        )
        log_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    log = logging.getLogger('ddnsync')
    log.addHandler(log_handler)

    if debug:
        log.setLevel(logging.DEBUG)
    else:
        log.setLevel(logging.INFO)
    return log


def serve(ddns_manager: manager.DDNSManager,
          reload_config: Callable[[], manager.DDNSManager],
          events: Optional[queue.SimpleQueue] = None) -> None:
    """Run the manager until told to stop.

    The events queue receives :class:`signal.Signals` (from signal handlers)
    and managers whose supervisor has exited. ``SIGHUP`` reloads: a new
    manager is built with ``reload_config``, and only if that succeeds is the
    current one drained and replaced. Any other signal drains the current
    manager and returns. If the current manager's supervisor exits on its own
    (no tasks), this returns as well.

    :param ddns_manager: The manager to run. Must not be started yet.
    :param reload_config: Callable that reads the configuration again and
                          returns a new, unstarted manager
    :param events: The event queue. If ``None``, one is created and signal
                   handlers are installed for SIGINT, SIGTERM, and SIGHUP.
    """
    log = logging.getLogger('ddnsync')
    if events is None:
        events = queue.SimpleQueue()

        def handle_signals(sig, _):
            events.put(signal.Signals(sig))
        signal.signal(signal.SIGINT, handle_signals)
        signal.signal(signal.SIGTERM, handle_signals)
        signal.signal(signal.SIGHUP, handle_signals)

    def start(m: manager.DDNSManager):
        m.start(on_exit=lambda: events.put(m))

    current = ddns_manager
    start(current)
    sdnotify.ready()

    try:
        while True:
            event = events.get()

            if isinstance(event, manager.DDNSManager):
                if event is not current:
                    # Supervisor of a manager replaced by a reload
                    continue
                log.info("No tasks left running, exiting")
                sdnotify.stopping()
                current.stop()
                return

            log.info("Received signal: %s", event.name)
            if event == signal.SIGHUP:
                sdnotify.reloading()
                try:
                    replacement = reload_config()
                except DDNSyncSetupError as e:
                    log.error("Could not reload configuration, continuing "
                              "with the previous configuration: %s", e)
                else:
                    current.stop()
                    current = replacement
                    start(current)
                    log.info("Configuration reloaded")
                sdnotify.ready()
            else:
                sdnotify.stopping()
                current.stop()
                return
    except Exception:
        # Nothing reads the event queue past this point
        current.stop()
        raise


def main(argv=None):
    """Main entry point when run as a standalone program

    :param argv: List of arguments. If ``None``, read :data:`sys.argv`.
    """
    args = parse_args(argv)
    try:
        conf = configuration.read_file_from_path(args.configfile)
    except ConfigError as e:
        print("Config error:", e, file=sys.stderr)
        sys.exit(2)

    if args.stderr:
        conf.logfile = 'stderr'
    log = setup_logging(conf.logfile, args.debug_logs)

    try:
        ddns_manager = manager.DDNSManager(conf)
    except DDNSyncSetupError:
        log.critical("ddnsync failed to start.")
        sys.exit(1)

    def reload_config():
        new_conf = configuration.read_file_from_path(args.configfile)
        if new_conf.logfile != conf.logfile and not args.stderr:
            log.warning("Changes to 'logfile' take effect after a restart")
        return manager.DDNSManager(new_conf)

    serve(ddns_manager, reload_config)
    log.info("ddnsync stopped.")
