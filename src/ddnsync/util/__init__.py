"""Helper classes and functions for ddnsync"""

from .getifaceaddrs import get_iface_addrs
from .sessions import bound_session, family_session
from .zones import ZoneSplitter

__all__ = [
    "get_iface_addrs",
    "bound_session",
    "family_session",
    "ZoneSplitter",
]
