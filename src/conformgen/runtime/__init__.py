"""Runtime support of generated conformance programs.

Generated programs import everything they use from this package: the
harness wrapping the session under test, the optional argument carrier
and the helpers referenced by emitted checks.
"""

from conformgen.errors import HostError, SetupError

from .harness import (
    Harness,
    get_key,
    md5sum,
    normalize_device,
    setup_failed,
    startup_watchdog,
    warn_untested,
)
from .host import HOSTS_GROUP, OptArgs, Session, load_factory, open_session

__all__ = (
    'HOSTS_GROUP',
    'Harness',
    'HostError',
    'OptArgs',
    'Session',
    'SetupError',
    'get_key',
    'load_factory',
    'md5sum',
    'normalize_device',
    'open_session',
    'setup_failed',
    'startup_watchdog',
    'warn_untested',
)
