from enum import Enum

from redis import exceptions


class Fault(Enum):
    """What to do about an exception raised by the store."""
    # The connection is gone (server restart, reset, EOF): rebuild the client.
    RECONNECT = 'reconnect'
    # Redis does not know the script sha: load the script again.
    RELOAD_SCRIPT = 'reload_script'
    # Nothing to recover, just try again later.
    OPAQUE = 'opaque'


def classify(exc: BaseException) -> Fault:
    # NoScriptError is a ResponseError, check it before anything broader.
    if isinstance(exc, exceptions.NoScriptError):
        return Fault.RELOAD_SCRIPT
    # BusyLoadingError is a redis ConnectionError, so a restarting server lands here too.
    if isinstance(exc, (exceptions.ConnectionError, ConnectionError, EOFError)):
        return Fault.RECONNECT
    return Fault.OPAQUE
