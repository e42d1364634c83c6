

class RWLockError(Exception):
    pass


class InitError(RWLockError):
    pass


class UsageError(RWLockError, ValueError):
    pass


class BadResponseError(RWLockError, ValueError):
    pass


class LockTimeoutError(RWLockError, TimeoutError):
    pass


class ReleaseError(RWLockError):
    pass


class ProtocolError(RWLockError):
    """The lock script refused the operation.

    Args:
        message:    Error reported by the script.
        debug:      Extra context reported by the script, if any.
    """

    def __init__(self, message: str, debug: str = '') -> None:
        super().__init__(message)
        self.message = message
        self.debug = debug
