"""Read-write lock for distributed systems, backed by redis.
"""
from ._exceptions import (
    BadResponseError,
    InitError,
    LockTimeoutError,
    ProtocolError,
    ReleaseError,
    RWLockError,
    UsageError,
)
from ._faults import Fault, classify
from ._options import ClusterOptions, FailoverOptions, NodeOptions, Options
from ._redis import DEFAULT_LEASE, RELEASE_ATTEMPTS, Command, RWLock
from ._response import Response
from ._script import Script, command_key


__version__ = '0.1.0'
__all__ = [
    'BadResponseError',
    'ClusterOptions',
    'Command',
    'DEFAULT_LEASE',
    'FailoverOptions',
    'Fault',
    'InitError',
    'LockTimeoutError',
    'NodeOptions',
    'Options',
    'ProtocolError',
    'RELEASE_ATTEMPTS',
    'ReleaseError',
    'Response',
    'RWLock',
    'RWLockError',
    'Script',
    'UsageError',
    'classify',
    'command_key',
]
