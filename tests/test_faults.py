import pytest
from redis import exceptions

import dirwlock
from dirwlock import Fault


@pytest.mark.parametrize('exc, fault', [
    (exceptions.NoScriptError('No matching script. Please use EVAL.'), Fault.RELOAD_SCRIPT),
    (exceptions.ConnectionError('Connection closed by server.'), Fault.RECONNECT),
    (exceptions.BusyLoadingError('Redis is loading the dataset in memory'), Fault.RECONNECT),
    (ConnectionResetError(104, 'Connection reset by peer'), Fault.RECONNECT),
    (BrokenPipeError(), Fault.RECONNECT),
    (EOFError(), Fault.RECONNECT),
    (exceptions.TimeoutError('Timeout reading from socket'), Fault.OPAQUE),
    (exceptions.ResponseError('ERR value is not an integer'), Fault.OPAQUE),
    (exceptions.RedisClusterException('EVALSHA - all keys must map to the same key slot'), Fault.OPAQUE),
    (ValueError('boom'), Fault.OPAQUE),
])
def test_classify(exc: BaseException, fault: Fault):
    assert dirwlock.classify(exc) is fault
