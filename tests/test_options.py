import pytest

import dirwlock


@pytest.mark.asyncio
async def test_failover_reuses_sentinel():
    options = dirwlock.FailoverOptions('mymaster', [('localhost', 26379)])
    first = options.connect()
    second = options.connect()
    sentinel = options.sentinel
    assert sentinel is not None
    assert first.connection_pool.sentinel_manager is sentinel
    assert second.connection_pool.sentinel_manager is sentinel

    await first.aclose()
    await second.aclose()
    await options.aclose()
    assert options.sentinel is None
    assert options.connect().connection_pool.sentinel_manager is not sentinel


def test_node_url_keeps_password():
    options = dirwlock.NodeOptions(url='redis://:secret@localhost:6380/2')
    client = options.connect()
    kwargs = client.connection_pool.connection_kwargs
    assert kwargs['password'] == 'secret'
    assert kwargs['port'] == 6380
    assert kwargs['db'] == 2


def test_node_password_overrides_url():
    options = dirwlock.NodeOptions(url='redis://:secret@localhost', password='other')
    client = options.connect()
    assert client.connection_pool.connection_kwargs['password'] == 'other'
