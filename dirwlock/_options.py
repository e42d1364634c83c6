from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from redis.asyncio import Redis
from redis.asyncio.cluster import ClusterNode, RedisCluster
from redis.asyncio.sentinel import Sentinel


Client = Union[Redis, RedisCluster]
Address = Tuple[str, int]


class Options:
    """Everything needed to (re)build a connection to the lock store.

    The lock keeps the options it was initialized with and calls
    `connect` again whenever the connection has to be rebuilt,
    so `connect` must return a fresh client on every call.
    """
    __slots__: Sequence[str] = ()

    def connect(self) -> Client:
        raise NotImplementedError


class NodeOptions(Options):
    """A single redis node.

    Args:
        host:       Redis host.
        port:       Redis port.
        db:         Database number.
        password:   Password, if the server requires one.
        url:        `redis://` URL, takes precedence over host, port and db.
        kwargs:     Passed as is to `redis.asyncio.Redis`.
    """
    __slots__ = [
        'host',
        'port',
        'db',
        'password',
        'url',
        'kwargs',
    ]

    host: str
    port: int
    db: int
    password: Optional[str]
    url: Optional[str]
    kwargs: Dict[str, Any]

    def __init__(
        self,
        host: str = 'localhost',
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        url: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self.url = url
        self.kwargs = kwargs

    def connect(self) -> Redis:
        if self.url is not None:
            # `from_url` lets explicit kwargs override the URL, even with None
            kwargs = dict(self.kwargs)
            if self.password is not None:
                kwargs['password'] = self.password
            return Redis.from_url(self.url, **kwargs)
        return Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            **self.kwargs,
        )


class FailoverOptions(Options):
    """A master discovered through redis sentinels.

    Args:
        master_name:        Name of the monitored master.
        sentinels:          (host, port) pairs of the sentinels.
        sentinel_kwargs:    Connection arguments for the sentinels themselves.
        kwargs:             Connection arguments for the master.
    """
    __slots__ = [
        'master_name',
        'sentinels',
        'sentinel_kwargs',
        'kwargs',
        'sentinel',
    ]

    master_name: str
    sentinels: List[Address]
    sentinel_kwargs: Optional[Dict[str, Any]]
    kwargs: Dict[str, Any]
    sentinel: Optional[Sentinel]

    def __init__(
        self,
        master_name: str,
        sentinels: Sequence[Address],
        sentinel_kwargs: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> None:
        self.master_name = master_name
        self.sentinels = list(sentinels)
        self.sentinel_kwargs = sentinel_kwargs
        self.kwargs = kwargs
        self.sentinel = None

    def connect(self) -> Redis:
        # sentinel connections are shared by all the masters built from these options
        if self.sentinel is None:
            self.sentinel = Sentinel(
                self.sentinels,
                sentinel_kwargs=self.sentinel_kwargs,
                **self.kwargs,
            )
        return self.sentinel.master_for(self.master_name)

    async def aclose(self) -> None:
        """Close the connections to the sentinels.
        """
        if self.sentinel is not None:
            await self.sentinel.aclose()
            self.sentinel = None


class ClusterOptions(Options):
    """A redis cluster.

    Args:
        startup_nodes:  (host, port) pairs used to discover the cluster.
        kwargs:         Passed as is to `redis.asyncio.cluster.RedisCluster`.
    """
    __slots__ = [
        'startup_nodes',
        'kwargs',
    ]

    startup_nodes: List[Address]
    kwargs: Dict[str, Any]

    def __init__(self, startup_nodes: Sequence[Address], **kwargs: Any) -> None:
        self.startup_nodes = list(startup_nodes)
        self.kwargs = kwargs

    def connect(self) -> RedisCluster:
        nodes = [ClusterNode(host, port) for host, port in self.startup_nodes]
        return RedisCluster(startup_nodes=nodes, **self.kwargs)
