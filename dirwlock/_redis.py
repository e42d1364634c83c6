import asyncio
import logging
import random
from contextlib import asynccontextmanager
from datetime import timedelta
from enum import Enum
from typing import AsyncIterator, Optional, Tuple, Union
from uuid import uuid4

from redis.exceptions import RedisClusterException, RedisError

from ._exceptions import (
    BadResponseError,
    InitError,
    LockTimeoutError,
    ProtocolError,
    ReleaseError,
    UsageError,
)
from ._faults import Fault, classify
from ._options import Client, Options
from ._response import Response
from ._script import Script, command_key


logger = logging.getLogger('dirwlock')

DEFAULT_LEASE = 5
RELEASE_ATTEMPTS = 10
BACKOFF = (0.010, 0.020)

Lease = Union[int, timedelta]


class Command(str, Enum):
    LOCK = 'LOCK'
    UNLOCK = 'UNLOCK'
    RLOCK = 'RLOCK'
    RUNLOCK = 'RUNLOCK'


class RWLock:
    """Read-write lock shared by all processes talking to the same redis.

    Args:
        options:    How to connect to redis. Kept to rebuild the connection
                    when the server goes away.
        client:     Already connected client, `options.connect()` if not given.
        backoff:    Range of seconds to sleep between two attempts.
        attempts:   How many times release operations try before giving up.
        script:     Lua script implementing the lock transitions.
    """
    __slots__ = [
        'options',
        'client',
        'script',
        'backoff',
        'attempts',
        '_recovery',
    ]

    options: Options
    client: Optional[Client]
    script: Script
    backoff: Tuple[float, float]
    attempts: int
    _recovery: asyncio.Lock

    def __init__(
        self,
        options: Options,
        client: Optional[Client] = None,
        backoff: Tuple[float, float] = BACKOFF,
        attempts: int = RELEASE_ATTEMPTS,
        script: Optional[Script] = None,
    ) -> None:
        self.options = options
        self.client = client
        self.script = script or Script()
        self.backoff = backoff
        self.attempts = attempts
        self._recovery = asyncio.Lock()

    async def init(self) -> None:
        """Connect to redis, check it is alive, and load the lock script.

        Raises:
            InitError
        """
        try:
            if self.client is None:
                self.client = self.options.connect()
            await self.client.ping()
            await self.script.install(self.client)
        except (RedisError, RedisClusterException, OSError) as exc:
            raise InitError(f'cannot initialize the lock store: {exc}') from exc

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    async def acquire_write(
        self,
        key: str,
        holder: str,
        lease: Lease = DEFAULT_LEASE,
        timeout: Optional[float] = None,
    ) -> None:
        """Acquire the exclusive (write) lock on the key.

        Blocks until there are no readers and no other writer.
        The lock expires by itself after `lease` seconds.

        Args:
            key:        Name of the locked resource.
            holder:     Unique id of this acquisition, required to release.
            lease:      Seconds (or timedelta) before the lock expires.
                        Non-positive values mean the default of 5 seconds.
            timeout:    Seconds to wait before giving up, wait forever if None.

        Raises:
            UsageError
            ProtocolError
            LockTimeoutError
        """
        if not key:
            raise UsageError('lock key is empty')
        if not holder:
            raise UsageError('lock holder is empty')
        seconds = _lease_seconds(lease)
        deadline = self._deadline(timeout)
        while True:
            resp = await self._attempt(key, Command.LOCK, holder, str(seconds))
            if resp is not None:
                if resp.failed:
                    raise ProtocolError(resp.error, debug=resp.debug)
                if resp.succeeded:
                    return
            await self._pause(key, deadline)

    async def release_write(self, key: str, holder: str) -> bool:
        """Release the write lock held by `holder`.

        Releasing a lock that nobody holds does nothing.

        Returns:
            False if redis could not confirm the release in `attempts` tries.
            The lock still goes away when its lease expires.

        Raises:
            UsageError
            ProtocolError
        """
        if not key:
            raise UsageError('lock key is empty')
        if await self._release(key, Command.UNLOCK, holder):
            return True
        logger.warning('gave up releasing write lock %r held by %r', key, holder)
        return False

    async def acquire_read(self, key: str, timeout: Optional[float] = None) -> None:
        """Acquire a shared (read) lock on the key.

        Blocks while there is a writer. Any number of readers can hold
        the lock at the same time. Read locks do not expire.

        Raises:
            LockTimeoutError
        """
        deadline = self._deadline(timeout)
        while True:
            resp = await self._attempt(key, Command.RLOCK)
            if resp is not None:
                if resp.succeeded:
                    return
                if resp.failed:
                    logger.debug('read lock %r refused: %s', key, resp.error)
            await self._pause(key, deadline)

    async def release_read(self, key: str) -> None:
        """Release one read lock on the key.

        Raises:
            UsageError
            ProtocolError
            ReleaseError
        """
        if not key:
            raise UsageError('lock key is empty')
        if not await self._release(key, Command.RUNLOCK):
            raise ReleaseError(f'cannot release read lock {key!r}')

    @asynccontextmanager
    async def write(
        self,
        key: str,
        holder: Optional[str] = None,
        lease: Lease = DEFAULT_LEASE,
        timeout: Optional[float] = None,
    ) -> AsyncIterator[str]:
        """Hold the write lock for the duration of the block.

        Yields the holder id, a random one if `holder` is not given.
        """
        holder = holder or uuid4().hex
        await self.acquire_write(key, holder, lease=lease, timeout=timeout)
        try:
            yield holder
        finally:
            await self.release_write(key, holder)

    @asynccontextmanager
    async def read(self, key: str, timeout: Optional[float] = None) -> AsyncIterator[None]:
        """Hold a read lock for the duration of the block.
        """
        await self.acquire_read(key, timeout=timeout)
        try:
            yield
        finally:
            await self.release_read(key)

    async def _release(self, key: str, command: Command, *args: str) -> bool:
        for attempt in range(self.attempts):
            if attempt:
                await self._pause(key)
            resp = await self._attempt(key, command, *args)
            if resp is None:
                continue
            if resp.failed:
                raise ProtocolError(resp.error, debug=resp.debug)
            if resp.succeeded:
                return True
        return False

    async def _attempt(self, key: str, command: Command, *args: str) -> Optional[Response]:
        """Run the script once.

        Returns None if redis failed, after trying to recover from the failure.
        """
        client = self.client
        if client is None or self.script.sha is None:
            raise UsageError('lock is not initialized, call `init` first')
        try:
            payload = await client.evalsha(
                self.script.sha, 2, key, command_key(key, command.value), *args,
            )
        except (RedisError, RedisClusterException, OSError, EOFError) as exc:
            fault = classify(exc)
            logger.debug('%s %r failed (%s): %s', command.value, key, fault.value, exc)
            await self._recover(fault, client)
            return None
        try:
            resp = Response.parse(payload)
        except BadResponseError as exc:
            logger.warning('%s %r: %s', command.value, key, exc)
            return None
        if not resp.succeeded:
            logger.debug('%s %r not done: %s', command.value, key, resp.debug)
        return resp

    async def _recover(self, fault: Fault, client: Client) -> None:
        if fault is Fault.OPAQUE:
            return
        async with self._recovery:
            try:
                if fault is Fault.RECONNECT:
                    # another task may have already replaced the broken client
                    if self.client is client:
                        await self._reconnect()
                else:
                    logger.info('reloading the lock script')
                    await self.script.install(self.client)
            except (RedisError, OSError, EOFError) as exc:
                logger.warning('cannot recover from %s: %s', fault.value, exc)

    async def _reconnect(self) -> None:
        logger.info('reconnecting to the lock store')
        client = self.options.connect()
        try:
            await client.ping()
            await self.script.install(client)
        except BaseException:
            await client.aclose()
            raise
        old, self.client = self.client, client
        if old is not None:
            try:
                await old.aclose()
            except (RedisError, OSError) as exc:
                logger.debug('cannot close the old connection: %s', exc)

    def _deadline(self, timeout: Optional[float]) -> Optional[float]:
        if timeout is None:
            return None
        return asyncio.get_running_loop().time() + timeout

    async def _pause(self, key: str, deadline: Optional[float] = None) -> None:
        delay = random.uniform(*self.backoff)
        if deadline is not None:
            left = deadline - asyncio.get_running_loop().time()
            if left <= 0:
                raise LockTimeoutError(f'cannot acquire lock {key!r} in time')
            delay = min(delay, left)
        await asyncio.sleep(delay)

    async def __aenter__(self) -> 'RWLock':
        await self.init()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()


def _lease_seconds(lease: Lease) -> int:
    if isinstance(lease, timedelta):
        seconds = int(lease.total_seconds())
    else:
        seconds = int(lease)
    if seconds <= 0:
        return DEFAULT_LEASE
    return seconds
