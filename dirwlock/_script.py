from typing import Optional

from ._options import Client


# Lock record: a hash at KEYS[1] with `writer` (holder id) and `readers` (count).
# While a writer is set, the hash TTL is the lease.
# KEYS[2] ends with the command name, see `command_key`.
SOURCE = r"""
local key = KEYS[1]
local cmd = string.match(KEYS[2], '(%u+)$')

local function reply(ok, err, debug)
    return cjson.encode({opRet = ok, errMsg = err or '', debug = debug or ''})
end

local function readers()
    return tonumber(redis.call('HGET', key, 'readers') or '0') or 0
end

if cmd == 'LOCK' then
    local holder = ARGV[1]
    local lease = tonumber(ARGV[2])
    if not holder or holder == '' then
        return reply(false, 'holder is required')
    end
    if not lease or lease <= 0 then
        return reply(false, 'lease must be a positive number of seconds')
    end
    if readers() > 0 then
        return reply(false, nil, 'readers active')
    end
    local writer = redis.call('HGET', key, 'writer')
    if writer and writer ~= holder then
        return reply(false, nil, 'held by ' .. writer)
    end
    redis.call('HSET', key, 'writer', holder)
    redis.call('EXPIRE', key, ARGV[2])
    if writer then
        return reply(true, nil, 'renewed')
    end
    return reply(true, nil, 'acquired')

elseif cmd == 'UNLOCK' then
    local holder = ARGV[1]
    local writer = redis.call('HGET', key, 'writer')
    if not writer then
        return reply(true, nil, 'not locked')
    end
    if writer ~= holder then
        return reply(false, 'write lock is held by another holder', 'held by ' .. writer)
    end
    redis.call('DEL', key)
    return reply(true, nil, 'released')

elseif cmd == 'RLOCK' then
    if redis.call('HEXISTS', key, 'writer') == 1 then
        return reply(false, nil, 'writer active')
    end
    local count = redis.call('HINCRBY', key, 'readers', '1')
    return reply(true, nil, 'readers ' .. tostring(count))

elseif cmd == 'RUNLOCK' then
    local count = readers()
    if count <= 0 then
        return reply(false, 'read lock is not held')
    end
    if count == 1 then
        redis.call('DEL', key)
    else
        redis.call('HINCRBY', key, 'readers', '-1')
    end
    return reply(true, nil, 'readers ' .. tostring(count - 1))
end

return reply(false, 'unknown command: ' .. tostring(cmd))
"""


def command_key(key: str, command: str) -> str:
    """Second script key, naming the command in the same cluster slot as `key`.

    Redis cluster hashes only the part between the first `{` and the next `}`
    when it is not empty, so the key's own hash tag is kept if it has one,
    and the whole key becomes the tag otherwise.
    """
    start = key.find('{')
    if start != -1:
        end = key.find('}', start + 1)
        if end > start + 1:
            return f'{key}:{command}'
    if '}' in key:
        # cannot be tagged without changing its slot, only works on a single node
        return f'{key}:{command}'
    return f'{{{key}}}:{command}'


class Script:
    """The server-side half of the lock, cached by redis under its sha.

    Args:
        source:     Lua source of the script.
    """
    __slots__ = [
        'source',
        'sha',
    ]

    source: str
    sha: Optional[str]

    def __init__(self, source: str = SOURCE) -> None:
        self.source = source
        self.sha = None

    async def install(self, client: Client) -> str:
        """Load the script into redis and remember the returned sha.

        Raises:
            RedisError
        """
        sha = await client.script_load(self.source)
        if isinstance(sha, bytes):
            sha = sha.decode('ascii')
        self.sha = sha
        return sha
