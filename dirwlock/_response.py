import json
from typing import Union

from ._exceptions import BadResponseError


class Response:
    """Decoded reply of a single script invocation.

    A non-empty `error` means the script refused the operation,
    whatever `ok` says. Otherwise, `ok` tells if the lock changed hands.
    A reply that is neither failed nor succeeded means "try again later".
    """
    __slots__ = [
        'ok',
        'error',
        'debug',
    ]

    ok: bool
    error: str
    debug: str

    def __init__(self, ok: bool, error: str = '', debug: str = '') -> None:
        self.ok = ok
        self.error = error
        self.debug = debug

    @classmethod
    def parse(cls, payload: Union[str, bytes]) -> 'Response':
        """Decode the JSON payload returned by the script.

        Raises:
            BadResponseError
        """
        try:
            content = json.loads(payload)
        except (TypeError, ValueError) as exc:
            raise BadResponseError(f'cannot decode reply {payload!r}') from exc
        if not isinstance(content, dict):
            raise BadResponseError(f'unexpected reply {payload!r}')
        return cls(
            ok=content.get('opRet') is True,
            error=content.get('errMsg') or '',
            debug=content.get('debug') or '',
        )

    @property
    def failed(self) -> bool:
        return bool(self.error)

    @property
    def succeeded(self) -> bool:
        return self.ok and not self.failed

    def __repr__(self) -> str:
        return f'{type(self).__name__}(ok={self.ok!r}, error={self.error!r}, debug={self.debug!r})'
