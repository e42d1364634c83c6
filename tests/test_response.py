import pytest

import dirwlock


@pytest.mark.parametrize('payload, ok, failed, succeeded', [
    ('{"opRet":true,"errMsg":"","debug":"acquired"}', True, False, True),
    (b'{"opRet":false,"errMsg":"","debug":"held by a"}', False, False, False),
    ('{"opRet":false,"errMsg":"read lock is not held","debug":""}', False, True, False),
    # the error wins over the flag
    ('{"opRet":true,"errMsg":"boom","debug":""}', True, True, False),
    ('{"opRet":true}', True, False, True),
    ('{}', False, False, False),
])
def test_parse(payload, ok: bool, failed: bool, succeeded: bool):
    resp = dirwlock.Response.parse(payload)
    assert resp.ok is ok
    assert resp.failed is failed
    assert resp.succeeded is succeeded


def test_parse_fields():
    resp = dirwlock.Response.parse('{"opRet":false,"errMsg":"a \\"b\\"","debug":"held by x"}')
    assert resp.error == 'a "b"'
    assert resp.debug == 'held by x'


def test_opret_must_be_bool():
    resp = dirwlock.Response.parse('{"opRet":"false"}')
    assert resp.ok is False


@pytest.mark.parametrize('payload', [
    'not json',
    b'\xff',
    '[true, "", ""]',
    '"ok"',
    None,
])
def test_bad_payload(payload):
    with pytest.raises(dirwlock.BadResponseError):
        dirwlock.Response.parse(payload)
