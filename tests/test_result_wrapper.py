from __future__ import annotations
import json
import pytest
from robust_fetch import (
    CancellationToken,
    Err,
    ErrorKind,
    ExponentialRetry,
    FetchError,
    LinearRetry,
    Ok,
    Response,
    create_schema,
    robust_fetch,
)


def age_schema():
    def validate(value):
        if value["age"] < 0:
            return {"issues": [{"message": "must be non-negative", "path": ["age"]}]}
        return {"value": value}

    return create_schema(validate)


class Counting:
    def __init__(self, response=None, exc=None):
        self.response, self.exc, self.calls = response, exc, 0

    async def __call__(self, target, options, signal):
        self.calls += 1
        if self.exc is not None:
            raise self.exc
        return self.response


def assert_exclusive(res):
    assert isinstance(res, (Ok, Err))
    assert res.is_ok != res.is_err
    assert hasattr(res, "value") != hasattr(res, "error")


@pytest.mark.asyncio
async def test_validation_rejection_is_not_retried():
    t = Counting(Response(200, content=json.dumps({"age": -1}).encode()))
    res = await robust_fetch("https://example.test/person", timeout=1.0,
                             retry=LinearRetry(attempts=3, delay=0.0), schema=age_schema(), transport=t)
    assert_exclusive(res)
    assert res.error.kind is ErrorKind.VALIDATION_REJECTED
    assert [(i.message, list(i.path)) for i in res.error.issues] == [("must be non-negative", ["age"])]
    assert t.calls == 1


@pytest.mark.asyncio
async def test_validated_body_replaces_original():
    t = Counting(Response(200, headers={"ETag": "abc"}, content=b'{"age": 7}'))
    res = await robust_fetch("https://example.test/person", timeout=1.0,
                             retry=LinearRetry(attempts=0), schema=age_schema(), transport=t)
    assert_exclusive(res)
    assert res.value.json() == {"age": 7}
    assert res.value.header("etag") == "abc"


@pytest.mark.asyncio
async def test_malformed_payload_surfaces_as_transport_failure():
    t = Counting(Response(200, content=b"<html>"))
    res = await robust_fetch("https://example.test", timeout=1.0, retry=LinearRetry(attempts=2, delay=0.0),
                             schema=age_schema(), transport=t)
    assert res.error.kind is ErrorKind.TRANSPORT_FAILURE
    assert res.error.stage == "decode"
    assert t.calls == 1


@pytest.mark.asyncio
async def test_validator_crash_becomes_err_not_exception():
    def broken(value):
        raise KeyError("missing")

    t = Counting(Response(200, content=b"{}"))
    res = await robust_fetch("https://example.test", timeout=1.0, retry=LinearRetry(attempts=0),
                             schema=create_schema(broken), transport=t)
    assert_exclusive(res)
    assert res.error.kind is ErrorKind.TRANSPORT_FAILURE
    assert res.error.stage == "internal"
    assert isinstance(res.error.cause, KeyError)


@pytest.mark.asyncio
async def test_invalid_arguments_become_err():
    t = Counting(Response(200))
    res = await robust_fetch("https://example.test", timeout=-1.0, retry=LinearRetry(attempts=0), transport=t)
    assert res.error.kind is ErrorKind.TRANSPORT_FAILURE
    assert res.error.stage == "init"
    assert isinstance(res.error.cause, ValueError)
    assert t.calls == 0


@pytest.mark.asyncio
async def test_transport_returning_garbage_is_contained():
    t = Counting(response=object())
    res = await robust_fetch("https://example.test", timeout=1.0, retry=LinearRetry(attempts=0), transport=t)
    assert res.error.kind is ErrorKind.TRANSPORT_FAILURE


@pytest.mark.asyncio
async def test_results_are_always_exactly_one_arm():
    tok = CancellationToken()
    tok.cancel()
    scenarios = [
        dict(transport=Counting(Response(200))),
        dict(transport=Counting(Response(500))),
        dict(transport=Counting(exc=OSError("down"))),
        dict(transport=Counting(Response(200)), cancellation=tok),
        dict(transport=Counting(Response(200, content=b'{"age": -3}')), schema=age_schema()),
    ]
    for kw in scenarios:
        res = await robust_fetch("https://example.test", timeout=1.0,
                                 retry=ExponentialRetry(attempts=1, base_delay=0.0), **kw)
        assert_exclusive(res)


def test_unwrap():
    resp = Response(200)
    assert Ok(resp).unwrap() is resp

    class Marker(FetchError):
        kind = ErrorKind.TRANSPORT_FAILURE

    err = Marker("nope")
    with pytest.raises(Marker):
        Err(err).unwrap()
