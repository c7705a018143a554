"""Tests for publish error classification."""

from __future__ import annotations

import asyncio

from src.generator.sampler import boilerplate_alert, canonical_test_alert
from src.processor.cancel import CancelToken
from src.processor.errors import classify_publish_error, is_cancellation
from src.processor.exceptions import AlertPublishError, BoilerplatePublishError
from src.producer.exceptions import PublishCancelledError, PublisherConnectionError


def _chained(outer: Exception, inner: BaseException) -> Exception:
    try:
        try:
            raise inner
        except BaseException as exc:
            raise outer from exc
    except Exception as exc:
        return exc


class TestIsCancellation:
    def test_token_set_wins(self) -> None:
        token = CancelToken()
        token.cancel()
        assert is_cancellation(token, RuntimeError("anything"))

    def test_cancel_sentinel(self) -> None:
        assert is_cancellation(CancelToken(), PublishCancelledError("stop"))

    def test_asyncio_cancelled(self) -> None:
        assert is_cancellation(CancelToken(), asyncio.CancelledError())

    def test_wrapped_sentinel(self) -> None:
        exc = _chained(ConnectionError("write failed"), PublishCancelledError("stop"))
        assert is_cancellation(CancelToken(), exc)

    def test_plain_error(self) -> None:
        assert not is_cancellation(CancelToken(), PublisherConnectionError("down"))

    def test_wrapped_plain_error(self) -> None:
        exc = _chained(RuntimeError("outer"), ValueError("inner"))
        assert not is_cancellation(CancelToken(), exc)


class TestClassifyPublishError:
    def test_cancellation_returns_none(self) -> None:
        token = CancelToken()
        token.cancel()
        assert classify_publish_error(token, canonical_test_alert(), RuntimeError("x"), 4) is None

    def test_failure_is_wrapped(self) -> None:
        alert = canonical_test_alert()
        err = classify_publish_error(CancelToken(), alert, RuntimeError("broker down"), 7)
        assert isinstance(err, AlertPublishError)
        assert err.alert_id == alert.alert_id
        assert err.attempt == 7
        assert "alert 7" in str(err)
        assert "broker down" in str(err)

    def test_canary_attempt_zero(self) -> None:
        alert = boilerplate_alert()
        err = classify_publish_error(
            CancelToken(),
            alert,
            RuntimeError("nope"),
            0,
            error_cls=BoilerplatePublishError,
        )
        assert isinstance(err, BoilerplatePublishError)
        assert err.attempt == 0
        assert alert.alert_id in str(err)
