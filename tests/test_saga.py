"""
Tests for the saga runner's step policy.
"""

import pytest

from storefront.saga import PurchaseState, Saga, SagaStep


def boom():
    raise RuntimeError("boom")


class TestSaga:
    def test_all_steps_succeed(self):
        calls = []
        saga = Saga(
            "test",
            [
                SagaStep("a", lambda: calls.append("a"), on_success=PurchaseState.LICENSE_ISSUED),
                SagaStep("b", lambda: calls.append("b"), critical=True, on_success=PurchaseState.LICENSE_EMAIL_SENT),
            ],
            initial=PurchaseState.CAPTURED,
            final=PurchaseState.COMPLETE,
        )

        result = saga.run()

        assert calls == ["a", "b"]
        assert result.ok
        assert result.state == PurchaseState.COMPLETE
        assert result.completed == ["a", "b"]
        assert result.skipped == []

    def test_non_critical_failure_is_skipped(self):
        calls = []
        saga = Saga(
            "test",
            [
                SagaStep("a", boom),
                SagaStep("b", lambda: calls.append("b"), critical=True),
            ],
            initial=PurchaseState.CAPTURED,
            final=PurchaseState.COMPLETE,
        )

        result = saga.run()

        assert calls == ["b"]
        assert result.ok
        assert result.skipped == ["a"]
        assert result.state == PurchaseState.COMPLETE

    def test_critical_failure_stops_the_run(self):
        calls = []
        saga = Saga(
            "test",
            [
                SagaStep("a", lambda: calls.append("a"), on_success=PurchaseState.LICENSE_ISSUED),
                SagaStep("b", boom, critical=True),
                SagaStep("c", lambda: calls.append("c")),
            ],
            initial=PurchaseState.CAPTURED,
            final=PurchaseState.COMPLETE,
        )

        result = saga.run()

        assert calls == ["a"]
        assert not result.ok
        assert result.state == PurchaseState.FAILED
        assert result.failed_step == "b"
        assert isinstance(result.error, RuntimeError)

    @pytest.mark.parametrize("final", [None, PurchaseState.COMPLETE])
    def test_state_follows_last_successful_step(self, final):
        saga = Saga(
            "test",
            [
                SagaStep("a", lambda: None, on_success=PurchaseState.LICENSE_ISSUED),
                SagaStep("b", boom, on_success=PurchaseState.INVOICE_SENT),
            ],
            initial=PurchaseState.CAPTURED,
            final=final,
        )

        result = saga.run()

        assert result.state == (final or PurchaseState.LICENSE_ISSUED)
