"""
Тесты для фонового опроса курсов (RatePoller)
"""

import threading
from decimal import Decimal
from typing import Optional

import pytest

from src.core.domain import Currency
from src.rates.poller import RatePoller, RateStatus
from src.rates.provider import RateProvider, RateSnapshot


class ScriptedProvider(RateProvider):
    """Возвращает заранее заданные ответы по очереди (последний повторяется)."""

    NAME = "scripted"

    def __init__(self, *responses):
        self._responses = list(responses)
        self.calls = 0
        self.called = threading.Event()

    def get_rates(self) -> Optional[RateSnapshot]:
        self.calls += 1
        self.called.set()
        index = min(self.calls - 1, len(self._responses) - 1)
        response = self._responses[index]
        if isinstance(response, Exception):
            raise response
        return response


def snapshot(pln: str) -> RateSnapshot:
    return RateSnapshot(rates={Currency.PLN: Decimal(pln)}, source="scripted")


class TestRefresh:
    def test_initial_state(self) -> None:
        poller = RatePoller(ScriptedProvider(None))
        assert poller.status == RateStatus.IDLE
        assert poller.snapshot is None
        assert poller.is_stale

    def test_successful_refresh(self) -> None:
        poller = RatePoller(ScriptedProvider(snapshot("4.01")))
        result = poller.refresh()
        assert result.rate_for(Currency.PLN) == Decimal("4.01")
        assert poller.status == RateStatus.OK
        assert not poller.is_stale

    def test_failure_keeps_previous_snapshot(self) -> None:
        """Неудачное обновление оставляет прежние курсы и помечает их устаревшими"""
        poller = RatePoller(ScriptedProvider(snapshot("4.01"), None))
        poller.refresh()
        result = poller.refresh()
        assert result.rate_for(Currency.PLN) == Decimal("4.01")
        assert poller.status == RateStatus.ERROR
        assert poller.is_stale

    def test_recovery_after_failure(self) -> None:
        poller = RatePoller(ScriptedProvider(None, snapshot("4.05")))
        poller.refresh()
        poller.refresh()
        assert poller.status == RateStatus.OK
        assert poller.snapshot.rate_for(Currency.PLN) == Decimal("4.05")

    def test_provider_exception_is_contained(self) -> None:
        poller = RatePoller(ScriptedProvider(RuntimeError("boom")))
        assert poller.refresh() is None
        assert poller.status == RateStatus.ERROR

    def test_old_snapshot_is_stale(self) -> None:
        poller = RatePoller(ScriptedProvider(snapshot("4.01")), stale_after_sec=0.0001)
        poller.refresh()
        threading.Event().wait(0.01)
        assert poller.is_stale

    def test_invalid_interval(self) -> None:
        with pytest.raises(ValueError):
            RatePoller(ScriptedProvider(None), interval_sec=0)


class TestBackgroundPolling:
    def test_start_and_stop(self) -> None:
        provider = ScriptedProvider(snapshot("4.01"))
        poller = RatePoller(provider, interval_sec=0.01)
        poller.start()
        try:
            assert provider.called.wait(timeout=2)
            assert poller.is_running
        finally:
            poller.stop(timeout=2)
        assert not poller.is_running
        assert provider.calls >= 1

    def test_context_manager(self) -> None:
        provider = ScriptedProvider(snapshot("4.01"))
        with RatePoller(provider, interval_sec=60) as poller:
            assert provider.called.wait(timeout=2)
        assert not poller.is_running

    def test_stop_cancels_wait(self) -> None:
        """stop() не ждёт окончания интервала"""
        provider = ScriptedProvider(snapshot("4.01"))
        poller = RatePoller(provider, interval_sec=3600)
        poller.start()
        provider.called.wait(timeout=2)
        poller.stop(timeout=2)
        assert not poller.is_running
        assert provider.calls == 1
