"""Rate poller — периодическое обновление курсов.

Обновление с фиксированным интервалом в фоновом потоке:
- fire-and-forget: ошибки не пробрасываются, а фиксируются в статусе;
- latest-result-wins: применяется результат самого позднего запроса;
- неудачное обновление оставляет предыдущий снапшот и помечает его устаревшим;
- stop() отменяет опрос при закрытии консоли.
"""

import itertools
import logging
import threading
from enum import Enum
from typing import Optional

from src.rates.provider import RateProvider, RateSnapshot

logger = logging.getLogger(__name__)


class RateStatus(str, Enum):
    """Статус источника курсов."""

    IDLE = "idle"
    LOADING = "loading"
    OK = "ok"
    ERROR = "error"


class RatePoller:
    """Фоновый опрос RateProvider."""

    def __init__(
        self,
        provider: RateProvider,
        interval_sec: float = 60.0,
        stale_after_sec: float = 180.0,
    ):
        """
        Args:
            provider: источник курсов
            interval_sec: интервал обновления
            stale_after_sec: возраст снапшота, после которого курсы считаются устаревшими
        """
        if interval_sec <= 0:
            raise ValueError(f"interval_sec must be positive, got {interval_sec}")

        self.provider = provider
        self.interval_sec = interval_sec
        self.stale_after_sec = stale_after_sec

        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._sequence = itertools.count(1)

        self._snapshot: Optional[RateSnapshot] = None
        self._applied_sequence = 0
        self._status = RateStatus.IDLE
        self._last_failed = False

    # -------------------------------------------------------------------------
    # Состояние
    # -------------------------------------------------------------------------

    @property
    def snapshot(self) -> Optional[RateSnapshot]:
        """Последний удачный снапшот (может быть устаревшим)."""
        with self._lock:
            return self._snapshot

    @property
    def status(self) -> RateStatus:
        with self._lock:
            return self._status

    @property
    def is_stale(self) -> bool:
        """True если курсов нет, последнее обновление не удалось или снапшот слишком старый."""
        with self._lock:
            if self._snapshot is None or self._last_failed:
                return True
            return self._snapshot.age_seconds() > self.stale_after_sec

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Обновление
    # -------------------------------------------------------------------------

    def refresh(self) -> Optional[RateSnapshot]:
        """Одно синхронное обновление.

        Returns:
            Актуальный снапшот после обновления (новый или прежний)
        """
        sequence = next(self._sequence)
        with self._lock:
            self._status = RateStatus.LOADING

        try:
            snapshot = self.provider.get_rates()
        except Exception as e:
            # Сбой провайдера не останавливает опрос
            logger.warning(f"Rate provider {self.provider.NAME} raised: {e}")
            snapshot = None

        with self._lock:
            if sequence < self._applied_sequence:
                # Более поздний запрос уже применён
                return self._snapshot
            self._applied_sequence = sequence

            if snapshot is None:
                self._status = RateStatus.ERROR
                self._last_failed = True
                logger.warning("Rate refresh failed, keeping previous rates")
            else:
                self._snapshot = snapshot
                self._status = RateStatus.OK
                self._last_failed = False
                logger.debug("Rates updated from %s", snapshot.source)
            return self._snapshot

    def start(self) -> None:
        """Запуск фонового опроса (первое обновление — сразу)."""
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="rate-poller", daemon=True)
        self._thread.start()
        logger.info("Rate poller started (interval=%.0fs)", self.interval_sec)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Отмена опроса."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Rate poller stopped")

    def _run(self) -> None:
        while not self._stop.is_set():
            self.refresh()
            self._stop.wait(self.interval_sec)

    def __enter__(self) -> "RatePoller":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
