"""
Result sinks

Consumers of per-cycle estimation results. Delivery is one-way: a sink
reports whether it accepted a result but the engine never depends on it.
"""

from abc import ABC, abstractmethod
from collections import deque
import logging
import time
from typing import Callable, Dict, List, Optional, Sequence

import requests

from .estimators.base import EstimationResult

logger = logging.getLogger(__name__)

# Plain-text bodies the endpoint answers with 200 when it refuses a write
REJECTION_MARKERS = ("Rechazado",)


class ResultSink(ABC):
    """Destination for estimation results"""

    @abstractmethod
    def send(self, result: EstimationResult) -> bool:
        """
        Deliver one result

        Returns:
            True if the result was accepted
        """

    def close(self) -> None:
        pass


class NullSink(ResultSink):
    """Discards every result"""

    def send(self, result: EstimationResult) -> bool:
        return True


class MemorySink(ResultSink):
    """Keeps the most recent results in memory"""

    def __init__(self, maxlen: Optional[int] = None):
        self.results = deque(maxlen=maxlen)

    def send(self, result: EstimationResult) -> bool:
        self.results.append(result)
        return True

    def __len__(self) -> int:
        return len(self.results)

    def to_list(self) -> List[EstimationResult]:
        return list(self.results)


class LoggingSink(ResultSink):
    """Writes one log line per result"""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def send(self, result: EstimationResult) -> bool:
        rul = "unbounded" if result.rul_is_unbounded else f"{result.rul_hours:.1f} h"
        logger.log(self.level,
                   "V=%.3f V I=%.3f A T=%.1f C | SOC=%.1f%% SOH=%.1f%% RUL=%s capacity=%.3f Ah",
                   result.voltage, result.current, result.temperature,
                   result.soc_percent, result.soh_percent, rul, result.capacity_ah)
        return True


def build_query(result: EstimationResult, decimals: int = 2) -> Dict[str, str]:
    """
    Query parameters for the remote logging endpoint

    SOC and SOH are sent in percent, RUL in hours.
    """
    fmt = f"{{:.{decimals}f}}"
    return {
        'voltage': fmt.format(result.voltage),
        'current': fmt.format(result.current),
        'temperature': fmt.format(result.temperature),
        'soc': fmt.format(result.soc_percent),
        'soh': fmt.format(result.soh_percent),
        'rul': fmt.format(result.rul_hours),
    }


class HttpResultSink(ResultSink):
    """
    Remote logging endpoint reached with one GET request per result

    The endpoint rejects writes closer together than its minimum interval
    with a plain-text message, so results arriving within
    ``min_interval_s`` of the last accepted write are skipped locally.
    Rejections arrive with status 200, so the body is checked too: a body
    containing one of ``rejection_markers``, or one that does not contain
    ``accepted_body`` when that is set, counts as a refused write.
    Failures are logged and reported as False, never raised.
    """

    def __init__(self, url: str, timeout: float = 5.0, min_interval_s: float = 20.0,
                 session: Optional[requests.Session] = None, decimals: int = 2,
                 clock: Callable[[], float] = time.monotonic,
                 rejection_markers: Sequence[str] = REJECTION_MARKERS,
                 accepted_body: Optional[str] = None):
        self.url = url
        self.timeout = timeout
        self.min_interval_s = min_interval_s
        self.session = session if session is not None else requests.Session()
        self.decimals = decimals
        self.clock = clock
        self.rejection_markers = tuple(m.lower() for m in rejection_markers)
        self.accepted_body = accepted_body
        self._last_sent = None

    def _throttled(self, now: float) -> bool:
        return self._last_sent is not None and now - self._last_sent < self.min_interval_s

    def is_rejection(self, body: str) -> bool:
        """Whether a successful response's body reports a refused write"""
        lowered = body.lower()
        if any(marker in lowered for marker in self.rejection_markers):
            return True
        return self.accepted_body is not None and self.accepted_body.lower() not in lowered

    def send(self, result: EstimationResult) -> bool:
        now = self.clock()
        if self._throttled(now):
            logger.debug("Skipping result, %.1f s since last write", now - self._last_sent)
            return False

        try:
            response = self.session.get(self.url, params=build_query(result, self.decimals),
                                        timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Result delivery to %s failed: %s", self.url, e)
            return False

        try:
            body = response.text.strip()
            if not response.ok:
                logger.warning("Endpoint %s answered %s: %s", self.url,
                               response.status_code, body)
                return False
            if self.is_rejection(body):
                logger.warning("Endpoint %s rejected the write: %s", self.url, body)
                return False
            self._last_sent = now
            logger.debug("Endpoint replied: %s", body)
            return True
        finally:
            response.close()

    def close(self) -> None:
        self.session.close()
