"""Minimal in-process metrics recorder (not suitable for multi-process aggregation)."""

from __future__ import annotations

from collections import Counter
from threading import Lock
from typing import Dict


class MetricsRecorder:
    def __init__(self) -> None:
        self._lock = Lock()
        self._requests = 0
        self._request_durations_ms: Dict[str, float] = {}
        self._rate_limited = 0
        self._tool_success: Counter[str] = Counter()
        self._tool_error: Counter[str] = Counter()
        self._faucet: Counter[str] = Counter()
        self._submissions: Dict[str, Counter[str]] = {}

    def incr_request(self) -> None:
        with self._lock:
            self._requests += 1

    def record_duration(self, request_id: str, duration_ms: float) -> None:
        with self._lock:
            self._request_durations_ms[request_id] = duration_ms

    def incr_rate_limited(self) -> None:
        with self._lock:
            self._rate_limited += 1

    def record_tool(self, tool: str, *, success: bool) -> None:
        with self._lock:
            if success:
                self._tool_success[tool] += 1
            else:
                self._tool_error[tool] += 1

    def record_faucet(self, outcome: str) -> None:
        """Count a faucet outcome: ``granted``, ``denied`` or ``released``."""
        with self._lock:
            self._faucet[outcome] += 1

    def record_submission(self, network: str, outcome: str) -> None:
        """Count a transaction submission per network; ``outcome`` is ``submitted`` or an error kind."""
        with self._lock:
            self._submissions.setdefault(network, Counter())[outcome] += 1

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            return {
                "requests": self._requests,
                "rate_limited": self._rate_limited,
                "tool_success": dict(self._tool_success),
                "tool_error": dict(self._tool_error),
                "faucet": dict(self._faucet),
                "submissions": {network: dict(counts) for network, counts in self._submissions.items()},
                "recent_request_durations_ms": dict(self._request_durations_ms),
            }

    def reset(self) -> None:
        with self._lock:
            self._requests = 0
            self._request_durations_ms.clear()
            self._rate_limited = 0
            self._tool_success.clear()
            self._tool_error.clear()
            self._faucet.clear()
            self._submissions.clear()


default_metrics = MetricsRecorder()
