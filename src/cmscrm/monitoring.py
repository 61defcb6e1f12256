# src/cmscrm/monitoring.py
"""
In-process request counters.

One ApiMetrics instance lives on app.state.metrics; tests build their own app
state, so nothing here is a module-level singleton.
"""
from __future__ import annotations

import threading
from collections import Counter
from typing import Any, Dict

from fastapi import Request

from src.cmscrm.utils.timezone import now_iso

API_PREFIX = "/api/"


class ApiMetrics:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total = 0
        self._by_path: Counter = Counter()
        self.started_at = now_iso()

    def record(self, method: str, path: str) -> None:
        with self._lock:
            self._total += 1
            self._by_path[f"{method} {path}"] += 1

    @property
    def api_calls(self) -> int:
        return self._total

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "api_calls": self._total,
                "started_at": self.started_at,
                "by_path": dict(self._by_path.most_common(20)),
            }


def get_metrics(request: Request) -> ApiMetrics:
    return request.app.state.metrics


async def api_metrics_middleware(request: Request, call_next):
    if request.url.path.startswith(API_PREFIX):
        metrics = getattr(request.app.state, "metrics", None)
        if metrics is not None:
            metrics.record(request.method, request.url.path)
    return await call_next(request)
