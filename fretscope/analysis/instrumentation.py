"""Lightweight structured logging for analysis sessions.

Emits JSONL events (snapshots, calibration results, config) and a timing
summary per analysis step. All writes are best-effort and never raise into
the frame-processing path.
"""
from __future__ import annotations

import json
import logging
import os
import time
from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)


def _json_default(o: Any) -> Any:
    try:
        import numpy as _np

        if isinstance(o, _np.floating):
            return float(o)
        if isinstance(o, _np.integer):
            return int(o)
        if isinstance(o, _np.ndarray):
            return o.tolist()
    except ImportError:  # pragma: no cover
        pass
    if is_dataclass(o) and not isinstance(o, type):
        return asdict(o)
    return str(o)


class SessionLogger:
    """Structured logger that writes ``events.jsonl`` and ``timing.json``."""

    def __init__(self, base_dir: str = "results", run_name: Optional[str] = None):
        self.base_dir = base_dir
        self.run_name = run_name or f"session_{int(time.time())}"
        self.run_dir = os.path.join(self.base_dir, self.run_name)
        os.makedirs(self.run_dir, exist_ok=True)
        self.events_path = os.path.join(self.run_dir, "events.jsonl")
        self.timing_path = os.path.join(self.run_dir, "timing.json")
        self._totals: Dict[str, float] = {}
        self._counts: Dict[str, int] = {}
        self._start_time = time.perf_counter()
        self.log_event("session", "start", {"run_dir": self.run_dir})

    def log_event(self, stage: str, event: str, payload: Optional[Dict[str, Any]] = None) -> None:
        entry: Dict[str, Any] = {"stage": stage, "event": event, "timestamp": time.time()}
        if payload:
            entry.update(payload)
        try:
            with open(self.events_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, default=_json_default) + "\n")
        except OSError as e:
            # Never break analysis due to logging failures
            logger.debug("event write failed: %s", e)

    def record_timing(self, stage: str, duration_s: float) -> None:
        self._totals[stage] = self._totals.get(stage, 0.0) + float(duration_s)
        self._counts[stage] = self._counts.get(stage, 0) + 1

    @contextmanager
    def timed(self, stage: str) -> Iterator[None]:
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self.record_timing(stage, time.perf_counter() - t0)

    def emit_config(self, config_obj: Any) -> None:
        try:
            payload = asdict(config_obj)
        except TypeError:
            payload = {"repr": str(config_obj)}
        self.log_event("session", "config", {"config": payload})

    @property
    def timing(self) -> Dict[str, Dict[str, float]]:
        return {
            stage: {
                "total_s": total,
                "calls": self._counts[stage],
                "mean_ms": 1000.0 * total / max(1, self._counts[stage]),
            }
            for stage, total in self._totals.items()
        }

    def finalize(self) -> None:
        summary = dict(self.timing)
        summary["wall"] = {"total_s": float(time.perf_counter() - self._start_time), "calls": 1, "mean_ms": 0.0}
        try:
            with open(self.timing_path, "w", encoding="utf-8") as f:
                json.dump(summary, f, indent=2)
        except OSError as e:
            logger.debug("timing write failed: %s", e)
        self.log_event("session", "end", {"frames": self._counts.get("frame", 0)})
