import threading
import time
from typing import Any


_lock = threading.Lock()
_metrics: dict[str, float] = {
    "live_sessions_active": 0.0,
    "live_sessions_evicted": 0.0,
    "sessions_finished": 0.0,
    "sessions_cancelled": 0.0,
    "scores_upserted": 0.0,
    "saves_started": 0.0,
    "saves_coalesced": 0.0,
    "saves_failed": 0.0,
    "save_duration_total_ms": 0.0,
    "save_duration_samples": 0.0,
}


def increment_metric(name: str, amount: float = 1.0) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        _metrics[key] = float(_metrics.get(key, 0.0)) + float(amount)


def set_metric(name: str, value: float) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        _metrics[key] = max(0.0, float(value))


def observe_save_duration_ms(value_ms: float) -> None:
    duration = max(0.0, float(value_ms or 0.0))
    with _lock:
        _metrics["save_duration_total_ms"] = float(_metrics.get("save_duration_total_ms", 0.0)) + duration
        _metrics["save_duration_samples"] = float(_metrics.get("save_duration_samples", 0.0)) + 1.0


def get_metrics_snapshot(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    with _lock:
        data = dict(_metrics)

    save_samples = max(1.0, float(data.get("save_duration_samples") or 0.0))

    payload: dict[str, Any] = {
        "generated_at": time.time(),
        "live_sessions_active": int(data.get("live_sessions_active") or 0.0),
        "live_sessions_evicted": int(data.get("live_sessions_evicted") or 0.0),
        "sessions_finished": int(data.get("sessions_finished") or 0.0),
        "sessions_cancelled": int(data.get("sessions_cancelled") or 0.0),
        "scores_upserted": int(data.get("scores_upserted") or 0.0),
        "saves_started": int(data.get("saves_started") or 0.0),
        "saves_coalesced": int(data.get("saves_coalesced") or 0.0),
        "saves_failed": int(data.get("saves_failed") or 0.0),
        "save_duration_samples": int(data.get("save_duration_samples") or 0.0),
        "avg_save_duration_ms": round(float(data.get("save_duration_total_ms") or 0.0) / save_samples, 2),
    }

    if extra:
        payload.update(extra)
    return payload
