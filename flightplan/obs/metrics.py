"""In-process counters and latency histograms.

No external dependencies; a single lock per kind is enough for one uvicorn
worker. Snapshots are served on /metrics.
"""

from typing import Dict, Any, Optional, Tuple, List
import threading

LabelKey = Tuple[Tuple[str, str], ...]

_LOCK = threading.Lock()
_COUNTERS: Dict[Tuple[str, LabelKey], int] = {}

# name -> labels -> {"counts": [...], "sum_ms": float}
_BINS_MS: List[int] = [50, 100, 250, 500, 1000, 2500, 5000, 10000, 20000]
_HISTOGRAMS: Dict[str, Dict[LabelKey, Dict[str, Any]]] = {}


def _labels_key(labels: Optional[Dict[str, str]]) -> LabelKey:
    if not labels:
        return tuple()
    return tuple(sorted((str(k), str(v)) for k, v in labels.items()))


def _bin_index(value_ms: float) -> int:
    for i, upper in enumerate(_BINS_MS):
        if value_ms <= upper:
            return i
    return len(_BINS_MS)


def inc_counter(metric: str, labels: Optional[Dict[str, str]] = None, amount: int = 1) -> None:
    key = (metric, _labels_key(labels))
    with _LOCK:
        _COUNTERS[key] = _COUNTERS.get(key, 0) + amount


def record_timing(metric: str, value_ms: float, labels: Optional[Dict[str, str]] = None) -> None:
    if value_ms is None:
        return
    lk = _labels_key(labels)
    with _LOCK:
        series = _HISTOGRAMS.setdefault(metric, {})
        entry = series.get(lk)
        if entry is None:
            entry = {"counts": [0] * (len(_BINS_MS) + 1), "sum_ms": 0.0}
            series[lk] = entry
        entry["counts"][_bin_index(value_ms)] += 1
        entry["sum_ms"] += float(value_ms)


def get_counter(metric: str, labels: Optional[Dict[str, str]] = None) -> int:
    with _LOCK:
        return _COUNTERS.get((metric, _labels_key(labels)), 0)


def get_metrics_snapshot() -> Dict[str, Any]:
    with _LOCK:
        counters = [
            {"name": name, "labels": dict(lk), "value": value}
            for (name, lk), value in _COUNTERS.items()
        ]
        histograms = [
            {
                "name": name,
                "labels": dict(lk),
                "bins_ms": list(_BINS_MS),
                "counts": list(entry["counts"]),
                "sum_ms": entry["sum_ms"],
            }
            for name, series in _HISTOGRAMS.items()
            for lk, entry in series.items()
        ]
    return {"counters": counters, "histograms": histograms}
