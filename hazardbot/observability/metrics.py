"""
Turn Counters & Latency Snapshot
--------------------------------
Redis-backed counters recorded by the HTTP transport after each turn, and the
snapshot served by /admin/stats. Missing keys (first boot) read as zero.
"""
from __future__ import annotations
import time
from typing import List, Tuple
from hazardbot.store.redis_conn import get_redis

K_TURNS = "metrics:turns"
K_REPROMPTS = "metrics:reprompts"
K_COMPLETED = "metrics:completed"
K_FAILED = "metrics:failed"
K_TURN_LAT = "metrics:turn:latencies"   # LPUSH ms

_MAX_SAMPLES = 500  # cap to bound percentile computation cost

_KIND_COUNTERS = {
    "REPROMPT": K_REPROMPTS,
    "COMPLETED": K_COMPLETED,
    "FAILED": K_FAILED,
}

def _percentile(data: List[float], p: float) -> float:
    """Deterministic percentile (nearest-rank on sorted data)."""
    if not data:
        return 0.0
    d = sorted(data)
    k = max(1, int(round(p * len(d))))
    return float(d[k - 1])

def record_turn(kind: str, latency_ms: int) -> None:
    r = get_redis()
    r.incr(K_TURNS, 1)
    counter = _KIND_COUNTERS.get(kind)
    if counter:
        r.incr(counter, 1)
    r.lpush(K_TURN_LAT, int(latency_ms))
    r.ltrim(K_TURN_LAT, 0, _MAX_SAMPLES - 1)

def _read_latency_list(key: str) -> List[float]:
    r = get_redis()
    out: List[float] = []
    for x in r.lrange(key, 0, _MAX_SAMPLES - 1) or []:
        try:
            out.append(float(x))
        except (TypeError, ValueError):
            continue
    return out

def _p50_p95(latencies: List[float]) -> Tuple[float, float]:
    if not latencies:
        return 0.0, 0.0
    return _percentile(latencies, 0.50), _percentile(latencies, 0.95)

def get_stats_snapshot() -> dict:
    r = get_redis()
    turns = int(r.get(K_TURNS) or 0)
    completed = int(r.get(K_COMPLETED) or 0)
    p50, p95 = _p50_p95(_read_latency_list(K_TURN_LAT))
    return {
        "turns": turns,
        "reprompts": int(r.get(K_REPROMPTS) or 0),
        "completed": completed,
        "failed": int(r.get(K_FAILED) or 0),
        "p50_turn_latency_ms": round(p50, 3),
        "p95_turn_latency_ms": round(p95, 3),
        "snapshot_at": int(time.time()),
    }
