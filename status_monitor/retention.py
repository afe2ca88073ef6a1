from __future__ import annotations

from status_monitor.models import MonitorRecord


RETENTION_WINDOW_MS = 30 * 24 * 60 * 60 * 1000
# One probe per 5 minutes for 30 days. Compaction only runs above this size,
# so between compactions the log may hold older entries.
LOG_HIGH_WATER_MARK = 8640
MAX_INCIDENTS = 50


def compact_logs(
    record: MonitorRecord,
    *,
    now_ms: int,
    high_water_mark: int = LOG_HIGH_WATER_MARK,
    retention_ms: int = RETENTION_WINDOW_MS,
) -> int:
    """Age-based eviction, triggered by size. Returns the number of entries dropped."""
    if len(record.detailed_logs) <= high_water_mark:
        return 0
    cutoff = int(now_ms) - int(retention_ms)
    before = len(record.detailed_logs)
    record.detailed_logs = [r for r in record.detailed_logs if r.time > cutoff]
    return before - len(record.detailed_logs)


def compact_incidents(record: MonitorRecord, *, max_incidents: int = MAX_INCIDENTS) -> int:
    # May drop an open incident once more than max_incidents have piled up.
    excess = len(record.incidents) - max(0, int(max_incidents))
    if excess <= 0:
        return 0
    record.incidents = record.incidents[excess:]
    return excess


def compact(record: MonitorRecord, *, now_ms: int) -> tuple[int, int]:
    return compact_logs(record, now_ms=now_ms), compact_incidents(record)
