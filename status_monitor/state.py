"""Per-target status transitions, incident bookkeeping and registry reconciliation."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from status_monitor.config import Target
from status_monitor.models import Incident, MonitorRecord, ProbeResult, StateMap


logger = structlog.get_logger(__name__)


def new_record(target: Target) -> MonitorRecord:
    return MonitorRecord(
        name=target.display_name,
        url=target.url,
        category_id=target.effective_category_id,
    )


def sync_target(record: MonitorRecord, target: Target) -> None:
    # Display fields follow the configuration; history is keyed by id only.
    record.name = target.display_name
    record.url = target.url
    record.category_id = target.effective_category_id


def was_healthy(record: MonitorRecord) -> bool:
    """A target with no previous probe counts as healthy."""
    if record.last_status is None:
        return True
    return record.last_status.ok


def update_incidents(record: MonitorRecord, result: ProbeResult, *, now_ms: int) -> Incident | None:
    """
    Open or close an incident for a healthy<->unhealthy transition.

    Returns the incident that was opened or closed, or None when nothing changed.
    Only the most recent incident is ever closed; an older open incident (or a
    recovery with no open incident at all) is left untouched.
    """
    previously_ok = was_healthy(record)

    if previously_ok and not result.ok:
        incident = Incident(start=int(now_ms), end=None, code=result.status)
        record.incidents.append(incident)
        return incident

    if not previously_ok and result.ok:
        if not record.incidents:
            return None
        last = record.incidents[-1]
        if not last.is_open:
            return None
        last.end = int(now_ms)
        return last

    return None


def apply_probe(
    record: MonitorRecord | None,
    target: Target,
    result: ProbeResult,
    *,
    now_ms: int,
) -> MonitorRecord:
    if record is None:
        record = new_record(target)
    else:
        sync_target(record, target)

    changed = update_incidents(record, result, now_ms=now_ms)
    if changed is not None:
        if changed.is_open:
            logger.info("Incident opened", target_id=target.id, code=changed.code, start=changed.start)
        else:
            logger.info("Incident closed", target_id=target.id, start=changed.start, end=changed.end)

    record.last_status = result
    record.detailed_logs.append(result)
    return record


def reconcile(state: StateMap, active_ids: Iterable[str]) -> list[str]:
    """Drop every record whose id is no longer configured. Returns the removed ids."""
    keep = set(active_ids)
    removed = [target_id for target_id in state if target_id not in keep]
    for target_id in removed:
        del state[target_id]
    if removed:
        logger.info("Removed stale monitor records", target_ids=removed)
    return removed
