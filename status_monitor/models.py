from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# Status recorded when a probe fails before any HTTP response arrives
# (DNS failure, refused connection, timeout, invalid URL).
PROBE_FAILED_STATUS = 0

DEFAULT_CATEGORY_ID = "none"


@dataclass
class ProbeResult:
    status: int
    ok: bool
    response_time: int
    time: int  # unix ms

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "ok": self.ok,
            "responseTime": self.response_time,
            "time": self.time,
        }

    @classmethod
    def failed(cls, *, now_ms: int) -> ProbeResult:
        return cls(status=PROBE_FAILED_STATUS, ok=False, response_time=0, time=int(now_ms))


@dataclass
class Incident:
    start: int  # unix ms
    code: int
    end: int | None = None  # None while the incident is open

    @property
    def is_open(self) -> bool:
        return self.end is None

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start, "end": self.end, "code": self.code}


@dataclass
class MonitorRecord:
    name: str
    url: str
    category_id: str = DEFAULT_CATEGORY_ID
    last_status: ProbeResult | None = None
    detailed_logs: list[ProbeResult] = field(default_factory=list)
    incidents: list[Incident] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "categoryId": self.category_id,
            "lastStatus": self.last_status.to_dict() if self.last_status is not None else None,
            "detailedLogs": [r.to_dict() for r in self.detailed_logs],
            "incidents": [i.to_dict() for i in self.incidents],
        }


StateMap = dict[str, MonitorRecord]


def _coerce_int(value: Any, *, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return int(default)
    try:
        return int(value)
    except (TypeError, ValueError):
        return int(default)


def coerce_probe_result(raw: Any) -> ProbeResult | None:
    if not isinstance(raw, dict):
        return None
    return ProbeResult(
        status=_coerce_int(raw.get("status"), default=PROBE_FAILED_STATUS),
        ok=raw.get("ok") is True,
        response_time=_coerce_int(raw.get("responseTime")),
        time=_coerce_int(raw.get("time")),
    )


def coerce_incident(raw: Any) -> Incident | None:
    if not isinstance(raw, dict):
        return None
    end_raw = raw.get("end")
    return Incident(
        start=_coerce_int(raw.get("start")),
        end=None if end_raw is None else _coerce_int(end_raw),
        code=_coerce_int(raw.get("code"), default=PROBE_FAILED_STATUS),
    )


def coerce_record(raw: Any) -> MonitorRecord | None:
    """
    Best-effort decode of one persisted monitor record.
    Entries that are not objects are dropped; list order is preserved as stored.
    """
    if not isinstance(raw, dict):
        return None

    logs: list[ProbeResult] = []
    for item in raw.get("detailedLogs") or []:
        result = coerce_probe_result(item)
        if result is not None:
            logs.append(result)

    incidents: list[Incident] = []
    for item in raw.get("incidents") or []:
        incident = coerce_incident(item)
        if incident is not None:
            incidents.append(incident)

    return MonitorRecord(
        name=str(raw.get("name") or ""),
        url=str(raw.get("url") or ""),
        category_id=str(raw.get("categoryId") or DEFAULT_CATEGORY_ID),
        last_status=coerce_probe_result(raw.get("lastStatus")),
        detailed_logs=logs,
        incidents=incidents,
    )


def state_from_dict(raw: dict[str, Any]) -> StateMap:
    state: StateMap = {}
    for target_id, item in raw.items():
        if not isinstance(target_id, str) or not target_id:
            continue
        record = coerce_record(item)
        if record is not None:
            state[target_id] = record
    return state


def state_to_dict(state: StateMap) -> dict[str, Any]:
    return {target_id: record.to_dict() for target_id, record in state.items()}
