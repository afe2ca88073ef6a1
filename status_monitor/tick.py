"""One scheduled cycle: probe every target, update records, prune, persist."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field

import httpx
import structlog

from status_monitor.config import Configuration
from status_monitor.models import ProbeResult, StateMap
from status_monitor.probe import PROBE_TIMEOUT_SECONDS, probe_target
from status_monitor.retention import compact
from status_monitor.state import apply_probe, reconcile
from status_monitor.store import KeyValueStore, load_config, load_state, save_state


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TickReport:
    now_ms: int
    probed: int
    healthy: int
    failed: int
    removed: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0


def now_unix_ms() -> int:
    return int(time.time() * 1000)


def process_tick(
    state: StateMap,
    config: Configuration,
    results: dict[str, ProbeResult],
    *,
    now_ms: int,
) -> tuple[StateMap, list[str]]:
    """
    Fold one tick's probe results into the state map.

    The given map is updated in place and returned along with the ids of the
    records removed by reconciliation. Targets without a result keep their
    record unchanged.
    """
    for target in config.unique_targets():
        result = results.get(target.id)
        if result is None:
            continue
        record = apply_probe(state.get(target.id), target, result, now_ms=now_ms)
        dropped_logs, dropped_incidents = compact(record, now_ms=now_ms)
        if dropped_logs or dropped_incidents:
            logger.info(
                "Compacted monitor record",
                target_id=target.id,
                dropped_logs=dropped_logs,
                dropped_incidents=dropped_incidents,
            )
        state[target.id] = record

    removed = reconcile(state, config.target_ids())
    return state, removed


async def probe_all(
    config: Configuration,
    client: httpx.AsyncClient,
    *,
    now_ms: int,
    timeout_seconds: float = PROBE_TIMEOUT_SECONDS,
) -> dict[str, ProbeResult]:
    targets = config.unique_targets()
    success = config.success_set()
    outcomes = await asyncio.gather(
        *(
            probe_target(t, success, client, now_ms=now_ms, timeout_seconds=timeout_seconds)
            for t in targets
        ),
        return_exceptions=True,
    )

    results: dict[str, ProbeResult] = {}
    for target, outcome in zip(targets, outcomes):
        if isinstance(outcome, ProbeResult):
            results[target.id] = outcome
            continue
        # probe_target does not raise; this covers cancellation of a single probe.
        logger.warning("Probe task aborted", target_id=target.id, error=type(outcome).__name__)
        results[target.id] = ProbeResult.failed(now_ms=now_ms)
    return results


async def run_tick(
    store: KeyValueStore,
    client: httpx.AsyncClient,
    *,
    default_config: Configuration | None = None,
    timeout_seconds: float = PROBE_TIMEOUT_SECONDS,
    now_ms: int | None = None,
) -> TickReport:
    started = time.perf_counter()
    now = now_unix_ms() if now_ms is None else int(now_ms)

    state, config = await asyncio.gather(
        asyncio.to_thread(load_state, store),
        asyncio.to_thread(load_config, store, default=default_config),
    )
    logger.info("Tick started", targets=len(config.unique_targets()), known_records=len(state))

    results = await probe_all(config, client, now_ms=now, timeout_seconds=timeout_seconds)
    state, removed = process_tick(state, config, results, now_ms=now)
    await asyncio.to_thread(save_state, store, state)

    healthy = sum(1 for r in results.values() if r.ok)
    report = TickReport(
        now_ms=now,
        probed=len(results),
        healthy=healthy,
        failed=len(results) - healthy,
        removed=removed,
        elapsed_ms=round((time.perf_counter() - started) * 1000.0, 3),
    )
    logger.info(
        "Tick finished",
        probed=report.probed,
        healthy=report.healthy,
        failed=report.failed,
        removed=len(report.removed),
        elapsed_ms=report.elapsed_ms,
    )
    return report
