from __future__ import annotations

import asyncio
import time
from collections.abc import Collection

import httpx
import structlog

from status_monitor import __version__
from status_monitor.config import Target
from status_monitor.models import ProbeResult


logger = structlog.get_logger(__name__)

PROBE_TIMEOUT_SECONDS = 8.0
USER_AGENT = f"status-monitor/{__version__}"


def build_client(*, timeout_seconds: float = PROBE_TIMEOUT_SECONDS) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=timeout_seconds,
        headers={"User-Agent": USER_AGENT},
    )


async def probe_target(
    target: Target,
    success_codes: Collection[int],
    client: httpx.AsyncClient,
    *,
    now_ms: int,
    timeout_seconds: float = PROBE_TIMEOUT_SECONDS,
) -> ProbeResult:
    """
    One HEAD request against the target URL. Never raises: every failure mode
    becomes a failed ProbeResult with status 0 and no latency.
    """
    started = time.perf_counter()
    try:
        resp = await asyncio.wait_for(
            client.head(target.url, follow_redirects=True, timeout=timeout_seconds),
            timeout=timeout_seconds,
        )
    except Exception as e:
        logger.warning(
            "Probe failed",
            target_id=target.id,
            url=target.url,
            error=f"{type(e).__name__}: {e}",
        )
        return ProbeResult.failed(now_ms=now_ms)

    elapsed_ms = int(round((time.perf_counter() - started) * 1000.0))
    status = int(resp.status_code)
    return ProbeResult(
        status=status,
        ok=status in success_codes,
        response_time=elapsed_ms,
        time=int(now_ms),
    )
