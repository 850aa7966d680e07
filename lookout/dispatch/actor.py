"""Dramatiq actor that runs a dispatch cycle on demand.

An external scheduler triggers a cycle by enqueueing a message for this
actor; the worker then builds fresh dependencies from the environment and
dispatches every due subscription.

Usage
-----
>>> dispatch_due_subscriptions_job.send()
>>> dispatch_due_subscriptions_job.send(as_of_iso="2024-03-10T00:00:00Z")

"""

from __future__ import annotations

import asyncio
import os

import dramatiq

from lookout.common.time import parse_aware_iso
from lookout.dispatch._broker import ensure_broker_configured
from lookout.dispatch.config import DispatchConfig
from lookout.dispatch.factory import run_dispatch_cycle
from lookout.logging import get_logger, log_info

logger = get_logger(__name__)

_broker = ensure_broker_configured(os.environ.get("LOOKOUT_BROKER_URL") or None)


# Retries would replay the whole batch; the next scheduled trigger retries instead.
@dramatiq.actor(broker=_broker, max_retries=0)
def dispatch_due_subscriptions_job(*, as_of_iso: str | None = None) -> dict[str, int]:
    """Dispatch every due subscription once.

    Parameters
    ----------
    as_of_iso
        Optional ISO format reference time for the due check. Must include
        timezone information (e.g., '2024-03-10T00:00:00Z').

    Returns
    -------
    dict[str, int]
        Counts of published, not-ready and failed subscriptions.

    Raises
    ------
    BatchDispatchError
        If any subscription failed and ``LOOKOUT_FAIL_ON_PIPELINE_ERROR`` is
        set.

    """
    as_of = parse_aware_iso(as_of_iso, name="as_of_iso")
    config = DispatchConfig.from_env()
    summary = asyncio.run(run_dispatch_cycle(config, as_of))
    log_info(
        logger,
        "Dispatch job finished: published=%d not_ready=%d failed=%d",
        len(summary.published),
        len(summary.not_ready),
        len(summary.failures),
    )
    if config.fail_on_pipeline_error:
        summary.raise_for_failures()
    return {
        "published": len(summary.published),
        "not_ready": len(summary.not_ready),
        "failed": len(summary.failures),
    }
