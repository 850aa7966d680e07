"""Lookout runtime entrypoint for scheduled dispatch runs.

Each invocation runs exactly one dispatch cycle and exits, so a scheduler
(cron, a Kubernetes CronJob, Cloud Scheduler) drives the cadence.

Configuration is driven by ``LOOKOUT_*`` environment variables (see
:class:`lookout.dispatch.config.DispatchConfig`), plus:

- ``LOOKOUT_LOG_LEVEL``: Log level (default ``INFO``)

Exit codes:

- ``0``: the cycle ran; individual subscription failures are logged only
- ``1``: configuration was invalid, the cycle aborted, or a subscription
  failed while ``LOOKOUT_FAIL_ON_PIPELINE_ERROR`` is set

Run the dispatcher directly with ``python -m lookout.runtime``.
"""

from __future__ import annotations

import argparse
import asyncio

from lookout.common.time import parse_aware_iso
from lookout.dispatch.config import DispatchConfig
from lookout.dispatch.errors import DispatchConfigError
from lookout.dispatch.factory import run_dispatch_cycle
from lookout.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_exception,
    log_info,
    log_warning,
    resolve_log_level,
)

__all__ = ["main"]

logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lookout-dispatch",
        description="Publish report requests for every due report subscription.",
    )
    parser.add_argument(
        "--as-of",
        default=None,
        help="ISO 8601 instant with offset to check subscriptions against",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level; overrides LOOKOUT_LOG_LEVEL",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run one dispatch cycle.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Process exit code.

    """
    args = _build_parser().parse_args(argv)

    log_level_str = resolve_log_level(args.log_level)
    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid LOOKOUT_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    try:
        as_of = parse_aware_iso(args.as_of)
        config = DispatchConfig.from_env()
    except (DispatchConfigError, ValueError) as exc:
        # Validation failures need no traceback
        log_error(logger, "%s", exc)
        return 1

    try:
        summary = asyncio.run(run_dispatch_cycle(config, as_of))
    except Exception as exc:  # noqa: BLE001 - top-level boundary
        log_exception(logger, "Unhandled error on processing report subscriptions", exc)
        return 1

    log_info(
        logger,
        "Processed %d due subscription(s): %d published, %d not ready, %d failed",
        summary.attempted,
        len(summary.published),
        len(summary.not_ready),
        len(summary.failures),
    )
    if summary.failures and config.fail_on_pipeline_error:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
