"""Broker configuration helpers for Dramatiq publishing.

This private module encapsulates broker detection and configuration so the
dispatcher always publishes through an explicitly chosen broker.
"""

from __future__ import annotations

import os
import sys
import threading

import dramatiq
import dramatiq.broker
from dramatiq.brokers.stub import StubBroker

_BROKER_LOCK = threading.Lock()


def _is_running_tests() -> bool:
    """Check if the current process is running under pytest."""
    return "pytest" in sys.modules or any(
        key in os.environ
        for key in ["PYTEST_CURRENT_TEST", "PYTEST_XDIST_WORKER", "PYTEST_ADDOPTS"]
    )


def _should_use_stub_broker() -> bool:
    """Return True when a StubBroker may stand in for a real broker."""
    allow_stub = os.environ.get("LOOKOUT_ALLOW_STUB_BROKER", "")
    return allow_stub.lower() in {"1", "true", "yes"} or _is_running_tests()


def _current_broker() -> dramatiq.Broker | None:
    """Return the explicitly installed broker, if any.

    ``dramatiq.get_broker()`` builds a default localhost broker when none is
    set, so the module global is read directly.
    """
    return dramatiq.broker.global_broker


def ensure_broker_configured(broker_url: str | None = None) -> dramatiq.Broker:
    """Return the process broker, configuring one when none is set.

    Parameters
    ----------
    broker_url
        Redis URL. When given and the current broker is not already a
        ``RedisBroker``, a ``RedisBroker`` for this URL is installed.

    Returns
    -------
    dramatiq.Broker
        The broker report requests are published through.

    Raises
    ------
    RuntimeError
        If no broker is configured and a stub broker is not allowed.

    """
    with _BROKER_LOCK:
        if broker_url:
            from dramatiq.brokers.redis import RedisBroker

            current = _current_broker()
            if isinstance(current, RedisBroker):
                return current
            broker = RedisBroker(url=broker_url)
            dramatiq.set_broker(broker)
            return broker

        current = _current_broker()
        if current is not None:
            return current

        if not _should_use_stub_broker():
            message = (
                "No Dramatiq broker configured. Set LOOKOUT_BROKER_URL, or "
                "LOOKOUT_ALLOW_STUB_BROKER=1 for local/test runs."
            )
            raise RuntimeError(message)

        broker = StubBroker()
        dramatiq.set_broker(broker)
        return broker
