"""Configuration for the subscription dispatcher.

This module provides the DispatchConfig dataclass which names the report
topic, the subscription store, and the object store holding tileset
metadata, and tunes dispatch policy.

Settings come from ``LOOKOUT_*`` environment variables. Each setting may
carry defaults per deployment environment (selected by
``LOOKOUT_ENVIRONMENT``) plus an ``all`` default that applies everywhere.

Usage
-----
Load the configuration for a test run:

>>> import os
>>> os.environ["LOOKOUT_ENVIRONMENT"] = "test"
>>> os.environ["LOOKOUT_STORAGE_BUCKET"] = "tiles"
>>> config = DispatchConfig.from_env()
>>> config.reports_topic
'report-requests'

"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import os
import zoneinfo
from pathlib import Path

from lookout.dispatch.errors import DispatchConfigError
from lookout.storage.factory import StorageBackend
from lookout.storage.http_store import DEFAULT_BASE_URL

_DEFAULT_ENVIRONMENT = "development"
_VALID_ENVIRONMENTS = frozenset({"development", "test", "production"})
_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


@dc.dataclass(frozen=True, slots=True)
class _Setting:
    """Describe one environment-driven setting."""

    key: str
    doc: str
    defaults: cabc.Mapping[str, str] = dc.field(default_factory=dict)


_REPORTS_TOPIC = _Setting(
    key="LOOKOUT_REPORTS_TOPIC",
    doc="Name of the topic where report requests should be pushed to.",
    defaults={"test": "report-requests"},
)
_DATABASE_URL = _Setting(
    key="LOOKOUT_DATABASE_URL",
    doc="SQLAlchemy URL of the database holding report subscriptions.",
    defaults={
        "development": "sqlite+aiosqlite:///lookout.db",
        "test": "sqlite+aiosqlite:///lookout-test.db",
    },
)
_NAMESPACE = _Setting(
    key="LOOKOUT_DATASTORE_NAMESPACE",
    doc=(
        "Namespace to scope all subscription store operations to. On "
        "development this should be unique to the user."
    ),
    defaults={"test": "test"},
)
_STORAGE_BUCKET = _Setting(
    key="LOOKOUT_STORAGE_BUCKET",
    doc="Bucket which contains the tilesets.",
)
_TILESETS_PATH = _Setting(
    key="LOOKOUT_STORAGE_TILESETS_PATH",
    doc="Path from the bucket root to the tilesets.",
    defaults={"all": "tilesets"},
)
_STORAGE_ROOT = _Setting(
    key="LOOKOUT_STORAGE_ROOT",
    doc="Directory holding bucket folders when the filesystem backend is used.",
)


def _current_environment() -> str:
    raw = os.environ.get("LOOKOUT_ENVIRONMENT", "").strip().lower()
    if not raw:
        return _DEFAULT_ENVIRONMENT
    if raw not in _VALID_ENVIRONMENTS:
        raise DispatchConfigError.invalid(
            "LOOKOUT_ENVIRONMENT", raw, "one of development, test, production"
        )
    return raw


def _read_setting(setting: _Setting, environment: str) -> str | None:
    """Resolve a setting from the environment, then its defaults."""
    raw = os.environ.get(setting.key, "").strip()
    if raw:
        return raw
    return setting.defaults.get(environment, setting.defaults.get("all"))


def _require(setting: _Setting, environment: str) -> str:
    """Resolve a required setting or name the variable the operator must set."""
    value = _read_setting(setting, environment)
    if value is None:
        raise DispatchConfigError.missing(setting.key, setting.doc)
    return value


def _parse_bool(env_var: str, *, default: bool) -> bool:
    raw = os.environ.get(env_var, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise DispatchConfigError.invalid(env_var, raw, "a boolean")


def _parse_positive_int(env_var: str, default: int) -> int:
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise DispatchConfigError.invalid(env_var, raw, "an integer") from exc
    if value < 1:
        raise DispatchConfigError.invalid(env_var, raw, "a positive integer")
    return value


def _parse_timezone(env_var: str) -> str:
    raw = os.environ.get(env_var, "").strip() or "UTC"
    try:
        zoneinfo.ZoneInfo(raw)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError) as exc:
        raise DispatchConfigError.invalid(env_var, raw, "an IANA time zone") from exc
    return raw


def _parse_backend(env_var: str) -> StorageBackend:
    raw = os.environ.get(env_var, "").strip().lower() or StorageBackend.HTTP.value
    try:
        return StorageBackend(raw)
    except ValueError as exc:
        raise DispatchConfigError.invalid(
            env_var, raw, "one of http, filesystem"
        ) from exc


def _optional(env_var: str) -> str | None:
    raw = os.environ.get(env_var, "").strip()
    return raw or None


@dc.dataclass(frozen=True, slots=True)
class DispatchConfig:
    """Configuration for one dispatcher process.

    Attributes
    ----------
    reports_topic
        Queue topic receiving report requests.
    database_url
        SQLAlchemy URL of the subscription store.
    namespace
        Store namespace all subscription queries are scoped to.
    storage_bucket
        Bucket holding ``{tilesets_path}/{tileset}/config.json`` blobs.
    tilesets_path
        Path prefix from the bucket root to the tilesets.
    storage_backend
        Object store adapter to use.
    storage_base_url
        Base URL for the HTTP object store.
    storage_root
        Root directory for the filesystem object store.
    storage_token
        Optional bearer token for the HTTP object store.
    active_only
        When true, only subscriptions flagged active are dispatched.
    max_concurrency
        Upper bound on subscription pipelines running at once.
    timezone
        IANA zone in which calendar units (days, weeks, months) are measured.
    report_actor
        Actor name stamped on published report request messages.
    fail_on_pipeline_error
        When true, any failed subscription makes the process exit non-zero.
    broker_url
        Redis URL for the Dramatiq broker; ``None`` leaves broker setup to the
        environment.
    environment
        Deployment environment the defaults were resolved for.

    """

    reports_topic: str
    database_url: str
    namespace: str
    storage_bucket: str
    tilesets_path: str = "tilesets"
    storage_backend: StorageBackend = StorageBackend.HTTP
    storage_base_url: str = DEFAULT_BASE_URL
    storage_root: Path | None = None
    storage_token: str | None = None
    active_only: bool = True
    max_concurrency: int = 10
    timezone: str = "UTC"
    report_actor: str = "generate_report"
    fail_on_pipeline_error: bool = False
    broker_url: str | None = None
    environment: str = _DEFAULT_ENVIRONMENT

    @property
    def tzinfo(self) -> zoneinfo.ZoneInfo:
        """Return the zone used for calendar arithmetic."""
        return zoneinfo.ZoneInfo(self.timezone)

    @classmethod
    def from_env(cls) -> DispatchConfig:
        """Create configuration from ``LOOKOUT_*`` environment variables.

        Returns
        -------
        DispatchConfig
            Configuration instance with values from environment or defaults.

        Raises
        ------
        DispatchConfigError
            If a required setting is missing or any value is malformed.

        """
        environment = _current_environment()
        storage_backend = _parse_backend("LOOKOUT_STORAGE_BACKEND")

        storage_root: Path | None = None
        raw_root = _read_setting(_STORAGE_ROOT, environment)
        if raw_root is not None:
            storage_root = Path(raw_root)
        elif storage_backend is StorageBackend.FILESYSTEM:
            raise DispatchConfigError.missing(_STORAGE_ROOT.key, _STORAGE_ROOT.doc)

        return cls(
            reports_topic=_require(_REPORTS_TOPIC, environment),
            database_url=_require(_DATABASE_URL, environment),
            namespace=_require(_NAMESPACE, environment),
            storage_bucket=_require(_STORAGE_BUCKET, environment),
            tilesets_path=_require(_TILESETS_PATH, environment),
            storage_backend=storage_backend,
            storage_base_url=_optional("LOOKOUT_STORAGE_BASE_URL") or DEFAULT_BASE_URL,
            storage_root=storage_root,
            storage_token=_optional("LOOKOUT_STORAGE_TOKEN"),
            active_only=_parse_bool("LOOKOUT_DISPATCH_ACTIVE_ONLY", default=True),
            max_concurrency=_parse_positive_int(
                "LOOKOUT_DISPATCH_MAX_CONCURRENCY", 10
            ),
            timezone=_parse_timezone("LOOKOUT_TIMEZONE"),
            report_actor=_optional("LOOKOUT_REPORT_ACTOR") or "generate_report",
            fail_on_pipeline_error=_parse_bool(
                "LOOKOUT_FAIL_ON_PIPELINE_ERROR", default=False
            ),
            broker_url=_optional("LOOKOUT_BROKER_URL"),
            environment=environment,
        )
