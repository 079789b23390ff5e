"""Link and provenance checks between local records and provider events.

A local record is *linked* once it carries the id of the provider event
it was exported to.  A provider event is of *foreign origin* unless its
provenance stamp names this system; only foreign events are eligible for
import, which keeps exported events from echoing back as new records.
"""

from __future__ import annotations

from calsync.models.records import ExternalEvent, ScheduleRecord

SOURCE_APP_KEY = "source_app"
SOURCE_ID_KEY = "source_id"
SOURCE_TYPE_KEY = "source_type"

# camelCase keys stamped by earlier releases of the suite.
_LEGACY_KEYS = {
    SOURCE_APP_KEY: "sourceApp",
    SOURCE_ID_KEY: "sourceId",
    SOURCE_TYPE_KEY: "sourceType",
}


def is_linked(record: ScheduleRecord) -> bool:
    """Return ``True`` if *record* has already been exported."""
    return bool(record.external_event_id)


def provenance_of(event: ExternalEvent) -> tuple[str | None, str | None, str | None]:
    """Return the ``(source_app, source_id, source_type)`` stamp of *event*.

    Missing entries are ``None``.
    """
    return (
        _stamp_value(event, SOURCE_APP_KEY),
        _stamp_value(event, SOURCE_ID_KEY),
        _stamp_value(event, SOURCE_TYPE_KEY),
    )


def is_foreign_origin(event: ExternalEvent, source_app: str) -> bool:
    """Return ``True`` unless *event* was authored by *source_app*."""
    return _stamp_value(event, SOURCE_APP_KEY) != source_app


def _stamp_value(event: ExternalEvent, key: str) -> str | None:
    metadata = event.private_metadata
    value = metadata.get(key)
    if value is None:
        value = metadata.get(_LEGACY_KEYS[key])
    return value
