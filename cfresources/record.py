"""The DNS record resource."""

from __future__ import annotations

import logging
import math
import re
import struct
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from .base import ApiError, ResourceData, ResourceError, is_not_found

logger = logging.getLogger(__name__)

_INVALID_IDENTIFIER = "Invalid dns record identifier"
_ZERO_TIME = "0001-01-01T00:00:00Z"

_INTEGER = re.compile(r"[+-]?[0-9]+")
_FLOAT = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)

INT_FIELDS = frozenset(
    {
        "algorithm",
        "key_tag",
        "type",
        "usage",
        "selector",
        "matching_type",
        "weight",
        "priority",
        "port",
        "long_degrees",
        "lat_degrees",
        "long_minutes",
        "lat_minutes",
        "protocol",
        "digest_type",
        "order",
        "preference",
    }
)

FLOAT_FIELDS = frozenset(
    {
        "size",
        "altitude",
        "precision_horz",
        "precision_vert",
        "long_seconds",
        "lat_seconds",
    }
)

_NUMERIC_FLAG_TYPES = frozenset({"SRV", "CAA", "DNSKEY"})


@dataclass
class DNSRecord:
    """A DNS record as the API knows it; zero values mean unset."""

    id: str = ""
    type: str = ""
    name: str = ""
    content: str = ""
    proxiable: bool = False
    proxied: bool = False
    ttl: int = 0
    locked: bool = False
    zone_id: str = ""
    zone_name: str = ""
    created_on: datetime | None = None
    modified_on: datetime | None = None
    data: dict[str, Any] | None = None
    meta: dict[str, Any] | None = None
    priority: int = 0


class _RecordApi(Protocol):
    def zone_id_by_name(self, zone_name: str) -> str: ...

    def create_dns_record(self, zone_id: str, record: DNSRecord) -> DNSRecord: ...

    def dns_record(self, zone_id: str, record_id: str) -> DNSRecord: ...

    def update_dns_record(self, zone_id: str, record_id: str, record: DNSRecord) -> None: ...

    def delete_dns_record(self, zone_id: str, record_id: str) -> None: ...


def _format_float(number: float) -> str:
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "+Inf" if number > 0 else "-Inf"
    if number.is_integer() and abs(number) < 1e21:
        return str(int(number))
    return repr(number)


def _format_value(value: Any) -> str:
    """Render a value the way the API's string maps expect it."""
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_float(value)
    return str(value)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else _format_value(value)


def _parse_int(key: str, value: Any) -> int:
    text = _text(value)
    if not _INTEGER.fullmatch(text):
        raise ResourceError(f'invalid integer "{text}" for {key}')
    return int(text)


def _parse_float32(key: str, value: Any) -> float:
    text = _text(value)
    if not _FLOAT.fullmatch(text):
        raise ResourceError(f'invalid number "{text}" for {key}')
    number = float(text)
    if math.isinf(number) or math.isnan(number):
        return number
    try:
        return struct.unpack("<f", struct.pack("<f", number))[0]
    except OverflowError as err:
        raise ResourceError(f'number "{text}" for {key} is out of range') from err


def _format_timestamp(moment: datetime | None) -> str:
    if moment is None:
        return _ZERO_TIME
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if moment.year < 1000:
        text = f"{moment.year:04d}" + text[text.index("-"):]
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset()
    if not offset:
        return text + "Z"
    minutes_total = int(offset.total_seconds() // 60)
    sign = "+" if minutes_total >= 0 else "-"
    hours, minutes = divmod(abs(minutes_total), 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


def transform_to_dns_data(record_type: str, key: str, value: Any) -> Any:
    """Convert one configured data field to the type the API wants.

    Returns None for a flags field on a record type that has no flags.
    """
    if key == "flags":
        kind = record_type.upper()
        if kind in _NUMERIC_FLAG_TYPES:
            return _parse_int(key, value)
        if kind == "NAPTR":
            return _text(value)
        return None
    if key in INT_FIELDS:
        return _parse_int(key, value)
    if key in FLOAT_FIELDS:
        return _parse_float32(key, value)
    return _text(value)


def expand_string_map(value: Mapping[str, Any] | None) -> dict[str, str]:
    """Render every value of a map as a string; None gives an empty map."""
    if value is None:
        return {}
    return {key: _format_value(item) for key, item in value.items()}


def suppress_priority(data: ResourceData) -> bool:
    """Tell whether priority changes are irrelevant for this record type."""
    return data.get("type") not in ("MX", "URI")


def suppress_name_diff(old: str, new: str, data: ResourceData) -> bool:
    """Tell whether two names are equal once the zone suffix is dropped."""
    suffix = "." + (data.get("domain") or "")
    return old.removesuffix(suffix) == new.removesuffix(suffix)


def _data_map(record_type: str, data: ResourceData) -> dict[str, Any] | None:
    """Convert the configured data block, or None when none is configured."""
    configured, ok = data.get_ok("data")
    logger.debug("Data found in config: %r", configured)
    if not ok:
        return None
    converted = {}
    for key, value in configured.items():
        new_value = transform_to_dns_data(record_type, key, value)
        if new_value is None:
            continue
        converted[key] = new_value
    return converted


def _check_ttl(record: DNSRecord, data: ResourceData) -> None:
    ttl, ok = data.get_ok("ttl")
    if not ok:
        return
    ttl = int(ttl)
    if ttl != 1 and record.proxied:
        raise ResourceError(
            f"error validating record {record.name}: "
            "ttl must be set to 1 when `proxied` is true"
        )
    record.ttl = ttl


def create_record(data: ResourceData, client: _RecordApi) -> None:
    """Create the record described by data and read it back."""
    name = data.get("name") or ""
    record = DNSRecord(
        type=data.get("type") or "",
        name=name,
        proxied=bool(data.get("proxied")),
        zone_name=data.get("domain") or "",
    )

    value, value_ok = data.get_ok("value")
    if value_ok:
        record.content = value

    converted = _data_map(record.type, data)
    data_ok = converted is not None
    if data_ok:
        record.data = converted

    if value_ok == data_ok:
        raise ResourceError(
            f"either 'value' (present: {str(value_ok).lower()}) or "
            f"'data' (present: {str(data_ok).lower()}) must be provided"
        )

    priority, ok = data.get_ok("priority")
    if ok:
        record.priority = int(priority)

    _check_ttl(record, data)

    try:
        zone_id = client.zone_id_by_name(record.zone_name)
    except ApiError as err:
        raise ResourceError(f'Error finding zone "{record.zone_name}": {err}') from err

    data.set("zone_id", zone_id)
    record.zone_id = zone_id
    # Names are kept in lower case in the stored state.
    data.set("name", name.lower())

    logger.debug("Cloudflare Record create configuration: %r", record)

    try:
        created = client.create_dns_record(zone_id, record)
    except ApiError as err:
        raise ResourceError(f"Failed to create record: {err}") from err

    if not created.id:
        raise ResourceError("Failed to find record in Create response; Record was empty")

    data.id = created.id
    logger.info("Cloudflare Record ID: %s", data.id)
    read_record(data, client)


def read_record(data: ResourceData, client: _RecordApi) -> None:
    """Refresh data from the API; clear the id when the record is gone."""
    zone_id = data.get("zone_id") or ""
    try:
        record = client.dns_record(zone_id, data.id)
    except ApiError as err:
        if _INVALID_IDENTIFIER in str(err) or is_not_found(err):
            logger.warning("Removing record from state because it's not found in API")
            data.id = ""
            return
        raise

    converted = _data_map(record.type, data)
    if converted is not None:
        record.data = converted

    data.id = record.id
    data.set("hostname", record.name)
    data.set("type", record.type)
    data.set("value", record.content)
    data.set("ttl", record.ttl)
    data.set("priority", record.priority)
    data.set("proxied", record.proxied)
    data.set("created_on", _format_timestamp(record.created_on))
    data.set("data", expand_string_map(record.data))
    data.set("modified_on", _format_timestamp(record.modified_on))
    data.set("metadata", expand_string_map(record.meta))
    data.set("proxiable", record.proxiable)


def update_record(data: ResourceData, client: _RecordApi) -> None:
    """Replace the record with the configuration in data and read it back."""
    zone_id = data.get("zone_id") or ""
    record = DNSRecord(
        id=data.id,
        type=data.get("type") or "",
        name=data.get("name") or "",
        content=data.get("value") or "",
        zone_name=data.get("domain") or "",
        zone_id=zone_id,
        proxied=False,
    )

    converted = _data_map(record.type, data)
    if converted is not None:
        record.data = converted

    priority, ok = data.get_ok("priority")
    if ok:
        record.priority = int(priority)

    proxied, ok = data.get_ok("proxied")
    if ok:
        record.proxied = bool(proxied)

    _check_ttl(record, data)

    logger.debug("Cloudflare Record update configuration: %r", record)
    try:
        client.update_dns_record(zone_id, data.id, record)
    except ApiError as err:
        raise ResourceError(f"Failed to update Cloudflare Record: {err}") from err

    read_record(data, client)


def delete_record(data: ResourceData, client: _RecordApi) -> None:
    """Delete the record named by data's id."""
    zone_id = data.get("zone_id") or ""
    logger.info("Deleting Cloudflare Record: %s, %s", zone_id, data.id)
    try:
        client.delete_dns_record(zone_id, data.id)
    except ApiError as err:
        raise ResourceError(f"Error deleting Cloudflare Record: {err}") from err


def import_record(data: ResourceData, client: _RecordApi) -> list[ResourceData]:
    """Take an id of the form zoneName/recordId and fill in name, domain and zone."""
    parts = data.id.split("/", 1)
    if len(parts) != 2:
        raise ResourceError(
            f'invalid id "{data.id}" specified, should be in format '
            '"zoneName/recordId" for import'
        )
    zone_name, record_id = parts

    try:
        zone_id = client.zone_id_by_name(zone_name)
    except ApiError as err:
        raise ResourceError(f'error finding zoneName "{zone_name}": {err}') from err

    try:
        record = client.dns_record(zone_id, record_id)
    except ApiError as err:
        raise ResourceError(
            f'Unable to find record with ID "{data.id}": "{err}"'
        ) from err

    logger.info("Found record: %s", record.name)
    name = record.name.removesuffix("." + zone_name)

    data.set("name", name)
    data.set("domain", zone_name)
    data.set("zone_id", zone_id)
    data.id = record_id
    return [data]