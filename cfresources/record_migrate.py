"""Migration of stored DNS record state between schema versions."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Protocol

from .base import ApiError, ResourceError
from .record import DNSRecord

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")
_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})


@dataclass
class InstanceState:
    """The stored id and flat string attributes of one resource."""

    id: str = ""
    attributes: dict[str, str] = field(default_factory=dict)


class _MigrateApi(Protocol):
    def zone_id_by_name(self, zone_name: str) -> str: ...

    def dns_records(self, zone_id: str, search: DNSRecord) -> list[DNSRecord]: ...


def _parse_int(text: str, key: str) -> int:
    if not _INTEGER.fullmatch(text):
        raise ResourceError(f"Error converting {key} to int in Cloudflare Record Migration")
    return int(text)


def _parse_bool(text: str, key: str) -> bool:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ResourceError(f"Error converting {key} to bool in Cloudflare Record Migration")


def migrate_record_state(
    version: int, state: InstanceState, client: _MigrateApi
) -> InstanceState:
    """Bring a record state of the given schema version up to date."""
    if version == 0:
        logger.info("Found Cloudflare Record State v0; migrating to v1")
        return migrate_record_state_v0_to_v1(state, client)
    raise ResourceError(f"Unexpected schema version: {version}")


def _matches(state: InstanceState, record: DNSRecord) -> bool:
    attributes = state.attributes

    ttl = attributes.get("ttl", "")
    if ttl and _parse_int(ttl, "ttl") != record.ttl:
        return False

    proxied = attributes.get("proxied", "")
    if proxied and _parse_bool(proxied, "proxied") != record.proxied:
        return False

    priority = attributes.get("priority", "")
    if priority and _parse_int(priority, "priority") != record.priority:
        return False

    return True


def migrate_record_state_v0_to_v1(
    state: InstanceState, client: _MigrateApi
) -> InstanceState:
    """Replace a version 0 record id with the id the API now uses."""
    if not state.id:
        logger.debug("Empty InstanceState; nothing to migrate.")
        return state

    attributes = state.attributes
    logger.debug("Attributes before migration: %r", attributes)

    domain = attributes.get("domain", "")
    try:
        zone_id = client.zone_id_by_name(domain)
    except ApiError as err:
        raise ResourceError(f'Error finding zone "{domain}": {err}') from err

    # Only type, name and content take part in the search.
    search = DNSRecord(
        type=attributes.get("type", ""),
        name=attributes.get("hostname", ""),
        content=attributes.get("value", ""),
    )
    records = client.dns_records(zone_id, search)

    for record in records:
        if not _matches(state, record):
            continue
        attributes["id"] = record.id
        state.id = record.id
        logger.debug("Attributes after migration: %r", attributes)
        return state

    logger.debug("Attributes after no migration: %r", attributes)
    raise ResourceError("No matching Record found")