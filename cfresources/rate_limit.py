"""The rate limit resource."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from .base import ApiError, ResourceData, ResourceError, is_not_found
from .rate_limit_codec import (
    RateLimit,
    expand_rate_limit_action,
    expand_rate_limit_bypass,
    expand_rate_limit_correlate,
    expand_rate_limit_traffic_matcher,
    flatten_rate_limit_action,
    flatten_rate_limit_correlate,
    flatten_rate_limit_traffic_matcher,
)

logger = logging.getLogger(__name__)

_MAX_THRESHOLD = 1000000
_MAX_PERIOD = 86400
_MAX_DESCRIPTION = 1024


class _RateLimitApi(Protocol):
    def zone_id_by_name(self, zone_name: str) -> str: ...

    def create_rate_limit(self, zone_id: str, limit: RateLimit) -> RateLimit: ...

    def rate_limit(self, zone_id: str, limit_id: str) -> RateLimit: ...

    def update_rate_limit(self, zone_id: str, limit_id: str, limit: RateLimit) -> RateLimit: ...

    def delete_rate_limit(self, zone_id: str, limit_id: str) -> None: ...


def _check_range(key: str, value: Any, low: int, high: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not low <= value <= high:
        raise ValueError(f"expected {key} to be in the range ({low} - {high}), got {value}")
    return value


def _rate_limit_from_data(data: ResourceData) -> RateLimit:
    threshold = _check_range("threshold", data.get("threshold"), 1, _MAX_THRESHOLD)
    period = _check_range("period", data.get("period"), 1, _MAX_PERIOD)

    try:
        action = expand_rate_limit_action(data)
    except ResourceError as err:
        raise ResourceError(f"error expanding rate limit action: {err}") from err

    limit = RateLimit(threshold=threshold, period=period, action=action)
    limit.match = expand_rate_limit_traffic_matcher(data)

    disabled, ok = data.get_ok("disabled")
    if ok:
        limit.disabled = bool(disabled)

    description, ok = data.get_ok("description")
    if ok:
        if len(description) > _MAX_DESCRIPTION:
            raise ValueError(
                f"expected length of description to be in the range "
                f"(0 - {_MAX_DESCRIPTION}), got {description}"
            )
        limit.description = description

    patterns, ok = data.get_ok("bypass_url_patterns")
    if ok:
        limit.bypass = expand_rate_limit_bypass(patterns)

    limit.correlate = expand_rate_limit_correlate(data)
    return limit


def create_rate_limit(data: ResourceData, client: _RateLimitApi) -> None:
    """Create the rate limit described by data and read it back."""
    zone_name = data.get("zone") or ""
    zone_id = data.get("zone_id") or ""
    if not zone_name and not zone_id:
        raise ResourceError("either zone name or ID must be provided")

    limit = _rate_limit_from_data(data)

    if not zone_id:
        try:
            zone_id = client.zone_id_by_name(zone_name)
        except ApiError as err:
            raise ResourceError(f'error finding zone "{zone_name}": {err}') from err

    # Zone ids are immutable, so there is no need to look them up again.
    data.set("zone_id", zone_id)
    logger.debug("Creating Cloudflare Rate Limit from struct: %r", limit)

    try:
        created = client.create_rate_limit(zone_id, limit)
    except ApiError as err:
        raise ResourceError(f"error creating rate limit for zone: {err}") from err

    if not created.id:
        raise ResourceError("failed to find id in Create response; resource was empty")

    data.id = created.id
    logger.info("Cloudflare Rate Limit ID: %s", data.id)
    read_rate_limit(data, client)


def update_rate_limit(data: ResourceData, client: _RateLimitApi) -> None:
    """Replace the rate limit with the configuration in data and read it back."""
    zone_id = data.get("zone_id") or ""
    limit = _rate_limit_from_data(data)

    try:
        client.update_rate_limit(zone_id, data.id, limit)
    except ApiError as err:
        raise ResourceError(f"error creating rate limit for zone: {err}") from err

    read_rate_limit(data, client)


def read_rate_limit(data: ResourceData, client: _RateLimitApi) -> None:
    """Refresh data from the API; clear the id when the rate limit is gone."""
    zone_id = data.get("zone_id") or ""
    limit_id = data.id

    try:
        limit = client.rate_limit(zone_id, limit_id)
    except ApiError as err:
        if is_not_found(err):
            logger.info("Resource %s in zone %s no longer exists", limit_id, zone_id)
            data.id = ""
            return
        raise ResourceError(
            f"Error reading rate limit resource from API for resource {limit_id} "
            f"in zone {zone_id}: {err}"
        ) from err

    logger.debug("Read Cloudflare Rate Limit from API as struct: %r", limit)

    data.set("threshold", limit.threshold)
    data.set("period", limit.period)
    data.set("match", flatten_rate_limit_traffic_matcher(limit.match))
    data.set("action", flatten_rate_limit_action(limit.action))

    if limit.correlate is not None:
        data.set("correlate", flatten_rate_limit_correlate(limit.correlate))

    data.set("description", limit.description)
    data.set("disabled", limit.disabled)

    patterns = set()
    for item in limit.bypass:
        if item.name == "url":
            patterns.add(item.value)
        else:
            logger.warning(
                "Unknown bypass type found in rate limit %r: %s", data.id, item.name
            )
    data.set("bypass_url_patterns", patterns)


def delete_rate_limit(data: ResourceData, client: _RateLimitApi) -> None:
    """Delete the rate limit named by data's id."""
    zone_id = data.get("zone_id") or ""
    logger.info("Deleting Cloudflare Rate Limit: %s for zone: %s", data.id, zone_id)
    try:
        client.delete_rate_limit(zone_id, data.id)
    except ApiError as err:
        raise ResourceError(f"error deleting Cloudflare Rate Limit for zone: {err}") from err


def import_rate_limit(data: ResourceData, client: _RateLimitApi) -> list[ResourceData]:
    """Take an id of the form zoneName/rateLimitId and fill in the zone."""
    parts = data.id.split("/", 1)
    if len(parts) != 2:
        raise ResourceError(
            f'invalid id ("{data.id}") specified, should be in format '
            '"zoneName/rateLimitId" for import'
        )
    zone_name, limit_id = parts

    try:
        zone_id = client.zone_id_by_name(zone_name)
    except ApiError as err:
        raise ResourceError(f'error finding zoneName "{zone_name}": {err}') from err

    data.set("zone", zone_name)
    data.set("zone_id", zone_id)
    data.id = limit_id
    return [data]