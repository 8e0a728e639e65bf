"""The load balancer pool resource."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from .base import ApiError, ResourceData, ResourceError, float_between, is_not_found

logger = logging.getLogger(__name__)

_NAME_PATTERN = re.compile(r"[-_a-zA-Z0-9]+")
_NAME_MESSAGE = "Only alphanumeric characters, hyphens and underscores are allowed."
_validate_weight = float_between(0.0, 1.0)


@dataclass
class LoadBalancerOrigin:
    """One origin server of a pool."""

    name: str
    address: str
    enabled: bool = True
    weight: float = 1.0


@dataclass
class LoadBalancerPool:
    """A load balancer pool as the API knows it."""

    id: str = ""
    name: str = ""
    origins: list[LoadBalancerOrigin] = field(default_factory=list)
    enabled: bool = True
    minimum_origins: int = 1
    check_regions: list[str] = field(default_factory=list)
    description: str = ""
    monitor: str = ""
    notification_email: str = ""
    created_on: datetime | None = None
    modified_on: datetime | None = None


class _PoolApi(Protocol):
    def create_load_balancer_pool(self, pool: LoadBalancerPool) -> LoadBalancerPool: ...

    def modify_load_balancer_pool(self, pool: LoadBalancerPool) -> LoadBalancerPool: ...

    def load_balancer_pool_details(self, pool_id: str) -> LoadBalancerPool: ...

    def delete_load_balancer_pool(self, pool_id: str) -> None: ...


def _check_length(value: str, key: str, maximum: int) -> None:
    if len(value) > maximum:
        raise ValueError(
            f"expected length of {key} to be in the range (0 - {maximum}), got {value}"
        )


def _format_timestamp(moment: datetime | None) -> str:
    if moment is None:
        return ""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset()
    if not offset:
        return text + "Z"
    minutes_total = int(offset.total_seconds() // 60)
    sign = "+" if minutes_total >= 0 else "-"
    hours, minutes = divmod(abs(minutes_total), 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


def expand_load_balancer_origins(
    origins: Iterable[Mapping[str, Any]],
) -> list[LoadBalancerOrigin]:
    """Turn configured origin blocks into API origins."""
    expanded = []
    for origin in origins:
        weight = float(origin.get("weight", 1.0))
        _validate_weight(weight, "weight")
        expanded.append(
            LoadBalancerOrigin(
                name=origin["name"],
                address=origin["address"],
                enabled=bool(origin.get("enabled", True)),
                weight=weight,
            )
        )
    return expanded


def flatten_load_balancer_origins(
    origins: Iterable[LoadBalancerOrigin],
) -> list[dict[str, Any]]:
    """Turn API origins into attribute blocks, dropping exact duplicates."""
    flattened: list[dict[str, Any]] = []
    for origin in origins:
        block = {
            "name": origin.name,
            "address": origin.address,
            "enabled": origin.enabled,
            "weight": origin.weight,
        }
        if block not in flattened:
            flattened.append(block)
    return flattened


def _pool_from_data(data: ResourceData, pool_id: str = "") -> LoadBalancerPool:
    name = data.get("name") or ""
    if not _NAME_PATTERN.search(name):
        raise ValueError(f"invalid value for name ({_NAME_MESSAGE})")

    enabled = data.get("enabled")
    minimum_origins = data.get("minimum_origins")
    pool = LoadBalancerPool(
        id=pool_id,
        name=name,
        origins=expand_load_balancer_origins(data.get("origins") or []),
        enabled=True if enabled is None else bool(enabled),
        minimum_origins=1 if minimum_origins is None else int(minimum_origins),
    )

    check_regions, ok = data.get_ok("check_regions")
    if ok:
        pool.check_regions = sorted(check_regions)

    description, ok = data.get_ok("description")
    if ok:
        _check_length(description, "description", 1024)
        pool.description = description

    monitor, ok = data.get_ok("monitor")
    if ok:
        _check_length(monitor, "monitor", 32)
        pool.monitor = monitor

    email, ok = data.get_ok("notification_email")
    if ok:
        pool.notification_email = email

    return pool


def create_load_balancer_pool(data: ResourceData, client: _PoolApi) -> None:
    """Create the pool described by data and read it back."""
    pool = _pool_from_data(data)
    logger.debug("Creating Cloudflare Load Balancer Pool from struct: %r", pool)

    try:
        created = client.create_load_balancer_pool(pool)
    except ApiError as err:
        raise ResourceError(f"error creating load balancer pool: {err}") from err

    if not created.id:
        raise ResourceError("failed to find id in create response; resource was empty")

    data.id = created.id
    logger.info("New Cloudflare Load Balancer Pool created with ID: %s", data.id)
    read_load_balancer_pool(data, client)


def update_load_balancer_pool(data: ResourceData, client: _PoolApi) -> None:
    """Replace the pool with the configuration in data and read it back."""
    pool = _pool_from_data(data, data.id)
    logger.debug("Updating Cloudflare Load Balancer Pool from struct: %r", pool)

    try:
        client.modify_load_balancer_pool(pool)
    except ApiError as err:
        raise ResourceError(f"error updating load balancer pool: {err}") from err

    read_load_balancer_pool(data, client)


def read_load_balancer_pool(data: ResourceData, client: _PoolApi) -> None:
    """Refresh data from the API; clear the id when the pool is gone."""
    try:
        pool = client.load_balancer_pool_details(data.id)
    except ApiError as err:
        if is_not_found(err):
            logger.info("Load balancer pool %s no longer exists", data.id)
            data.id = ""
            return
        raise ResourceError(
            f"Error reading load balancer pool from API for resource {data.id} : {err}"
        ) from err

    logger.debug("Read Cloudflare Load Balancer Pool from API as struct: %r", pool)

    data.set("name", pool.name)
    data.set("enabled", pool.enabled)
    data.set("minimum_origins", pool.minimum_origins)
    data.set("description", pool.description)
    data.set("monitor", pool.monitor)
    data.set("notification_email", pool.notification_email)
    data.set("created_on", _format_timestamp(pool.created_on))
    data.set("modified_on", _format_timestamp(pool.modified_on))
    data.set("origins", flatten_load_balancer_origins(pool.origins))
    data.set("check_regions", set(pool.check_regions))


def delete_load_balancer_pool(data: ResourceData, client: _PoolApi) -> None:
    """Delete the pool named by data's id."""
    logger.info("Deleting Cloudflare Load Balancer Pool: %s", data.id)
    try:
        client.delete_load_balancer_pool(data.id)
    except ApiError as err:
        raise ResourceError(f"error deleting Cloudflare Load Balancer Pool: {err}") from err