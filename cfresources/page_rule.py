"""The page rule resource."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from .base import ApiError, ResourceData, ResourceError, is_not_found
from .page_rule_actions import (
    ON_OFF_FIELDS,
    PageRuleAction,
    page_rule_actions_to_map,
    transform_from_page_rule_action,
    transform_to_page_rule_action,
)

logger = logging.getLogger(__name__)

_INVALID_IDENTIFIER = "Invalid Page Rule identifier"

_STATUSES = ("active", "disabled")
_ON_OFF = ("on", "off")
_CHOICES: dict[str, tuple[str, ...]] = {
    "cache_level": ("bypass", "basic", "simplified", "aggressive", "cache_everything"),
    "polish": ("off", "lossless", "lossy"),
    "security_level": (
        "off",
        "essentially_off",
        "low",
        "medium",
        "high",
        "under_attack",
    ),
    "ssl": ("off", "flexible", "full", "strict", "origin_pull"),
}
_EDGE_CACHE_TTL_MAX = 31536000


@dataclass
class PageRuleTarget:
    """What a page rule applies to; the API only knows URL matching."""

    value: str
    target: str = "url"
    operator: str = "matches"


@dataclass
class PageRule:
    """A page rule as the API knows it; zero values mean unset."""

    id: str = ""
    targets: list[PageRuleTarget] = field(default_factory=list)
    actions: list[PageRuleAction] = field(default_factory=list)
    priority: int = 0
    status: str = ""


class _PageRuleApi(Protocol):
    def zone_id_by_name(self, zone_name: str) -> str: ...

    def create_page_rule(self, zone_id: str, rule: PageRule) -> PageRule: ...

    def page_rule(self, zone_id: str, rule_id: str) -> PageRule: ...

    def update_page_rule(self, zone_id: str, rule_id: str, rule: PageRule) -> None: ...

    def delete_page_rule(self, zone_id: str, rule_id: str) -> None: ...


def _check_choice(key: str, value: Any, choices: tuple[str, ...]) -> None:
    if value in (None, ""):
        return
    if value not in choices:
        raise ValueError(f"expected {key} to be one of {list(choices)}, got {value}")


def _validate_block(block: Mapping[str, Any]) -> None:
    for key, value in block.items():
        if key in ON_OFF_FIELDS and isinstance(value, str):
            _check_choice(key, value, _ON_OFF)
        elif key in _CHOICES:
            _check_choice(key, value, _CHOICES[key])
        elif key == "edge_cache_ttl" and isinstance(value, int):
            if value > _EDGE_CACHE_TTL_MAX:
                raise ValueError(
                    f"expected {key} to be at most ({_EDGE_CACHE_TTL_MAX}), got {value}"
                )
        elif key == "forwarding_url" and value:
            for forward in value:
                code = forward.get("status_code")
                if not isinstance(code, int) or not 301 <= code <= 302:
                    raise ValueError(
                        f"expected status_code to be in the range (301 - 302), got {code}"
                    )
        elif key == "minify" and value:
            for minify in value:
                for part in ("js", "css", "html"):
                    _check_choice(part, minify.get(part), _ON_OFF)


def _validate(data: ResourceData) -> None:
    if not data.get("target"):
        raise ValueError("target is required")
    actions = data.get("actions") or []
    if len(actions) != 1:
        raise ValueError("actions must hold exactly one block")
    _validate_block(actions[0])
    status = data.get("status")
    if status is not None:
        _check_choice("status", status, _STATUSES)


def _url_targets(target: str) -> list[PageRuleTarget]:
    return [PageRuleTarget(value=target)]


def _actions_from_blocks(blocks: list[Mapping[str, Any]], skip_empty: bool) -> list[PageRuleAction]:
    actions = []
    for block in blocks:
        for action_id, value in block.items():
            action = transform_to_page_rule_action(action_id, value)
            if action.value is None or (skip_empty and action.value == ""):
                continue
            actions.append(action)
    return actions


def create_page_rule(data: ResourceData, client: _PageRuleApi) -> None:
    """Create the page rule described by data and read it back."""
    zone = data.get("zone") or ""
    zone_id = data.get("zone_id") or ""
    if not zone and not zone_id:
        raise ResourceError("either zone name or ID must be provided")

    _validate(data)

    blocks = data.get("actions") or []
    logger.debug("Actions found in config: %r", blocks)
    actions = _actions_from_blocks(blocks, skip_empty=True)

    action_map = page_rule_actions_to_map(actions)
    if "forwarding_url" in action_map and len(action_map) > 1:
        raise ResourceError('"forwarding_url" cannot be set with any other actions')

    priority = data.get("priority")
    status = data.get("status")
    rule = PageRule(
        targets=_url_targets(data.get("target")),
        actions=actions,
        priority=1 if priority is None else int(priority),
        status="active" if status is None else status,
    )

    if not zone_id:
        try:
            zone_id = client.zone_id_by_name(zone)
        except ApiError as err:
            raise ResourceError(f'Error finding zone "{zone}": {err}') from err

    data.set("zone_id", zone_id)
    logger.debug("Cloudflare Page Rule create configuration: %r", rule)

    try:
        created = client.create_page_rule(zone_id, rule)
    except ApiError as err:
        raise ResourceError(f"Failed to create page rule: {err}") from err

    if not created.id:
        raise ResourceError("Failed to find page rule in Create response; ID was empty")

    data.id = created.id
    read_page_rule(data, client)


def read_page_rule(data: ResourceData, client: _PageRuleApi) -> None:
    """Refresh data from the API; clear the id when the rule is gone."""
    zone_id = data.get("zone_id") or ""
    try:
        rule = client.page_rule(zone_id, data.id)
    except ApiError as err:
        if _INVALID_IDENTIFIER in str(err) or is_not_found(err):
            logger.info("Page Rule %s no longer exists", data.id)
            data.id = ""
            return
        raise ResourceError(f'Error finding page rule "{data.id}": {err}') from err

    logger.debug("Cloudflare Page Rule read configuration: %r", rule)

    # There is only one target type, always matched with "matches".
    data.set("target", rule.targets[0].value)
    data.set("priority", rule.priority)
    data.set("status", rule.status)

    actions: dict[str, Any] = {}
    for action in rule.actions:
        try:
            key, value = transform_from_page_rule_action(action)
        except (ResourceError, TypeError) as err:
            raise ResourceError(f"Failed to parse page rule action: {err}") from err
        actions[key] = value
    logger.debug("Cloudflare Page Rule actions configuration: %r", actions)

    data.set("actions", [actions])


def update_page_rule(data: ResourceData, client: _PageRuleApi) -> None:
    """Replace the page rule with the configuration in data and read it back."""
    zone_id = data.get("zone_id") or ""
    _validate(data)

    rule = PageRule()

    target, ok = data.get_ok("target")
    if ok:
        rule.targets = _url_targets(target)

    blocks, ok = data.get_ok("actions")
    if ok:
        rule.actions = _actions_from_blocks(blocks, skip_empty=False)

    priority, ok = data.get_ok("priority")
    if ok:
        rule.priority = int(priority)

    status, ok = data.get_ok("status")
    if ok:
        rule.status = status

    logger.debug("Cloudflare Page Rule update configuration: %r", rule)

    try:
        client.update_page_rule(zone_id, data.id, rule)
    except ApiError as err:
        raise ResourceError(f"Failed to update Cloudflare Page Rule: {err}") from err

    read_page_rule(data, client)


def delete_page_rule(data: ResourceData, client: _PageRuleApi) -> None:
    """Delete the page rule named by data's id."""
    zone_id = data.get("zone_id") or ""
    zone = data.get("zone") or ""
    logger.info("Deleting Cloudflare Page Rule: %s, %s", zone, data.id)

    try:
        client.delete_page_rule(zone_id, data.id)
    except ApiError as err:
        raise ResourceError(f"Error deleting Cloudflare Page Rule: {err}") from err


def import_page_rule(data: ResourceData, client: _PageRuleApi) -> list[ResourceData]:
    """Take an id of the form zoneName/pageRuleId and fill in the zone."""
    parts = data.id.split("/", 1)
    if len(parts) != 2:
        raise ResourceError(
            f'invalid id ("{data.id}") specified, should be in format "zoneName/pageRuleId"'
        )

    zone_name, rule_id = parts
    data.set("zone", zone_name)
    data.id = rule_id

    try:
        zone_id = client.zone_id_by_name(zone_name)
    except ApiError as err:
        data.set("zone_id", "")
        raise ResourceError(
            f'couldn\'t find zone "{zone_name}" while trying to import page rule '
            f'"{data.id}" : {err}'
        ) from err

    data.set("zone_id", zone_id)
    return [data]