"""Conversion of page rule actions between configuration and API form."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .base import ResourceError

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")

ON_OFF_FIELDS = frozenset(
    {
        "always_online",
        "automatic_https_rewrites",
        "browser_check",
        "cache_by_device_type",
        "cache_deception_armor",
        "email_obfuscation",
        "explicit_cache_control",
        "ip_geolocation",
        "mirage",
        "opportunistic_encryption",
        "origin_error_page_pass_thru",
        "respect_strong_etag",
        "response_buffering",
        "rocket_loader",
        "server_side_exclude",
        "sort_query_string_for_cache",
        "true_client_ip_header",
        "waf",
    }
)

NIL_FIELDS = frozenset(
    {
        "always_use_https",
        "disable_apps",
        "disable_performance",
        "disable_railgun",
        "disable_security",
    }
)

STRING_FIELDS = frozenset(
    {
        "bypass_cache_on_cookie",
        "cache_key",
        "cache_level",
        "cache_on_cookie",
        "host_header_override",
        "polish",
        "resolve_override",
        "security_level",
        "ssl",
    }
)


@dataclass
class PageRuleAction:
    """One action of a page rule; a value of None means the action is unset."""

    id: str
    value: Any = None


def _expect(value: Any, kind: type | tuple[type, ...], action_id: str) -> Any:
    if not isinstance(value, kind) or (kind is not bool and isinstance(value, bool)):
        raise TypeError(f"unexpected value {value!r} for page rule action {action_id!r}")
    return value


def transform_from_page_rule_action(action: PageRuleAction) -> tuple[str, Any]:
    """Turn an API action into an attribute key and value."""
    key = action.id
    value = action.value

    if key in ON_OFF_FIELDS or key in STRING_FIELDS:
        return key, _expect(value, str, key)
    if key in NIL_FIELDS:
        # The API reports these with no value, so their presence means true.
        return key, True
    if key == "edge_cache_ttl":
        return key, float(_expect(value, (int, float), key))
    if key == "browser_cache_ttl":
        return key, f"{float(_expect(value, (int, float), key)):.0f}"
    if key in ("forwarding_url", "minify"):
        return key, [dict(_expect(value, Mapping, key))]

    raise ResourceError(
        f'Unimplemented action ID "{key}" - this is always an internal error'
    )


def _first_block(value: Any) -> Mapping[str, Any] | None:
    blocks = list(value) if isinstance(value, Sequence) else []
    return blocks[0] if blocks else None


def transform_to_page_rule_action(action_id: str, value: Any) -> PageRuleAction:
    """Turn a configured action value into an API action."""
    action = PageRuleAction(id=action_id)

    if isinstance(value, str):
        if action_id == "browser_cache_ttl":
            if _INTEGER.fullmatch(value):
                action.value = int(value)
        elif value:
            action.value = value
    elif isinstance(value, bool):
        if action_id in ON_OFF_FIELDS:
            action.value = "on" if value else "off"
        else:
            action.value = True if value else None
    elif isinstance(value, int):
        if action_id == "edge_cache_ttl" and value > 0:
            action.value = value
    elif action_id == "forwarding_url":
        logger.debug("forwarding_url action to be applied: %r", value)
        block = _first_block(value)
        if block is not None:
            action.value = {
                "url": str(block["url"]),
                "status_code": int(block["status_code"]),
            }
    elif action_id == "minify":
        logger.debug("minify action to be applied: %r", value)
        block = _first_block(value)
        if block is not None:
            action.value = {
                "css": str(block["css"]),
                "js": str(block["js"]),
                "html": str(block["html"]),
            }
    else:
        raise ResourceError(f"Bad value for {action_id}: {value}")

    logger.debug("Page Rule Action to be applied: %r", action)
    return action


def page_rule_actions_to_map(actions: Iterable[PageRuleAction]) -> dict[str, Any]:
    """Map each action id to its value; later actions win."""
    return {action.id: action.value for action in actions}


def suppress_equivalent_urls(old: str, new: str) -> bool:
    """Tell whether two targets differ only by leading or trailing slashes."""
    return old.strip("/") == new.strip("/")