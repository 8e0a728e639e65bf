"""Conversion of rate limit settings between configuration and API form."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .base import ResourceData, ResourceError

logger = logging.getLogger(__name__)

_MODES = ("simulate", "ban", "challenge", "js_challenge")
_TIMEOUT_REQUIRED = ("simulate", "ban")
_TIMEOUT_FORBIDDEN = ("challenge", "js_challenge")
_CONTENT_TYPES = ("text/plain", "text/xml", "application/json")
_CORRELATE_BY = ("nat",)
_MAX_TIMEOUT = 86400
_MAX_BODY = 10240
_MAX_URL_PATTERN = 1024


@dataclass
class RateLimitActionResponse:
    """The custom response sent when a rate limit triggers."""

    content_type: str
    body: str


@dataclass
class RateLimitAction:
    """What happens to traffic over the limit."""

    mode: str = ""
    timeout: int = 0
    response: RateLimitActionResponse | None = None


@dataclass
class RateLimitRequestMatcher:
    """Which requests a rate limit counts."""

    methods: list[str] = field(default_factory=list)
    schemes: list[str] = field(default_factory=list)
    url_pattern: str = ""


@dataclass
class RateLimitResponseMatcher:
    """Which responses a rate limit counts."""

    statuses: list[int] = field(default_factory=list)
    origin_traffic: bool | None = None


@dataclass
class RateLimitTrafficMatcher:
    """The request and response conditions of a rate limit."""

    request: RateLimitRequestMatcher = field(default_factory=RateLimitRequestMatcher)
    response: RateLimitResponseMatcher = field(default_factory=RateLimitResponseMatcher)


@dataclass
class RateLimitCorrelate:
    """How requests are grouped when counting."""

    by: str = ""


@dataclass
class RateLimitKeyValue:
    """A named value, used for bypass entries."""

    name: str
    value: str


@dataclass
class RateLimit:
    """A rate limit as the API knows it."""

    id: str = ""
    disabled: bool = False
    description: str = ""
    match: RateLimitTrafficMatcher = field(default_factory=RateLimitTrafficMatcher)
    bypass: list[RateLimitKeyValue] = field(default_factory=list)
    threshold: int = 0
    period: int = 0
    action: RateLimitAction = field(default_factory=RateLimitAction)
    correlate: RateLimitCorrelate | None = None


def _as_list(values: Iterable[Any] | None) -> list[Any]:
    """List the members of a configured collection; sets come out sorted."""
    if values is None:
        return []
    if isinstance(values, (set, frozenset)):
        return sorted(values)
    return list(values)


def _first_block(value: Any) -> Mapping[str, Any] | None:
    blocks = _as_list(value)
    return blocks[0] if blocks else None


def _check_choice(key: str, value: str, choices: tuple[str, ...]) -> None:
    if value.lower() not in choices:
        raise ValueError(f"expected {key} to be one of {list(choices)}, got {value}")


def _check_length(key: str, value: str, maximum: int) -> None:
    if len(value) > maximum:
        raise ValueError(
            f"expected length of {key} to be in the range (0 - {maximum}), got {value}"
        )


def expand_rate_limit_traffic_matcher(data: ResourceData) -> RateLimitTrafficMatcher:
    """Build the traffic matcher from the configured match block."""
    matcher = RateLimitTrafficMatcher()
    blocks, ok = data.get_ok("match")
    if not ok:
        return matcher
    cfg = _first_block(blocks)
    if cfg is None:
        return matcher

    request = _first_block(cfg.get("request"))
    if request is not None:
        url_pattern = request.get("url_pattern") or ""
        _check_length("url_pattern", url_pattern, _MAX_URL_PATTERN)
        request_matcher = RateLimitRequestMatcher(url_pattern=url_pattern)
        if "methods" in request:
            request_matcher.methods = [str(m) for m in _as_list(request["methods"])]
        if "schemes" in request:
            request_matcher.schemes = [str(s) for s in _as_list(request["schemes"])]
        matcher.request = request_matcher

    response = _first_block(cfg.get("response"))
    if response is not None:
        response_matcher = RateLimitResponseMatcher()
        if "statuses" in response:
            response_matcher.statuses = [int(s) for s in _as_list(response["statuses"])]
        if "origin_traffic" in response:
            response_matcher.origin_traffic = bool(response["origin_traffic"])
        matcher.response = response_matcher

    return matcher


def expand_rate_limit_action(data: ResourceData) -> RateLimitAction:
    """Build the action from the configured action block, checking the timeout rules."""
    block = _first_block(data.get("action"))
    if block is None:
        raise ValueError("action must hold exactly one block")

    mode = block.get("mode") or ""
    timeout = int(block.get("timeout") or 0)
    _check_choice("mode", mode, _MODES)

    if timeout == 0:
        if mode in _TIMEOUT_REQUIRED:
            raise ResourceError(
                "rate limit timeout must be set if the 'mode' is simulate or ban"
            )
    elif mode in _TIMEOUT_FORBIDDEN:
        raise ResourceError(
            "rate limit timeout must not be set if the 'mode' is challenge or js_challenge"
        )
    if timeout and not 1 <= timeout <= _MAX_TIMEOUT:
        raise ValueError(
            f"expected timeout to be in the range (1 - {_MAX_TIMEOUT}), got {timeout}"
        )

    action = RateLimitAction(mode=mode, timeout=timeout)

    response = _first_block(block.get("response"))
    if response is not None:
        logger.debug("Cloudflare Rate Limit specified action: %r", block)
        content_type = response["content_type"]
        body = response["body"]
        _check_choice("content_type", content_type, _CONTENT_TYPES)
        _check_length("body", body, _MAX_BODY)
        action.response = RateLimitActionResponse(content_type=content_type, body=body)

    return action


def expand_rate_limit_correlate(data: ResourceData) -> RateLimitCorrelate | None:
    """Build the correlation setting, or None when none is configured."""
    blocks, ok = data.get_ok("correlate")
    if not ok:
        return None
    block = _first_block(blocks)
    if block is None:
        return None
    by = block.get("by") or ""
    if by:
        _check_choice("by", by, _CORRELATE_BY)
    return RateLimitCorrelate(by=by)


def expand_rate_limit_bypass(patterns: Iterable[str]) -> list[RateLimitKeyValue]:
    """Turn bypass URL patterns into API bypass entries."""
    return [RateLimitKeyValue(name="url", value=str(p)) for p in _as_list(patterns)]


def flatten_rate_limit_traffic_matcher(
    matcher: RateLimitTrafficMatcher,
) -> list[dict[str, Any]]:
    """Turn a traffic matcher into a match attribute block."""
    return [
        {
            "request": flatten_rate_limit_request_matcher(matcher.request),
            "response": flatten_rate_limit_response_matcher(matcher.response),
        }
    ]


def flatten_rate_limit_request_matcher(
    matcher: RateLimitRequestMatcher,
) -> list[dict[str, Any]]:
    """Turn a request matcher into a request attribute block."""
    return [
        {
            "methods": set(matcher.methods),
            "schemes": set(matcher.schemes),
            "url_pattern": matcher.url_pattern,
        }
    ]


def flatten_rate_limit_response_matcher(
    matcher: RateLimitResponseMatcher,
) -> list[dict[str, Any]]:
    """Turn a response matcher into a response block; no block when it is empty."""
    block: dict[str, Any] = {}
    if matcher.origin_traffic is not None:
        block["origin_traffic"] = matcher.origin_traffic
    if matcher.statuses:
        block["statuses"] = set(matcher.statuses)
    return [block] if block else []


def flatten_rate_limit_action(action: RateLimitAction) -> list[dict[str, Any]]:
    """Turn an action into an action attribute block."""
    block: dict[str, Any] = {"mode": action.mode, "timeout": action.timeout}
    if action.response is not None:
        block["response"] = [
            {
                "content_type": action.response.content_type,
                "body": action.response.body,
            }
        ]
    return [block]


def flatten_rate_limit_correlate(correlate: RateLimitCorrelate) -> list[dict[str, Any]]:
    """Turn a correlation setting into a correlate attribute block."""
    return [{"by": correlate.by}]