import pytest

from cfresources.base import ResourceData, ResourceError
from cfresources.rate_limit_codec import (
    RateLimitAction,
    RateLimitActionResponse,
    RateLimitCorrelate,
    RateLimitKeyValue,
    RateLimitRequestMatcher,
    RateLimitResponseMatcher,
    RateLimitTrafficMatcher,
    expand_rate_limit_action,
    expand_rate_limit_bypass,
    expand_rate_limit_correlate,
    expand_rate_limit_traffic_matcher,
    flatten_rate_limit_action,
    flatten_rate_limit_correlate,
    flatten_rate_limit_request_matcher,
    flatten_rate_limit_response_matcher,
    flatten_rate_limit_traffic_matcher,
)

ZONE = "example.com"


def _fully_specified() -> ResourceData:
    return ResourceData(
        attributes={
            "zone": ZONE,
            "threshold": 2000,
            "period": 10,
            "match": [
                {
                    "request": [
                        {
                            "url_pattern": f"{ZONE}/tfacc-full-abc",
                            "schemes": {"HTTP", "HTTPS"},
                            "methods": {"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD"},
                        }
                    ],
                    "response": [
                        {"statuses": {200, 201, 202, 301, 429}, "origin_traffic": False}
                    ],
                }
            ],
            "action": [
                {
                    "mode": "simulate",
                    "timeout": 43200,
                    "response": [
                        {"content_type": "text/plain", "body": "my response body"}
                    ],
                }
            ],
            "correlate": [{"by": "nat"}],
            "disabled": True,
            "description": "my fully specified rate limit for a zone",
            "bypass_url_patterns": {f"{ZONE}/bypass1", f"{ZONE}/bypass2"},
        }
    )


def test_action_without_timeout_for_simulate_fails():
    data = ResourceData(attributes={"action": [{"mode": "simulate"}]})
    with pytest.raises(
        ResourceError,
        match="rate limit timeout must be set if the 'mode' is simulate or ban",
    ):
        expand_rate_limit_action(data)


def test_action_without_timeout_for_ban_fails():
    data = ResourceData(attributes={"action": [{"mode": "ban", "timeout": 0}]})
    with pytest.raises(ResourceError, match="must be set"):
        expand_rate_limit_action(data)


def test_challenge_with_timeout_fails():
    data = ResourceData(attributes={"action": [{"mode": "challenge", "timeout": 60}]})
    with pytest.raises(
        ResourceError,
        match="rate limit timeout must not be set if the 'mode' is challenge or js_challenge",
    ):
        expand_rate_limit_action(data)


def test_challenge_without_timeout():
    data = ResourceData(attributes={"action": [{"mode": "challenge"}]})
    action = expand_rate_limit_action(data)
    assert action == RateLimitAction(mode="challenge", timeout=0, response=None)


def test_basic_simulate_action():
    data = ResourceData(attributes={"action": [{"mode": "simulate", "timeout": 86400}]})
    action = expand_rate_limit_action(data)
    assert action.mode == "simulate"
    assert action.timeout == 86400
    assert action.response is None


def test_action_unknown_mode_rejected():
    data = ResourceData(attributes={"action": [{"mode": "block", "timeout": 10}]})
    with pytest.raises(ValueError):
        expand_rate_limit_action(data)


def test_action_timeout_out_of_range_rejected():
    data = ResourceData(attributes={"action": [{"mode": "ban", "timeout": 86401}]})
    with pytest.raises(ValueError):
        expand_rate_limit_action(data)


def test_action_bad_content_type_rejected():
    data = ResourceData(
        attributes={
            "action": [
                {
                    "mode": "ban",
                    "timeout": 10,
                    "response": [{"content_type": "text/html", "body": "x"}],
                }
            ]
        }
    )
    with pytest.raises(ValueError):
        expand_rate_limit_action(data)


def test_fully_specified_action_with_response():
    action = expand_rate_limit_action(_fully_specified())
    assert action == RateLimitAction(
        mode="simulate",
        timeout=43200,
        response=RateLimitActionResponse(content_type="text/plain", body="my response body"),
    )


def test_fully_specified_match():
    matcher = expand_rate_limit_traffic_matcher(_fully_specified())
    assert len(matcher.request.methods) == 6
    assert sorted(matcher.request.schemes) == ["HTTP", "HTTPS"]
    assert "tfacc-full" in matcher.request.url_pattern
    assert sorted(matcher.response.statuses) == [200, 201, 202, 301, 429]
    assert matcher.response.origin_traffic is False


def test_match_absent_gives_empty_matcher():
    matcher = expand_rate_limit_traffic_matcher(ResourceData())
    assert matcher == RateLimitTrafficMatcher()


def test_match_with_request_url_only():
    data = ResourceData(
        attributes={"match": [{"request": [{"url_pattern": f"{ZONE}/tfacc-url-x"}]}]}
    )
    matcher = expand_rate_limit_traffic_matcher(data)
    assert matcher.request == RateLimitRequestMatcher(url_pattern=f"{ZONE}/tfacc-url-x")
    assert matcher.response == RateLimitResponseMatcher()


def test_correlate_and_absence():
    assert expand_rate_limit_correlate(_fully_specified()) == RateLimitCorrelate(by="nat")
    assert expand_rate_limit_correlate(ResourceData()) is None


def test_bypass_patterns():
    bypass = expand_rate_limit_bypass(_fully_specified().get("bypass_url_patterns"))
    assert bypass == [
        RateLimitKeyValue(name="url", value=f"{ZONE}/bypass1"),
        RateLimitKeyValue(name="url", value=f"{ZONE}/bypass2"),
    ]


def test_bypass_empty():
    assert expand_rate_limit_bypass([]) == []


def test_flatten_action_without_response():
    blocks = flatten_rate_limit_action(RateLimitAction(mode="challenge"))
    assert blocks == [{"mode": "challenge", "timeout": 0}]
    assert "response" not in blocks[0]


def test_flatten_action_round_trip():
    data = _fully_specified()
    blocks = flatten_rate_limit_action(expand_rate_limit_action(data))
    assert blocks == [
        {
            "mode": "simulate",
            "timeout": 43200,
            "response": [{"content_type": "text/plain", "body": "my response body"}],
        }
    ]
    assert expand_rate_limit_action(ResourceData(attributes={"action": blocks})) == (
        expand_rate_limit_action(data)
    )


def test_flatten_response_matcher_empty_gives_no_block():
    assert flatten_rate_limit_response_matcher(RateLimitResponseMatcher()) == []


def test_flatten_response_matcher_origin_traffic_only():
    blocks = flatten_rate_limit_response_matcher(RateLimitResponseMatcher(origin_traffic=True))
    assert blocks == [{"origin_traffic": True}]


def test_flatten_request_matcher():
    blocks = flatten_rate_limit_request_matcher(
        RateLimitRequestMatcher(methods=["GET"], schemes=["HTTPS"], url_pattern="*")
    )
    assert blocks == [{"methods": {"GET"}, "schemes": {"HTTPS"}, "url_pattern": "*"}]


def test_flatten_traffic_matcher_round_trip():
    matcher = expand_rate_limit_traffic_matcher(_fully_specified())
    blocks = flatten_rate_limit_traffic_matcher(matcher)
    assert len(blocks) == 1
    assert blocks[0]["response"][0]["statuses"] == {200, 201, 202, 301, 429}
    again = expand_rate_limit_traffic_matcher(ResourceData(attributes={"match": blocks}))
    assert again == matcher


def test_flatten_correlate():
    assert flatten_rate_limit_correlate(RateLimitCorrelate(by="nat")) == [{"by": "nat"}]