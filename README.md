# cfresources

Create, read, update, delete and import handlers for Cloudflare resources.
Each handler works on a small attribute store and on an API client object
that you supply.

Covered resources:

| Module | Handlers |
| --- | --- |
| `cfresources.record` | `create_record`, `read_record`, `update_record`, `delete_record`, `import_record` |
| `cfresources.record_migrate` | `migrate_record_state`, `migrate_record_state_v0_to_v1` |
| `cfresources.page_rule` | `create_page_rule`, `read_page_rule`, `update_page_rule`, `delete_page_rule`, `import_page_rule` |
| `cfresources.rate_limit` | `create_rate_limit`, `read_rate_limit`, `update_rate_limit`, `delete_rate_limit`, `import_rate_limit` |
| `cfresources.load_balancer_pool` | `create_load_balancer_pool`, `read_load_balancer_pool`, `update_load_balancer_pool`, `delete_load_balancer_pool` |
| `cfresources.logpush_job` | `create_logpush_job`, `read_logpush_job`, `update_logpush_job`, `delete_logpush_job` |

## Installation

```
pip install .
```

The package has no dependencies outside the standard library.

## How it works

Every handler takes a `ResourceData` from `cfresources.base` and a client.
A `ResourceData` holds the resource's `id` and a dict of `attributes`. Its
methods are:

- `get(key)`: the value, or `None` if it was never set
- `get_ok(key)`: the value and whether it is set to something non-empty
- `set(key, value)`: store a value

Handlers fill in computed attributes, set `id`, and raise `ResourceError`
when an operation fails. Validation of configured values, such as allowed
choices, ranges and lengths, raises `ValueError`.

The client reports failed requests by raising `cfresources.base.ApiError`.
When a read gets an `ApiError` whose message contains `HTTP status 404`
(see `is_not_found`), the handler sets `id` to `""` and does not raise. Page
rules also treat `Invalid Page Rule identifier` this way, and DNS records
treat `Invalid dns record identifier` this way. For Logpush jobs, an error
that mentions `404` is logged and ignored. The `id` is cleared only when the
API returns a job with id 0.

```python
from cfresources.base import ResourceData
from cfresources.record import create_record

data = ResourceData(attributes={
    "domain": "example.com",
    "name": "www",
    "type": "A",
    "value": "192.0.2.10",
    "ttl": 3600,
})
create_record(data, client)   # client: your API client, see below
print(data.id, data.get("hostname"))
```

## The client

The handlers call only the methods that follow. Any object that has them will
do.

- Records: `zone_id_by_name`, `create_dns_record`, `dns_record`,
  `update_dns_record`, `delete_dns_record`
- Record migration: `zone_id_by_name`, `dns_records`
- Page rules: `zone_id_by_name`, `create_page_rule`, `page_rule`,
  `update_page_rule`, `delete_page_rule`
- Rate limits: `zone_id_by_name`, `create_rate_limit`, `rate_limit`,
  `update_rate_limit`, `delete_rate_limit`
- Load balancer pools: `create_load_balancer_pool`,
  `modify_load_balancer_pool`, `load_balancer_pool_details`,
  `delete_load_balancer_pool`
- Logpush jobs: `logpush_job`, `create_logpush_job`, `update_logpush_job`,
  `delete_logpush_job`

These methods take and return the dataclasses that the modules define:

- `DNSRecord`
- `PageRule`, `PageRuleTarget` and `PageRuleAction`
- `RateLimit` and its parts in `cfresources.rate_limit_codec`
- `LoadBalancerPool` and `LoadBalancerOrigin`
- `LogpushJob`

## Rules the handlers enforce

- **DNS records:** exactly one of `value` and `data` must be given. A proxied
  record must have a `ttl` of 1.
- **Page rules:** either `zone` or `zone_id` is required. `forwarding_url`
  cannot be combined with other actions.
- **Rate limits:** either `zone` or `zone_id` is required. A rate limit in
  `simulate` or `ban` mode needs a timeout. The `challenge` and
  `js_challenge` modes must not have one.
- **Imports:** import ids have the form `zoneName/objectId`.

## Conversion helpers

Some helpers convert between configuration values and API values and need no
client.

- **Page rule actions** (`cfresources.page_rule_actions`):
  `transform_to_page_rule_action`, `transform_from_page_rule_action`,
  `page_rule_actions_to_map` and `suppress_equivalent_urls`.
- **Rate limits** (`cfresources.rate_limit_codec`): the `expand_rate_limit_*`
  and `flatten_rate_limit_*` functions.
- **Records** (`cfresources.record`): `transform_to_dns_data`,
  `expand_string_map`, `suppress_priority` and `suppress_name_diff`.

```python
from cfresources.page_rule_actions import transform_to_page_rule_action

transform_to_page_rule_action("always_online", True).value   # "on"
```

## State migration

`migrate_record_state(0, state, client)` looks up a version 0 record. It uses
the record's `domain`, `type`, `hostname` and `value` attributes. It then picks
the first API record whose `ttl`, `proxied` and `priority` match, and sets the
state's id to that record's id. Any other version, or no match, raises
`ResourceError`.

## What this package does not do

- It contains no HTTP client for the Cloudflare API. You supply the client.
- It has no command-line tool.
- It does not store state. Keeping `ResourceData` and `InstanceState` between
  runs is left to the caller.

## Running the tests

```
pip install .[test]
pytest
```