import pytest

from cfresources.base import ApiError, ResourceError
from cfresources.record import DNSRecord
from cfresources.record_migrate import (
    InstanceState,
    migrate_record_state,
    migrate_record_state_v0_to_v1,
)

ZONE = "hashicorptest.com"
ZONE_ID = "1234567890"

RECORDS = [
    DNSRecord(id="7778f8766e583af8de0abfcd76c5dAAA", type="A",
              name="notthesub.hashicorptest.com", content="10.0.2.5", ttl=120,
              zone_id=ZONE_ID, zone_name=ZONE),
    DNSRecord(id="5558f8766e583af8de0abfcd76c5dBBB", type="A",
              name="notthesub.hashicorptest.com", content="10.0.2.5", ttl=121,
              zone_id=ZONE_ID, zone_name=ZONE),
    DNSRecord(id="2220a9593ab869199b65c89bddf72ddd", type="A",
              name="maybethesub.hashicorptest.com", content="10.0.3.5", ttl=120,
              zone_id=ZONE_ID, zone_name=ZONE),
    DNSRecord(id="222ffe3f93a31231ad6b0c6d09185jjj", type="A",
              name="tftestingsubv616.hashicorptest.com", content="52.39.212.111",
              proxiable=True, proxied=False, ttl=1, zone_id=ZONE_ID, zone_name=ZONE),
    DNSRecord(id="888ffe3f93a31231ad6b0c6d09185eee", type="A",
              name="tftestingsubv616.hashicorptest.com", content="52.39.212.111",
              proxiable=True, proxied=True, ttl=1, zone_id=ZONE_ID, zone_name=ZONE),
    DNSRecord(id="98y6t9ba87e6ee3e6aeba8f3dc52c81b", type="CNAME",
              name="somecname.hashicorptest.com",
              content="some.us-west-2.elb.amazonaws.com", proxiable=True, ttl=120,
              zone_id=ZONE_ID, zone_name=ZONE),
    DNSRecord(id="12342092cbc4c391be33ce548713bba3", type="MX", name=ZONE,
              content="some.registrar-servers.com", ttl=1, priority=20,
              zone_id=ZONE_ID, zone_name=ZONE),
]


class FakeClient:
    """Answers like a server that ignores the search filter."""

    def __init__(self):
        self.searches = []

    def zone_id_by_name(self, zone_name):
        if zone_name != ZONE:
            raise ApiError(f"zone {zone_name} not found")
        return ZONE_ID

    def dns_records(self, zone_id, search):
        if zone_id != ZONE_ID:
            raise ApiError("HTTP status 400")
        self.searches.append(search)
        return list(RECORDS)


CASES = {
    "ttl_120": (
        {"id": "123456", "name": "notthesub", "hostname": "notthesub.hashicorptest.com",
         "type": "A", "content": "10.0.2.5", "ttl": "120", "zone_id": ZONE_ID,
         "domain": ZONE},
        "7778f8766e583af8de0abfcd76c5dAAA",
    ),
    "ttl_121": (
        {"id": "123456", "name": "notthesub", "hostname": "notthesub.hashicorptest.com",
         "type": "A", "content": "10.0.2.5", "ttl": "121", "zone_id": ZONE_ID,
         "domain": ZONE},
        "5558f8766e583af8de0abfcd76c5dBBB",
    ),
    "mx_priority": (
        {"id": "123456", "name": ZONE, "type": "MX",
         "content": "some.registrar-servers.com", "ttl": "1", "priority": "20",
         "zone_id": ZONE_ID, "domain": ZONE},
        "12342092cbc4c391be33ce548713bba3",
    ),
    "proxied": (
        {"id": "123456", "name": "tftestingsubv616",
         "hostname": "tftestingsubv616.hashicorptest.com", "type": "A",
         "content": "52.39.212.111", "proxied": "true", "ttl": "1",
         "zone_id": ZONE_ID, "domain": ZONE},
        "888ffe3f93a31231ad6b0c6d09185eee",
    ),
    "not_proxied": (
        {"id": "123456", "name": "tftestingsubv616",
         "hostname": "tftestingsubv616.hashicorptest.com", "type": "A",
         "content": "52.39.212.111", "proxied": "false", "ttl": "1",
         "zone_id": ZONE_ID, "domain": ZONE},
        "222ffe3f93a31231ad6b0c6d09185jjj",
    ),
}


@pytest.mark.parametrize("name", sorted(CASES))
def test_migrate_finds_record(name):
    attributes, expected = CASES[name]
    state = InstanceState(id="123456", attributes=dict(attributes))
    result = migrate_record_state(0, state, FakeClient())
    assert result.id == expected
    assert result.attributes["id"] == expected


def test_migrate_priority_mismatch_fails():
    state = InstanceState(
        id="123456",
        attributes={"id": "123456", "type": "MX", "name": ZONE,
                    "content": "some.registrar-servers.com", "ttl": "1",
                    "priority": "10", "zone_id": ZONE_ID, "domain": ZONE},
    )
    with pytest.raises(ResourceError, match="No matching Record found"):
        migrate_record_state(0, state, FakeClient())
    assert state.id == "123456"


def test_migrate_searches_by_type_hostname_and_value():
    client = FakeClient()
    state = InstanceState(
        id="123456",
        attributes={"type": "A", "hostname": "notthesub.hashicorptest.com",
                    "value": "10.0.2.5", "ttl": "120", "domain": ZONE},
    )
    migrate_record_state_v0_to_v1(state, client)
    search = client.searches[0]
    assert (search.type, search.name, search.content) == (
        "A", "notthesub.hashicorptest.com", "10.0.2.5",
    )


def test_unexpected_version():
    state = InstanceState(id="123456", attributes={"domain": ZONE})
    with pytest.raises(ResourceError, match="Unexpected schema version: 1"):
        migrate_record_state(1, state, FakeClient())


def test_empty_state_is_returned_unchanged():
    state = InstanceState(id="", attributes={"domain": "unknown.example.com"})
    result = migrate_record_state(0, state, FakeClient())
    assert result is state
    assert result.attributes == {"domain": "unknown.example.com"}


def test_unknown_zone_fails():
    state = InstanceState(id="123456", attributes={"domain": "unknown.example.com"})
    with pytest.raises(ResourceError, match="Error finding zone"):
        migrate_record_state(0, state, FakeClient())


def test_bad_ttl_fails():
    state = InstanceState(id="123456", attributes={"domain": ZONE, "ttl": "soon"})
    with pytest.raises(ResourceError, match="Error converting ttl to int"):
        migrate_record_state(0, state, FakeClient())


def test_bad_proxied_fails():
    state = InstanceState(id="123456", attributes={"domain": ZONE, "proxied": "yes"})
    with pytest.raises(ResourceError, match="Error converting proxied to bool"):
        migrate_record_state(0, state, FakeClient())


def test_bad_priority_fails():
    state = InstanceState(id="123456", attributes={"domain": ZONE, "priority": "high"})
    with pytest.raises(ResourceError, match="Error converting priority to int"):
        migrate_record_state(0, state, FakeClient())


def test_proxied_short_form_is_accepted():
    state = InstanceState(
        id="123456", attributes={"domain": ZONE, "ttl": "1", "proxied": "T"}
    )
    result = migrate_record_state(0, state, FakeClient())
    assert result.id == "888ffe3f93a31231ad6b0c6d09185eee"