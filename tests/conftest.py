"""Shared circuit fixtures.

Topologies used across the suite:

    point_to_point:  sw-a --link-ab-- sw-b           (primary)
                     sw-a --link-ac-- sw-c --link-cb-- sw-b   (backup)

    hub:             sw-a, sw-b, sw-d each linked to sw-c, static MAC

    loopback:        sw-a --link-1/link-2-- sw-b, both endpoints on sw-a

    same_switch:     two endpoints on sw-a plus one on sw-b, primary only
"""
import copy

import pytest

from circuitflow.circuit import CircuitParser
from circuitflow.store import InMemoryCircuitDatabase

DPIDS = {"sw-a": 1, "sw-b": 2, "sw-c": 3, "sw-d": 4}


def link(name, node_a, iface_a, port_a, node_z, iface_z, port_z):
    return {
        "name": name,
        "node_a": node_a,
        "interface_a_id": iface_a,
        "port_no_a": port_a,
        "node_z": node_z,
        "interface_z_id": iface_z,
        "port_no_z": port_z,
    }


POINT_TO_POINT = {
    "circuit_id": 100,
    "name": "p2p",
    "description": "point to point",
    "endpoints": [
        {"node": "sw-a", "port_no": 1, "tag": 100, "interface": "eth1"},
        {"node": "sw-b", "port_no": 1, "tag": 200, "interface": "eth1"},
    ],
    "links": [link("link-ab", "sw-a", 11, 2, "sw-b", 21, 2)],
    "backup_links": [
        link("link-ac", "sw-a", 12, 3, "sw-c", 31, 1),
        link("link-cb", "sw-c", 32, 2, "sw-b", 22, 3),
    ],
    "internal_ids": {
        "primary": {"sw-a": {11: 1000}, "sw-b": {21: 1001}},
        "backup": {
            "sw-a": {12: 2000},
            "sw-c": {31: 2001, 32: 2002},
            "sw-b": {22: 2003},
        },
    },
    "created_by": {"given_names": "Ada", "family_name": "Lovelace"},
    "created_on": "2024-01-01 10:00:00",
    "workgroup": {"name": "NOC"},
}

HUB = {
    "circuit_id": 200,
    "name": "hub",
    "static_mac": 1,
    "endpoints": [
        {"node": "sw-a", "port_no": 1, "tag": 100, "mac_addrs": [{"mac_address": "00:00:00:00:00:0A"}]},
        {"node": "sw-b", "port_no": 1, "tag": 200, "mac_addrs": ["00-00-00-00-00-0b"]},
        {"node": "sw-d", "port_no": 1, "tag": 300, "mac_addrs": ["0000.0000.000d"]},
    ],
    "links": [
        link("link-ac", "sw-a", 11, 2, "sw-c", 31, 1),
        link("link-bc", "sw-b", 21, 2, "sw-c", 32, 2),
        link("link-dc", "sw-d", 41, 2, "sw-c", 33, 3),
    ],
    "backup_links": [],
    "internal_ids": {
        "primary": {
            "sw-a": {11: 1001},
            "sw-b": {21: 1002},
            "sw-d": {41: 1004},
            "sw-c": {31: 1031, 32: 1032, 33: 1033},
        },
    },
}

LOOPBACK = {
    "circuit_id": 300,
    "name": "loop",
    "endpoints": [
        {"node": "sw-a", "port_no": 1, "tag": 200},
        {"node": "sw-a", "port_no": 4, "tag": 100},
    ],
    "links": [
        link("link-2", "sw-a", 11, 2, "sw-b", 21, 2),
        link("link-1", "sw-a", 12, 3, "sw-b", 22, 3),
    ],
    "internal_ids": {
        "primary": {"sw-a": {11: 1000, 12: 1002}, "sw-b": {21: 1001, 22: 1003}},
    },
}

SAME_SWITCH = {
    "circuit_id": 400,
    "name": "same-switch",
    "endpoints": [
        {"node": "sw-a", "port_no": 1, "tag": 100},
        {"node": "sw-a", "port_no": 4, "tag": 300},
        {"node": "sw-b", "port_no": 1, "tag": 200},
    ],
    "links": [link("link-ab", "sw-a", 11, 2, "sw-b", 21, 2)],
    "internal_ids": {"primary": {"sw-a": {11: 1000}, "sw-b": {21: 1001}}},
}


@pytest.fixture
def point_to_point():
    return copy.deepcopy(POINT_TO_POINT)


@pytest.fixture
def hub():
    return copy.deepcopy(HUB)


@pytest.fixture
def loopback():
    return copy.deepcopy(LOOPBACK)


@pytest.fixture
def same_switch():
    return copy.deepcopy(SAME_SWITCH)


@pytest.fixture
def primary_only(point_to_point):
    point_to_point["backup_links"] = []
    point_to_point["internal_ids"].pop("backup")
    return point_to_point


@pytest.fixture
def parser():
    return CircuitParser()


@pytest.fixture
def dpids():
    return dict(DPIDS)


@pytest.fixture
def db(point_to_point, hub, loopback, same_switch):
    """Database holding every fixture circuit, all links up."""
    return InMemoryCircuitDatabase(
        circuits=[point_to_point, hub, loopback, same_switch],
        nodes=DPIDS,
        links={
            "link-ab": "up",
            "link-ac": "up",
            "link-cb": "up",
            "link-bc": "up",
            "link-dc": "up",
            "link-1": "up",
            "link-2": "up",
        },
        clock=lambda: 1700000000,
    )
