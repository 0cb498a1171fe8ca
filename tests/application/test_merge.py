from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from wg_access_config.application.merge import merge_layers, merge_sources
from wg_access_config.domain.schema import defaults_layer

SCALAR = st.one_of(st.booleans(), st.integers(), st.text(min_size=1, max_size=5))
VALUE = st.recursive(
    SCALAR,
    lambda children: st.dictionaries(st.text(min_size=1, max_size=5), children, max_size=3),
    max_leaves=10,
)
MAPPING = st.dictionaries(st.text(min_size=1, max_size=5), VALUE, max_size=4)
DOTLESS_KEY = st.text(alphabet="abcxyz", min_size=1, max_size=3)
DOTLESS_MAPPING = st.dictionaries(
    DOTLESS_KEY,
    st.recursive(SCALAR, lambda children: st.dictionaries(DOTLESS_KEY, children, max_size=3), max_leaves=10),
    max_size=4,
)
PORTS = st.integers(min_value=1, max_value=65535)


def test_file_wins_over_flags() -> None:
    merged, meta = merge_sources(
        defaults_layer(),
        {"loglevel": "debug", "storage": {"directory": "/srv/flag"}},
        {"loglevel": "trace"},
        file_path="/etc/wg/config.yaml",
    )
    assert merged["loglevel"] == "trace"
    assert meta["loglevel"] == {"layer": "file", "path": "/etc/wg/config.yaml", "key": "loglevel"}
    assert merged["storage"]["directory"] == "/srv/flag"
    assert meta["storage.directory"]["layer"] == "flags"


def test_partial_file_keeps_sibling_defaults() -> None:
    merged, meta = merge_sources(defaults_layer(), {}, {"wireguard": {"port": 9999}})
    assert merged["wireguard"]["port"] == 9999
    assert merged["wireguard"]["interfaceName"] == "wg0"
    assert meta["wireguard.interfaceName"]["layer"] == "default"


def test_empty_backend_group_is_created() -> None:
    merged, _ = merge_sources(defaults_layer(), {}, {"auth": {"basic": {}}})
    assert merged["auth"] == {"basic": {}}


def test_empty_group_does_not_erase_existing_values() -> None:
    merged, meta = merge_layers(
        [
            ("default", {"vpn": {"rules": {"allowInternet": True}}}, None),
            ("file", {"vpn": {"rules": {}}}, "config.yaml"),
        ]
    )
    assert merged["vpn"]["rules"] == {"allowInternet": True}
    assert meta["vpn.rules.allowInternet"]["layer"] == "default"


def test_lists_are_replaced_not_appended() -> None:
    merged, _ = merge_sources(
        defaults_layer(),
        {"dns": {"upstream": ["1.1.1.1"]}},
        {"dns": {"upstream": ["9.9.9.9", "8.8.8.8"]}},
    )
    assert merged["dns"]["upstream"] == ["9.9.9.9", "8.8.8.8"]


def test_inputs_are_not_mutated() -> None:
    defaults = defaults_layer()
    patch = {"wireguard": {"port": 1}}
    merge_sources(defaults, {}, patch)
    assert defaults["wireguard"]["port"] == 51820
    assert patch == {"wireguard": {"port": 1}}


def test_merge_is_idempotent() -> None:
    layers = [
        ("default", {"dns": {"upstream": []}, "wireguard": {"port": 51820}}, None),
        ("flags", {"wireguard": {"privateKey": "a2V5"}}, None),
    ]
    assert merge_layers(layers) == merge_layers(layers)


@given(PORTS, st.one_of(st.none(), PORTS))
def test_file_port_beats_default(flag_port, file_port) -> None:
    """Whatever the flag layer says, a port defined in the file wins."""

    patch = {"wireguard": {"port": file_port}} if file_port is not None else {}
    merged, meta = merge_sources(defaults_layer(), {"wireguard": {"port": flag_port}}, patch)
    expected = file_port if file_port is not None else flag_port
    assert merged["wireguard"]["port"] == expected
    assert meta["wireguard.port"]["layer"] == ("file" if file_port is not None else "flags")


@given(MAPPING)
def test_empty_layer_is_neutral(data) -> None:
    assert merge_layers([("lhs", data, None), ("rhs", {}, None)]) == merge_layers([("lhs", data, None)])


@given(DOTLESS_MAPPING, DOTLESS_MAPPING)
def test_provenance_tracks_every_leaf(lhs, rhs) -> None:
    """Every non-mapping value has exactly one provenance entry and nothing else does."""

    merged, meta = merge_layers([("lhs", lhs, None), ("rhs", rhs, None)])
    assert set(meta) == set(_leaves(merged))


def _leaves(data, prefix=""):
    for key, value in data.items():
        dotted = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            yield from _leaves(value, dotted)
        else:
            yield dotted


def _assert_contains(actual, expected):
    if isinstance(expected, dict):
        assert isinstance(actual, dict)
        for sub_key, sub_val in expected.items():
            assert sub_key in actual
            _assert_contains(actual[sub_key], sub_val)
    else:
        assert actual == expected


@given(MAPPING, MAPPING)
def test_last_layer_wins(lhs, rhs) -> None:
    merged, _ = merge_layers([("lhs", lhs, None), ("rhs", rhs, None)])
    for key, value in rhs.items():
        if isinstance(value, dict) and not value:
            continue  # empty mappings do not remove previously merged content
        _assert_contains(merged[key], value)
