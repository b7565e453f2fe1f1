from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from lib_config_secret.application.merge import merge_layers
from lib_config_secret.domain.config import TaggedTable

KEY = st.text(alphabet="abcdefghij", min_size=1, max_size=5)
SCALAR = st.one_of(st.booleans(), st.integers(), st.text(min_size=1, max_size=5))
VALUE = st.recursive(
    SCALAR,
    lambda children: st.dictionaries(KEY, children, max_size=3),
    max_leaves=10,
)
MAPPING = st.dictionaries(KEY, VALUE, max_size=4)


def test_precedence_overwrites() -> None:
    layers = [
        ("defaults", {"feature": {"enabled": False}}, None),
        ("file", {"feature": {"enabled": True}}, "app.toml"),
        ("secret", {"feature": {"level": "debug"}}, None),
    ]
    merged, meta = merge_layers(layers)
    assert merged["feature"] == {"enabled": True, "level": "debug"}
    assert meta["feature.enabled"]["layer"] == "file"
    assert meta["feature.level"]["layer"] == "secret"


def test_dotted_top_level_keys_are_nested() -> None:
    merged, meta = merge_layers([("secret", {"b.a": {"token": "x"}}, None)])
    assert merged == {"b": {"a": {"token": "x"}}}
    assert "b.a.token" in meta


def test_dotted_key_merges_into_existing_branch() -> None:
    layers = [
        ("file", {"db": {"host": "localhost", "main": {"port": 5432}}}, "app.toml"),
        ("secret", {"db.main": {"password": "hunter2"}}, None),
    ]
    merged, _ = merge_layers(layers)
    assert merged["db"] == {"host": "localhost", "main": {"port": 5432, "password": "hunter2"}}


def test_tagged_table_origin_reaches_provenance() -> None:
    table = TaggedTable({"server": {"port": 5000}}, origin="secret:a:/run/a.json", path="/run/a.json")
    merged, meta = merge_layers([("secret", {"a": table}, None)])
    assert merged == {"a": {"server": {"port": 5000}}}
    assert not isinstance(merged["a"], TaggedTable)
    assert meta["a.server.port"] == {
        "layer": "secret",
        "path": "/run/a.json",
        "key": "a.server.port",
        "origin": "secret:a:/run/a.json",
    }


def test_plain_values_have_no_origin() -> None:
    _, meta = merge_layers([("file", {"a": 1}, "app.toml")])
    assert meta["a"]["origin"] is None
    assert meta["a"]["path"] == "app.toml"


def test_merge_does_not_share_lists_with_input() -> None:
    payload = {"redis": {"nodes": ["a"]}}
    merged, _ = merge_layers([("file", payload, None)])
    merged["redis"]["nodes"].append("b")
    assert payload["redis"]["nodes"] == ["a"]


def test_merge_is_idempotent() -> None:
    layers = [
        ("file", {"db": {"host": "localhost", "ports": [5432]}}, "app.toml"),
        ("secret", {"db": {"host": "remote"}}, None),
    ]
    assert merge_layers(layers) == merge_layers(layers)


@given(MAPPING, MAPPING, MAPPING)
def test_merge_associative(lhs, mid, rhs) -> None:
    left, _ = merge_layers([("lhs", lhs, None), ("mid", mid, None), ("rhs", rhs, None)])
    left_then_right, _ = merge_layers([("lhs-mid", merge_layers([("lhs", lhs, None), ("mid", mid, None)])[0], None), ("rhs", rhs, None)])
    assert left == left_then_right


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
