"""Secret environment source tests covering prefix, suffix and separator handling.

Each scenario feeds an explicit environment mapping to ``collect`` so the
matching rules are exercised without touching the real process environment.
"""

from __future__ import annotations

import pytest

from lib_config_secret.adapters.env.secret import EnvironmentSecretFile
from lib_config_secret.domain.config import TaggedTable
from lib_config_secret.domain.errors import InvalidFormat, NotFound


def test_prefix_is_removed_from_key(asset) -> None:
    source = EnvironmentSecretFile.with_prefix("A")
    assert "b" in source.collect({"A_B_FILE": asset("config.json")})


@pytest.mark.parametrize(
    ("name", "prefix"),
    [("a_A_FILE", "a"), ("aB_A_FILE", "aB"), ("Ab_A_FILE", "ab")],
)
def test_prefix_with_variant_forms_of_spelling(asset, name: str, prefix: str) -> None:
    source = EnvironmentSecretFile.with_prefix(prefix)
    assert "a" in source.collect({name: asset("config.json")})


def test_separator_behavior(asset) -> None:
    source = EnvironmentSecretFile.with_prefix("C").separator("_")
    assert "b.a" in source.collect({"C_B_A_FILE": asset("config.json")})


def test_empty_value_is_ignored() -> None:
    source = EnvironmentSecretFile.with_prefix("c")
    assert source.collect({"C_A_B_FILE": ""}) == {}


def test_empty_value_is_ignored_for_full_pattern() -> None:
    source = EnvironmentSecretFile.with_prefix("F")
    assert source.collect({"F_FILE": ""}) == {}


def test_keep_prefix(asset) -> None:
    environ = {"C_A_C_FILE": asset("config.json")}

    assert "a_c" in EnvironmentSecretFile.with_prefix("C").collect(environ)
    assert "a_c" in EnvironmentSecretFile.with_prefix("C").keep_prefix(False).collect(environ)
    assert "c_a_c" in EnvironmentSecretFile.with_prefix("C").keep_prefix(True).collect(environ)


def test_keep_prefix_with_separator(asset) -> None:
    source = EnvironmentSecretFile.with_prefix("C").separator("_").keep_prefix(True)
    assert "c.a.c" in source.collect({"C_A_C_FILE": asset("config.json")})


def test_custom_separator_behavior(asset) -> None:
    source = EnvironmentSecretFile.with_prefix("C").separator(".")
    assert "b.a" in source.collect({"C.B.A.FILE": asset("config.json")})


def test_separator_choice_does_not_change_result_shape(asset) -> None:
    underscore = EnvironmentSecretFile.with_prefix("C").separator("_").collect({"C_B_A_FILE": asset("config.json")})
    dotted = EnvironmentSecretFile.with_prefix("C").separator(".").collect({"C.B.A.FILE": asset("config.json")})
    assert underscore == dotted


def test_custom_prefix_separator_behavior(asset) -> None:
    source = EnvironmentSecretFile.with_prefix("C").separator(".").prefix_separator("-")
    assert "b.a" in source.collect({"C-B.A.FILE": asset("config.json")})


def test_custom_suffix_behavior(asset) -> None:
    source = EnvironmentSecretFile.with_prefix("C").separator("_").suffix("SECRET")
    assert "b.a" in source.collect({"C_B_A_SECRET": asset("config.json")})


def test_custom_suffix_separator_behavior(asset) -> None:
    source = EnvironmentSecretFile.with_prefix("C").separator(".").suffix_separator("-")
    assert "b.a" in source.collect({"C.B.A-FILE": asset("config.json")})


def test_any_format_behavior(asset) -> None:
    source = EnvironmentSecretFile.with_prefix("D").separator("_")
    tree = source.collect({"D_E_F_FILE": asset("config.yaml")})
    assert tree["e.f"]["server"]["port"] == 5000


def test_full_pattern_behavior(asset) -> None:
    source = EnvironmentSecretFile.with_prefix("F").separator("_")
    tree = source.collect({"F_FILE": asset("config.yaml")})
    assert set(tree) == {"server", "redis"}
    assert not isinstance(tree["server"], TaggedTable)


def test_full_pattern_without_prefix(asset) -> None:
    tree = EnvironmentSecretFile().collect({"FILE": asset("config.toml"), "PATH": "/usr/bin"})
    assert tree["server"]["host"] == "0.0.0.0"


def test_full_pattern_is_case_insensitive(asset) -> None:
    tree = EnvironmentSecretFile.with_prefix("app").collect({"App_File": asset("config.json")})
    assert "server" in tree


def test_full_pattern_with_distinct_separators_drops_separator(asset) -> None:
    source = EnvironmentSecretFile.with_prefix("C").separator(".").prefix_separator("-")
    assert "server" in source.collect({"CFILE": asset("config.json")})
    assert "server" not in source.collect({"C-FILE": asset("config.json")})


def test_full_pattern_merges_last_write_wins(tmp_path) -> None:
    first = tmp_path / "first.json"
    first.write_text('{"mode": "first", "only_first": 1}', encoding="utf-8")
    second = tmp_path / "second.json"
    second.write_text('{"mode": "second"}', encoding="utf-8")

    source = EnvironmentSecretFile.with_prefix("X")
    tree = source.collect({"X_FILE": str(first), "x_file": str(second)})
    assert tree == {"mode": "second", "only_first": 1}


def test_nested_match_is_tagged_with_origin(asset) -> None:
    path = asset("config.json")
    tree = EnvironmentSecretFile.with_prefix("J").separator("_").collect({"J_A_FILE": path})
    table = tree["a"]
    assert isinstance(table, TaggedTable)
    assert table.origin == f"secret:a:{path}"
    assert table.path == path
    assert table["server"]["port"] == 5000


def test_variables_without_suffix_or_prefix_are_skipped(asset) -> None:
    source = EnvironmentSecretFile.with_prefix("APP").separator("_")
    environ = {
        "APP_DB": asset("config.json"),
        "OTHER_DB_FILE": asset("config.json"),
        "HOME": "/root",
    }
    assert source.collect(environ) == {}


def test_empty_derived_key_is_skipped(asset) -> None:
    assert EnvironmentSecretFile.with_prefix("C").collect({"C__FILE": asset("config.json")}) == {}


def test_dot_only_derived_key_is_skipped(asset) -> None:
    source = EnvironmentSecretFile.with_prefix("C").separator("_")
    assert source.collect({"C___FILE": asset("config.json")}) == {}


def test_full_pattern_yaml_with_integer_keys(tmp_path) -> None:
    secret = tmp_path / "service.yaml"
    secret.write_text("8080: http\nname: svc\n", encoding="utf-8")
    tree = EnvironmentSecretFile.with_prefix("APP").collect({"APP_FILE": str(secret)})
    assert tree == {"8080": "http", "name": "svc"}


def test_path_is_not_case_folded(tmp_path) -> None:
    secret = tmp_path / "Secret.JSON"
    secret.write_text('{"token": "abc"}', encoding="utf-8")
    tree = EnvironmentSecretFile.with_prefix("S").collect({"S_API_FILE": str(secret)})
    assert tree["api"]["token"] == "abc"


def test_reads_process_environment_by_default(asset, monkeypatch) -> None:
    monkeypatch.setenv("ENVSECRET_PROC_FILE", asset("config.json"))
    tree = EnvironmentSecretFile.with_prefix("ENVSECRET").collect()
    assert "proc" in tree


def test_malformed_file_fails_whole_call(asset, malformed_json) -> None:
    source = EnvironmentSecretFile.with_prefix("M").separator("_")
    environ = {"M_GOOD_FILE": asset("config.json"), "M_BAD_FILE": malformed_json}
    with pytest.raises(InvalidFormat):
        source.collect(environ)


def test_missing_file_is_not_found(tmp_path) -> None:
    source = EnvironmentSecretFile.with_prefix("M")
    with pytest.raises(NotFound):
        source.collect({"M_GONE_FILE": str(tmp_path / "gone.json")})


def test_loader_errors_propagate_unchanged() -> None:
    failure = InvalidFormat("custom loader failure")

    class ExplodingLoader:
        def load(self, path: str):
            raise failure

    source = EnvironmentSecretFile.with_prefix("E").with_loader(ExplodingLoader())
    with pytest.raises(InvalidFormat) as excinfo:
        source.collect({"E_X_FILE": "/anything"})
    assert excinfo.value is failure


def test_first_failure_stops_iteration() -> None:
    calls: list[str] = []

    class RecordingLoader:
        def load(self, path: str):
            calls.append(path)
            raise NotFound(path)

    source = EnvironmentSecretFile.with_prefix("E").with_loader(RecordingLoader())
    with pytest.raises(NotFound):
        source.collect({"E_A_FILE": "/first", "E_B_FILE": "/second"})
    assert calls == ["/first"]


def test_builder_methods_return_new_instances() -> None:
    base = EnvironmentSecretFile.with_prefix("A")
    derived = base.separator("_")
    assert base is not derived
    assert base.patterns().separator == ""
    assert derived.patterns().separator == "_"


def test_scan_lists_matches_without_loading() -> None:
    class NeverLoader:
        def load(self, path: str):  # pragma: no cover - must not be called
            raise AssertionError("scan must not load files")

    source = EnvironmentSecretFile.with_prefix("APP").separator("_").with_loader(NeverLoader())
    rows = source.scan({"APP_FILE": "/a.toml", "APP_DB_MAIN_FILE": "/b.json", "APP_EMPTY_FILE": "", "HOME": "/"})
    summary = {name: (match.kind.value, match.key, path) for name, match, path in rows}
    assert summary == {
        "APP_FILE": ("full", None, "/a.toml"),
        "APP_DB_MAIN_FILE": ("nested", "db.main", "/b.json"),
    }
