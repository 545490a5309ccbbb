from dataclasses import replace

import pytest
import yaml

from clipregex import config as cfgmod
from clipregex.engine import TransformationEngine
from clipregex.errors import ConfigError


@pytest.fixture
def path(tmp_path):
    return tmp_path / "clipregex.yaml"


def _write(path, doc):
    path.write_text(yaml.safe_dump(doc, sort_keys=False), encoding="utf-8")


def _doc(**overrides):
    doc = {
        "profiles": [
            {"name": "P", "hotkey": "ctrl+alt+v",
             "replacements": [{"regex": "a", "replace_with": "b"}]},
        ],
    }
    doc.update(overrides)
    return doc


def test_missing_file_gets_default(path):
    config = cfgmod.load_config(path)
    assert path.exists()
    assert config.profile_names() == ["General Cleanup", "Example Secret Redaction"]
    assert config.revert_hotkey == "ctrl+shift+alt+r"
    assert config.paste_delay_ms == 400
    assert not config.profile("Example Secret Redaction").enabled


def test_missing_file_without_create(path):
    with pytest.raises(ConfigError):
        cfgmod.load_config(path, create=False)


def test_create_default_does_not_overwrite(path):
    assert cfgmod.create_default_config(path)
    path.write_text("profiles: []\n", encoding="utf-8")
    assert not cfgmod.create_default_config(path)
    assert path.read_text(encoding="utf-8") == "profiles: []\n"


def test_defaults_fill_missing_settings(path):
    _write(path, _doc())
    config = cfgmod.load_config(path)
    assert config.temporary_clipboard
    assert not config.automatic_reversion
    assert config.regex_timeout_ms == 500
    assert config.admin_notification_level == "warn"
    assert config.profile("P").rules[0].replacement == "b"


def test_legacy_document_is_migrated(path):
    _write(path, {"hotkey": "ctrl+v", "replacements": [{"regex": "x", "replace_with": "y"}]})
    config = cfgmod.load_config(path)
    assert config.profile_names() == ["Default"]
    assert config.profile("Default").hotkey == "ctrl+v"
    saved = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert "hotkey" not in saved
    assert saved["profiles"][0]["name"] == "Default"


def test_save_and_load_keep_order_and_fields(path):
    _write(path, _doc(profiles=[
        {"name": "Z", "hotkey": "ctrl+1", "reverse_hotkey": "ctrl+2",
         "replacements": [{"regex": "(?i)(a|b)", "replace_with": "c",
                           "preserve_case": True, "reverse_with": "a"}]},
        {"name": "A", "hotkey": "ctrl+3", "enabled": False, "replacements": []},
    ], secrets={"tok": "managed"}))
    first = cfgmod.load_config(path)
    cfgmod.save_config(first)
    second = cfgmod.load_config(path)
    assert second == first
    assert second.profile_names() == ["Z", "A"]
    assert second.secrets == ("tok",)


@pytest.mark.parametrize("profiles", [
    [{"name": "", "hotkey": "ctrl+1"}],
    [{"name": "P", "hotkey": ""}],
    [{"name": "P", "hotkey": "ctrl+1"}, {"name": "P", "hotkey": "ctrl+2"}],
    [{"name": "P", "hotkey": "ctrl+1", "replacements": [{"regex": "("}]}],
    [{"name": "P", "hotkey": "ctrl+1", "replacements": [{"replace_with": "x"}]}],
    [{"name": "P", "hotkey": "ctrl+1", "replacements": [{"regex": "a", "replace_with": r"C:\Users"}]}],
    [{"name": "P", "hotkey": "ctrl+1", "replacements": [{"regex": "(a)", "replace_with": r"\g<3>"}]}],
])
def test_invalid_profiles_rejected(path, profiles):
    _write(path, {"profiles": profiles})
    with pytest.raises(ConfigError):
        cfgmod.load_config(path)


@pytest.mark.parametrize("overrides", [
    {"paste_delay_ms": -1},
    {"regex_timeout_ms": "soon"},
    {"admin_notification_level": "loud"},
    {"profiles": {"name": "P"}},
    {"secrets": ["a"]},
])
def test_invalid_settings_rejected(path, overrides):
    _write(path, _doc(**overrides))
    with pytest.raises(ConfigError):
        cfgmod.load_config(path)


def test_malformed_yaml_is_config_error(path):
    path.write_text("profiles: [\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        cfgmod.load_config(path)


def test_placeholder_pattern_is_valid(path):
    _write(path, _doc(profiles=[
        {"name": "S", "hotkey": "ctrl+s",
         "replacements": [{"regex": "{{my_secret}}", "replace_with": "[X]"}]},
    ]))
    assert cfgmod.load_config(path).profile("S").rules[0].pattern == "{{my_secret}}"


def test_replacement_templates_checked_on_load(path):
    _write(path, _doc(profiles=[
        {"name": "S", "hotkey": "ctrl+s", "replacements": [
            {"regex": r"(?P<user>\w+)@x", "replace_with": r"\g<user>@y \1"},
            {"regex": "b", "replace_with": "{{tok}}"},
            {"regex": "(?i)c", "replace_with": r"C:\Users", "preserve_case": True},
        ]},
    ]))
    assert len(cfgmod.load_config(path).profile("S").rules) == 3


def test_set_profile_enabled_persists(path):
    _write(path, _doc())
    updated = cfgmod.set_profile_enabled(cfgmod.load_config(path), "P", False)
    assert not updated.profile("P").enabled
    assert not cfgmod.load_config(path).profile("P").enabled


def test_unknown_profile_rejected(path):
    _write(path, _doc())
    with pytest.raises(ConfigError):
        cfgmod.set_profile_enabled(cfgmod.load_config(path), "Nope", True)


def test_add_simple_rule_matches_literally(path):
    _write(path, _doc())
    updated = cfgmod.add_simple_rule(cfgmod.load_config(path), "P", "a.b", "X", True)
    rule = updated.profile("P").rules[-1]
    assert rule.pattern.startswith("(?i)")
    reloaded = cfgmod.load_config(path)
    assert reloaded.profile("P").rules[-1] == rule
    result = TransformationEngine([replace(reloaded.profile("P"), rules=(rule,))]).transform(
        "A.B axb", "ctrl+alt+v"
    )
    assert result.text == "X axb"


def test_add_simple_rule_keeps_backslashes(path):
    _write(path, _doc())
    cfgmod.add_simple_rule(cfgmod.load_config(path), "P", "a", r"C:\dir")
    profile = cfgmod.load_config(path).profile("P")
    result  = TransformationEngine([replace(profile, rules=profile.rules[-1:])]).transform(
        "a", "ctrl+alt+v"
    )
    assert result.text == r"C:\dir"


def test_add_simple_rule_needs_source(path):
    _write(path, _doc())
    with pytest.raises(ConfigError):
        cfgmod.add_simple_rule(cfgmod.load_config(path), "P", "", "X")


def test_secret_references(path):
    _write(path, _doc())
    config = cfgmod.add_secret_reference(cfgmod.load_config(path), "api_key")
    assert config.secrets == ("api_key",)
    config = cfgmod.add_secret_rule(config, "api_key", "P", "[KEY]")
    assert config.profile("P").rules[-1].pattern == "{{api_key}}"
    config = cfgmod.remove_secret_reference(config, "api_key")
    assert cfgmod.load_config(path).secrets == ()


@pytest.mark.parametrize("name", ["", "bad name", "a{b", "x.y"])
def test_invalid_secret_names(path, name):
    _write(path, _doc())
    with pytest.raises(ConfigError):
        cfgmod.add_secret_reference(cfgmod.load_config(path), name)


def test_reload_keeps_runtime_enabled_flags(path):
    _write(path, _doc())
    current = cfgmod.load_config(path)
    runtime = replace(current, profiles=(current.profile("P").with_enabled(False),))
    fresh, changed = cfgmod.reload_config(runtime)
    assert not fresh.profile("P").enabled
    assert not changed


def test_reload_reports_profile_set_change(path):
    _write(path, _doc())
    current = cfgmod.load_config(path)
    doc = _doc()
    doc["profiles"].append({"name": "Q", "hotkey": "ctrl+q"})
    _write(path, doc)
    fresh, changed = cfgmod.reload_config(current)
    assert changed
    assert fresh.profile_names() == ["P", "Q"]
