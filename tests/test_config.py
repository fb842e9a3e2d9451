"""Tests for the configuration cascade."""

import pytest

from anytemplate import TextRef
from anytemplate.config import (
    PLUGIN_CONFIG_KEYS,
    ConfigStore,
    PluginConfig,
    load_config_file,
    merge_include_paths,
)
from anytemplate.exceptions import (
    InvalidBackendNameError,
    InvalidConfigError,
    UnknownBackendError,
)
from anytemplate.registry import default_registry


def make_store(options):
    return ConfigStore.from_options(options, default_registry)


def test_partition_is_exact_and_disjoint():
    store = make_store(
        {
            "include_paths": ["a"],
            "StringTemplate": {
                "template_extension": ".txt",
                "strict": False,
                "delimiter": "%",
                "idpattern": "[a-z]+",
            },
        }
    )
    assert store.plugin_config["include_paths"] == ["a"]
    assert store.driver_config["StringTemplate"] == {
        "template_extension": ".txt",
        "strict": False,
    }
    assert store.native_config["StringTemplate"] == {
        "delimiter": "%",
        "idpattern": "[a-z]+",
    }


def test_session_sees_partitioned_options(app):
    app.template().config(StringTemplate={"strict": False, "delimiter": "%"})
    session = app.template().load(TextRef("%x"))
    assert session.driver_config.strict is False
    assert session.driver_config.template_extension == ".html"
    assert session.native_config == {"delimiter": "%"}


def test_caller_bag_not_modified():
    options = {"include_paths": ["a"], "StringTemplate": {"strict": False}}
    store = make_store(options)
    store.plugin_config["include_paths"].append("b")
    store.driver_config["StringTemplate"]["strict"] = True
    assert options == {"include_paths": ["a"], "StringTemplate": {"strict": False}}


def test_unknown_backend_section():
    with pytest.raises(UnknownBackendError, match="Nope"):
        make_store({"Nope": {}})


def test_unknown_default_type():
    with pytest.raises(UnknownBackendError) as excinfo:
        make_store({"default_type": "Nope"})
    assert excinfo.value.backend_name == "Nope"
    assert "StringTemplate" in excinfo.value.available


def test_illegal_backend_name():
    with pytest.raises(InvalidBackendNameError):
        make_store({"bad-name": {}})
    with pytest.raises(InvalidBackendNameError):
        make_store({"type": "../etc"})


def test_backend_section_must_be_mapping():
    with pytest.raises(InvalidConfigError, match="must be a mapping"):
        make_store({"StringTemplate": "strict"})


def test_invalid_plugin_option():
    with pytest.raises(InvalidConfigError, match="auto_add_template_extension"):
        make_store({"auto_add_template_extension": "sometimes"})


def test_invalid_embed_tag_name():
    with pytest.raises(InvalidConfigError, match="embed_tag_name"):
        make_store({"StringTemplate": {"embed_tag_name": "not-an-identifier"}})


def test_invalid_driver_value():
    with pytest.raises(InvalidConfigError, match="StringTemplate"):
        make_store({"StringTemplate": {"strict": "maybe"}})


def test_merge_include_paths():
    assert merge_include_paths(["a", "b"], ["c", "a"]) == ["c", "a", "b"]
    assert merge_include_paths("a", None) == ["a"]
    assert merge_include_paths(None, None) == []


def test_include_paths_through_load(app):
    app.template().config(include_paths=["a", "b"])
    session = app.template().load(TextRef("x"), add_include_paths=["c", "a"])
    assert session.include_paths == ["c", "a", "b"]


def test_merged_without_overrides_is_same_store():
    store = make_store({"include_paths": ["a"]})
    assert store.merged({}, default_registry) is store
    assert store.merged(None, default_registry) is store


def test_merged_with_overrides_leaves_base_alone():
    store = make_store({"include_paths": ["a"], "StringTemplate": {"strict": False}})
    before = store.clone()

    merged = store.merged(
        {"file": "page", "StringTemplate": {"strict": True, "delimiter": "%"}},
        default_registry,
    )
    again = store.merged(
        {"file": "page", "StringTemplate": {"strict": True, "delimiter": "%"}},
        default_registry,
    )

    assert merged is not store
    assert merged == again
    assert store == before
    assert merged.plugin_config["file"] == "page"
    assert merged.driver_config["StringTemplate"] == {"strict": True}
    assert merged.native_config["StringTemplate"] == {"delimiter": "%"}


def test_config_replaces_wholesale(app):
    slot = app.template()
    slot.config(include_paths=["a"], StringTemplate={"strict": False})
    slot.config(default_type="StringTemplate")

    assert "include_paths" not in slot.base_config.plugin_config
    assert slot.base_config.driver_config == {}


def test_failed_config_keeps_previous(app):
    slot = app.template()
    slot.config(include_paths=["a"])
    with pytest.raises(UnknownBackendError):
        slot.config(default_type="Nope")
    assert slot.base_config.plugin_config["include_paths"] == ["a"]


def test_config_records_callers_package(app):
    app.template().config()
    assert app.template().base_config.plugin_config["callers_package"] == "conftest"

    app.template().config(callers_package="mypkg")
    session = app.template().load(TextRef("x"))
    assert session.callers_package == "mypkg"


def test_plugin_config_model():
    plugin = PluginConfig.model_validate(
        {"include_paths": "a", "string": TextRef("body"), "type": "Jinja"}
    )
    assert plugin.include_paths == ["a"]
    assert plugin.string == "body"
    assert plugin.backend_name == "Jinja"
    assert PluginConfig().backend_name == "StringTemplate"
    assert set(PluginConfig.model_fields) == PLUGIN_CONFIG_KEYS


def test_load_config_file(tmp_path):
    path = tmp_path / "templates.yaml"
    path.write_text(
        """
default_type: StringTemplate
include_paths:
  - templates
StringTemplate:
  strict: false
  delimiter: "%"
"""
    )
    options = load_config_file(path)
    assert options["StringTemplate"] == {"strict": False, "delimiter": "%"}

    store = make_store(options)
    assert store.native_config["StringTemplate"] == {"delimiter": "%"}


def test_load_config_file_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config_file(tmp_path / "missing.yaml")

    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(InvalidConfigError):
        load_config_file(path)

    empty = tmp_path / "empty.yaml"
    empty.write_text("")
    assert load_config_file(empty) == {}


def test_slot_config_file(app, tmp_path):
    path = tmp_path / "templates.yaml"
    path.write_text("include_paths: [one, two]\n")
    app.template().config_file(path)
    session = app.template().load(TextRef("x"))
    assert session.include_paths == ["one", "two"]
