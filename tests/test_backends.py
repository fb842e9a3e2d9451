"""Tests for the template backends, run against every installed engine."""

import pytest

from anytemplate import TextRef
from anytemplate.exceptions import EmbedSyntaxError, UnknownHandlerError

from conftest import SampleApp, embed, require_backend, var


def load_string(app, backend_name, text, **options):
    return app.template().load(TextRef(text), type=backend_name, **options)


def test_param_roundtrip(app, backend_name):
    session = load_string(app, backend_name, "x")
    session.param("name", "x")
    assert session.param("name") == "x"
    assert session.param("missing") is None


def test_param_call_variants(app, backend_name):
    session = load_string(app, backend_name, "x")
    session.param({"a": "1", "b": "2"})
    session.param(c="3")
    assert sorted(session.param()) == ["a", "b", "c"]
    assert session.get_param_hash() == {"a": "1", "b": "2", "c": "3"}

    session.clear_params()
    assert session.param() == []


def test_get_param_hash_is_a_copy(app, backend_name):
    session = load_string(app, backend_name, "x")
    session.param("a", "1")
    session.get_param_hash()["a"] = "changed"
    assert session.param("a") == "1"

    session.params["a"] = "live"
    assert session.param("a") == "live"


def test_render_variables(app, backend_name):
    session = load_string(app, backend_name, "Hello " + var(backend_name, "name") + "!")
    assert session.render({"name": "Bob"}) == "Hello Bob!"


def test_output_is_render(app, backend_name):
    session = load_string(app, backend_name, var(backend_name, "name"))
    session.param("name", "Bob")
    assert session.output() == "Bob"


def test_embedded_header_spliced_in_place(app, backend_name):
    text = "before " + embed(backend_name, "'header'") + " after"
    session = load_string(app, backend_name, text)
    assert session.render() == "before <H1>Title</H1> after"


def test_embedded_component_sees_containing_variables(app, backend_name):
    session = load_string(app, backend_name, embed(backend_name, "'show_title'"))
    assert session.render({"title": "Home"}) == "title=Home"


def test_embedded_component_arguments(app, backend_name):
    text = embed(backend_name, "'echo', name, \"lit\", 'two words'")
    session = load_string(app, backend_name, text)
    assert session.render({"name": "Bob"}) == "Bob|lit|two words"


def test_unresolved_embed_argument_is_empty(app, backend_name):
    if backend_name == "Chameleon":
        pytest.skip("Chameleon raises NameError for undefined names")
    text = embed(backend_name, "'echo', 'a', nothing_here, 'b'")
    session = load_string(app, backend_name, text)
    assert session.render() == "a||b"


def test_unknown_handler_raises(app, backend_name):
    session = load_string(app, backend_name, embed(backend_name, "'nope'"))
    with pytest.raises(UnknownHandlerError, match="nope"):
        session.render()


def test_nested_components(app, backend_name):
    session = load_string(app, backend_name, "(" + embed(backend_name, "'nested_outer'") + ")")
    assert session.render() == "([<H1>Title</H1>])"


def test_custom_embed_tag_name(app, backend_name):
    text = embed(backend_name, "'header'", tag="component")
    section = {backend_name: {"embed_tag_name": "component"}}
    session = load_string(app, backend_name, text, **section)
    assert session.render() == "<H1>Title</H1>"


def test_query_visible_but_params_win(backend_name):
    app = SampleApp(query={"q": "from-query", "title": "from-query"})
    text = var(backend_name, "title") + " " + var(backend_name, "q")
    session = load_string(app, backend_name, text)
    assert session.render({"title": "from-param"}) == "from-param from-query"


def test_query_cannot_replace_embed_callback(backend_name):
    app = SampleApp(query={"CGIAPP_embed": "x"})
    session = load_string(app, backend_name, embed(backend_name, "'header'"))
    assert session.render() == "<H1>Title</H1>"


@pytest.mark.parametrize("name", ["StringTemplate", "Mako", "Chameleon"])
def test_query_copied_into_variables(name):
    require_backend(name)
    app = SampleApp(query={"q": "from-query"})
    app.register_handler("show_q", lambda app, containing: containing.param("q"))
    session = load_string(app, name, embed(name, "'show_q'"))
    assert session.render() == "from-query"
    assert session.param("q") == "from-query"


def test_query_not_associated_when_disabled(backend_name):
    app = SampleApp(query={"q": "from-query"})
    if backend_name == "Chameleon":
        pytest.skip("Chameleon raises NameError for undefined names")
    text = embed(backend_name, "'echo', q")
    section = {backend_name: {"associate_query": False}}
    session = load_string(app, backend_name, text, **section)
    assert session.render() == ""
    assert "q" not in session.get_param_hash()


def test_pre_and_post_process_hooks(backend_name):
    calls = []

    class HookedApp(SampleApp):
        def template_pre_process(self, backend):
            calls.append(("pre", backend.name))
            backend.param("injected", "pre")

        def template_post_process(self, backend, output):
            calls.append(("post", output.text))
            output.text = output.text.upper()

    app = HookedApp()
    session = load_string(app, backend_name, var(backend_name, "injected"))
    assert session.render() == "PRE"
    assert calls == [("pre", backend_name), ("post", "pre")]


def test_end_to_end_fill_from_include_path(app, backend_name, tmp_path, monkeypatch, write_template):
    backend = require_backend(backend_name)
    extension = backend.default_config()["template_extension"]
    lines = ["--begin--"]
    for name in ("var1", "var2", "var3"):
        lines.append(f"{name}:" + var(backend_name, name))
    lines.append("--end--")
    write_template("simple" + extension, "\n".join(lines) + "\n", subdir="t/tmpl")
    monkeypatch.chdir(tmp_path)

    app.template().config(default_type=backend_name, include_paths=["t/tmpl"])
    output = app.template().fill(
        "simple", {"var1": "value1", "var2": "value2", "var3": "value3"}
    )

    assert output == "--begin--\nvar1:value1\nvar2:value2\nvar3:value3\n--end--\n"


def test_file_template_by_absolute_path(app, backend_name, write_template):
    path = write_template("abs.txt", "abs " + var(backend_name, "x"))
    session = app.template().load(
        str(path), type=backend_name, auto_add_template_extension=False
    )
    assert session.render({"x": "1"}) == "abs 1"


def test_missing_template_file(app, backend_name, tmp_path):
    app.template().config(default_type=backend_name, include_paths=[str(tmp_path)])
    with pytest.raises(Exception):
        app.template().load("not-there")


# =============================================================================
# Engine specific behaviour
# =============================================================================


def test_string_template_emulation_skips_escaped_delimiter(app):
    session = load_string(app, "StringTemplate", "$${CGIAPP_embed('header')} ${CGIAPP_embed('header')}")
    assert session.render() == "${CGIAPP_embed('header')} <H1>Title</H1>"


def test_string_template_embed_after_escaped_delimiter(app):
    session = load_string(app, "StringTemplate", "$$${CGIAPP_embed('header')}")
    assert session.render() == "$<H1>Title</H1>"

    session = load_string(app, "StringTemplate", "$$$${CGIAPP_embed('header')}")
    assert session.render() == "$${CGIAPP_embed('header')}"


def test_string_template_reads_utf8_file(app, write_template):
    path = write_template("note.html", "caf\u00e9 $x")
    session = app.template().load(str(path), auto_add_template_extension=False)
    assert session.render({"x": "1"}) == "caf\u00e9 1"


def test_string_template_strict_and_lenient(app):
    strict = load_string(app, "StringTemplate", "$missing")
    with pytest.raises(KeyError):
        strict.render()

    lenient = load_string(app, "StringTemplate", "$missing", StringTemplate={"strict": False})
    assert lenient.render() == "$missing"


def test_string_template_native_delimiter(app):
    text = "%name %{CGIAPP_embed('echo', name)} $name"
    session = load_string(app, "StringTemplate", text, StringTemplate={"delimiter": "%"})
    assert session.render({"name": "Bob"}) == "Bob Bob $name"


def test_string_template_malformed_embed(app):
    with pytest.raises(EmbedSyntaxError):
        load_string(app, "StringTemplate", "${CGIAPP_embed('header)}")
    with pytest.raises(EmbedSyntaxError, match="missing handler name"):
        load_string(app, "StringTemplate", "${CGIAPP_embed()}")


def test_string_template_component_output_not_resubstituted(app):
    app.register_handler("dollar", lambda app, containing: "$name")
    session = load_string(app, "StringTemplate", "${CGIAPP_embed('dollar')}")
    assert session.render({"name": "Bob"}) == "$name"


def test_jinja_autoescape_keeps_component_markup(app):
    require_backend("Jinja")
    text = "{{ value }}{{ CGIAPP_embed('header') }}"
    session = load_string(app, "Jinja", text, Jinja={"autoescape": True})
    assert session.render({"value": "<b>"}) == "&lt;b&gt;<H1>Title</H1>"


def test_jinja_partition_of_driver_and_native_keys(app):
    require_backend("Jinja")
    session = load_string(
        app, "Jinja", "x", Jinja={"template_extension": ".j2", "trim_blocks": True}
    )
    assert session.driver_config.template_extension == ".j2"
    assert session.native_config == {"trim_blocks": True}
    assert session.backend.engine.environment.trim_blocks is True


def test_mako_html_filter_keeps_component_markup(app):
    require_backend("Mako")
    text = "${value}${CGIAPP_embed('header')}"
    session = load_string(app, "Mako", text, Mako={"default_filters": ["h"]})
    assert session.render({"value": "<b>"}) == "&lt;b&gt;<H1>Title</H1>"


def test_chameleon_tal_replace(app):
    require_backend("Chameleon")
    text = (
        "<div><span tal:replace=\"CGIAPP_embed('echo', title, 'x')\">"
        "replaced</span></div>"
    )
    session = load_string(app, "Chameleon", text)
    assert session.render({"title": "T"}) == "<div>T|x</div>"
