"""Shared fixtures for anytemplate tests."""

from pathlib import Path

import pytest

from anytemplate import TextRef, WebApp
from anytemplate.exceptions import BackendLoadError
from anytemplate.registry import default_registry

BACKENDS = ["StringTemplate", "Jinja", "Mako", "Chameleon"]

# How each engine writes a variable and an embed tag
VARIABLE = {
    "StringTemplate": "${{{0}}}",
    "Jinja": "{{{{ {0} }}}}",
    "Mako": "${{{0}}}",
    "Chameleon": "${{{0}}}",
}


def var(backend_name: str, name: str) -> str:
    return VARIABLE[backend_name].format(name)


def embed(backend_name: str, args: str, tag: str = "CGIAPP_embed") -> str:
    return var(backend_name, f"{tag}({args})")


def require_backend(name: str):
    """Skip the test if the backend's engine isn't installed."""
    try:
        backend = default_registry.resolve(name)
    except BackendLoadError as e:
        pytest.skip(e.message)
    missing = backend.missing_modules()
    if missing:
        pytest.skip(f"{name} needs {', '.join(missing)}")
    return backend


@pytest.fixture(params=BACKENDS)
def backend_name(request):
    """Every built-in backend whose engine is importable."""
    require_backend(request.param)
    return request.param


def header(app, containing, *args):
    return "<H1>Title</H1>"


def echo(app, containing, *args):
    return "|".join(str(arg) for arg in args)


def show_title(app, containing, *args):
    return "title=" + str(containing.param("title"))


class SampleApp(WebApp):
    """Host with a few handlers used across tests."""

    def setup(self):
        self.register_handlers(
            {"header": header, "echo": echo, "show_title": show_title}
        )
        self.register_handlers(["page", "nested_outer"])

    def page(self, containing=None):
        return self.template().fill({"title": "Home"})

    def nested_outer(self, containing, *args):
        backend_name = containing.backend_name
        inner = self.template().load(
            TextRef("[" + embed(backend_name, "'header'") + "]"), type=backend_name
        )
        return inner.render()


@pytest.fixture
def app():
    return SampleApp()


@pytest.fixture
def write_template(tmp_path):
    """Write a template file under tmp_path and return its path."""

    def _write(name: str, text: str, subdir: str = "") -> Path:
        path = tmp_path / subdir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
