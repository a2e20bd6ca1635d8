"""Unit tests for buildvault/rendering/engine.py - Sandboxed template engine."""

import pytest
from jinja2 import TemplateNotFound, UndefinedError
from jinja2.exceptions import SecurityError

from buildvault.rendering import SecureTemplateEngine


@pytest.fixture
def template_dir(tmp_path):
    directory = tmp_path / "templates"
    directory.mkdir()
    (directory / "hello.j2").write_text("Hello {{ name | comment_safe }}\n")
    (directory / "rows.j2").write_text("{% for row in data | byte_rows(2) %}{{ row }}\n{% endfor %}")
    return directory


class TestInitialization:
    def test_default_template_dir(self):
        """Should use the package's built-in templates."""
        engine = SecureTemplateEngine()

        assert (engine.template_dir / "app_keys.py.j2").is_file()

    def test_missing_dir_raises(self, tmp_path):
        with pytest.raises(ValueError, match="does not exist"):
            SecureTemplateEngine(tmp_path / "missing")


class TestRender:
    def test_render_with_filters(self, template_dir):
        engine = SecureTemplateEngine(template_dir)

        assert engine.render("hello.j2", {"name": "dev\nprod"}) == "Hello dev prod\n"
        assert engine.render("rows.j2", {"data": b"\x01\x02\x03"}) == "1, 2,\n3,\n"

    def test_undefined_variable_fails(self, template_dir):
        engine = SecureTemplateEngine(template_dir)

        with pytest.raises(UndefinedError):
            engine.render("hello.j2", {})

    def test_missing_template(self, template_dir):
        engine = SecureTemplateEngine(template_dir)

        with pytest.raises(TemplateNotFound):
            engine.render("nope.j2", {})

    def test_path_traversal_rejected(self, template_dir):
        (template_dir.parent / "outside.j2").write_text("secret")
        engine = SecureTemplateEngine(template_dir)

        with pytest.raises(ValueError, match="escapes template directory"):
            engine.render("../outside.j2", {})

    def test_sandbox_blocks_unsafe_attributes(self, template_dir):
        (template_dir / "unsafe.j2").write_text("{{ ''.__class__.__mro__[1].__subclasses__() }}")
        engine = SecureTemplateEngine(template_dir)

        with pytest.raises((SecurityError, UndefinedError)):
            engine.render("unsafe.j2", {})
