"""Unit tests for the Jinja2-backed template factories."""

import io

import pytest

from templar.errors import TemplateParseError, TemplateRenderError
from templar.templates import (
    FunctionContext,
    HtmlTemplateFactory,
    TextTemplateFactory,
    Variable,
    html_template_factory,
    text_template_factory,
)


@pytest.fixture
def ctx() -> FunctionContext:
    """Return a context with one function and one variable."""
    return FunctionContext({"shout": lambda s: s.upper(), "TEAM": Variable("core")})


class TestParse:
    """Tests for anonymous and named parsing."""

    def test_parse_anonymous(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test parsing text without a name."""
        template = text_factory.parse(ctx, "Hello {{ name }}")

        assert template.render({"name": "World"}) == "Hello World"

    def test_anonymous_not_cached(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test that anonymous templates are not reachable by lookup."""
        text_factory.parse(ctx, "x")

        assert text_factory.lookup("") is None
        assert text_factory.names() == []

    def test_parse_with_name_caches(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test that a named template is returned by lookup."""
        template = text_factory.parse_with_name(ctx, "greeting", "hi")

        assert text_factory.lookup("greeting") is template
        assert text_factory.names() == ["greeting"]

    def test_lookup_unknown(self, text_factory: TextTemplateFactory) -> None:
        """Test lookup of a name never parsed."""
        assert text_factory.lookup("missing") is None

    def test_reparse_overwrites(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test that parsing an existing name replaces the cached template."""
        text_factory.parse_with_name(ctx, "n", "one")
        text_factory.parse_with_name(ctx, "n", "two")

        assert text_factory.lookup("n").render() == "two"

    def test_factories_have_separate_caches(self, ctx: FunctionContext) -> None:
        """Test that each factory instance is its own namespace."""
        first = TextTemplateFactory()
        second = TextTemplateFactory()
        first.parse_with_name(ctx, "only-first", "x")

        assert second.lookup("only-first") is None


class TestParseErrors:
    """Tests for malformed template handling."""

    def test_parse_error_has_diagnostics(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test that syntax errors carry name and line."""
        with pytest.raises(TemplateParseError) as exc_info:
            text_factory.parse_with_name(ctx, "bad", "line one\n{% if x %}\n")

        error = exc_info.value
        assert error.name == "bad"
        assert error.lineno is not None
        assert error.message
        assert "bad" in str(error)

    def test_failed_parse_leaves_cache_untouched(
        self,
        text_factory: TextTemplateFactory,
        ctx: FunctionContext,
    ) -> None:
        """Test that a failed parse neither adds nor replaces entries."""
        good = text_factory.parse_with_name(ctx, "page", "good")

        with pytest.raises(TemplateParseError):
            text_factory.parse_with_name(ctx, "page", "{% for %}")
        with pytest.raises(TemplateParseError):
            text_factory.parse_with_name(ctx, "other", "{{ unclosed")

        assert text_factory.lookup("page") is good
        assert text_factory.lookup("other") is None

    def test_parse_error_chains_backend_error(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test that the Jinja2 error is kept as the cause."""
        from jinja2 import TemplateSyntaxError

        with pytest.raises(TemplateParseError) as exc_info:
            text_factory.parse(ctx, "{% endif %}")

        assert isinstance(exc_info.value.__cause__, TemplateSyntaxError)


class TestFunctions:
    """Tests for functions and variables inside templates."""

    def test_function_call(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test calling a registered function."""
        template = text_factory.parse(ctx, "{{ shout(name) }}")

        assert template.render({"name": "quiet"}) == "QUIET"

    def test_variable_called_or_printed(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test that variables work both as calls and as values."""
        template = text_factory.parse(ctx, "{{ TEAM() }}/{{ TEAM }}")

        assert template.render() == "core/core"

    def test_data_shadows_function(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test that render data takes precedence over globals."""
        template = text_factory.parse(ctx, "{{ TEAM }}")

        assert template.render({"TEAM": "data"}) == "data"


class TestNamespace:
    """Tests for cross-template references within a factory."""

    def test_include_named_template(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test including a template parsed earlier into the same factory."""
        text_factory.parse_with_name(ctx, "header", "H:{{ title }}")
        page = text_factory.parse_with_name(ctx, "page", "{% include 'header' %}|body")

        assert page.render({"title": "x"}) == "H:x|body"

    def test_include_sees_overwritten_template(
        self,
        text_factory: TextTemplateFactory,
        ctx: FunctionContext,
    ) -> None:
        """Test that includes resolve the current definition at render time."""
        text_factory.parse_with_name(ctx, "header", "old")
        page = text_factory.parse_with_name(ctx, "page", "{% include 'header' %}")
        text_factory.parse_with_name(ctx, "header", "new")

        assert page.render() == "new"

    def test_extends_named_template(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test template inheritance within a factory."""
        text_factory.parse_with_name(ctx, "base", "[{% block body %}{% endblock %}]")
        child = text_factory.parse_with_name(
            ctx, "child", "{% extends 'base' %}{% block body %}child{% endblock %}"
        )

        assert child.render() == "[child]"

    def test_loader_lists_cached_names(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test that the environment's loader sees the same names as the factory."""
        text_factory.parse_with_name(ctx, "b", "")
        text_factory.parse_with_name(ctx, "a", "")
        text_factory.parse(ctx, "anonymous")

        assert text_factory.environment.list_templates() == text_factory.names() == ["a", "b"]

    def test_include_missing_is_render_error(
        self,
        text_factory: TextTemplateFactory,
        ctx: FunctionContext,
    ) -> None:
        """Test that a dangling include fails at render time."""
        page = text_factory.parse(ctx, "{% include 'nowhere' %}")

        with pytest.raises(TemplateRenderError):
            page.render()


class TestEscaping:
    """Tests for the text vs HTML backends."""

    def test_text_does_not_escape(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test that the text backend writes values verbatim."""
        template = text_factory.parse(ctx, "{{ v }}")

        assert template.render({"v": "<b>&</b>"}) == "<b>&</b>"

    def test_html_escapes_body(self, html_factory: HtmlTemplateFactory, ctx: FunctionContext) -> None:
        """Test that the HTML backend escapes element content."""
        template = html_factory.parse(ctx, "<p>{{ v }}</p>")

        assert template.render({"v": "<b>&</b>"}) == "<p>&lt;b&gt;&amp;&lt;/b&gt;</p>"

    def test_html_escapes_attribute_quotes(self, html_factory: HtmlTemplateFactory, ctx: FunctionContext) -> None:
        """Test that quotes can't break out of an attribute."""
        template = html_factory.parse(ctx, '<a title="{{ v }}">')

        assert template.render({"v": '" onclick="x'}) == '<a title="&#34; onclick=&#34;x">'

    def test_html_rejects_unsafe_url_scheme(self, html_factory: HtmlTemplateFactory, ctx: FunctionContext) -> None:
        """Test that a javascript: URL can't reach an href."""
        template = html_factory.parse(ctx, '<a href="{{ u }}">x</a>')

        assert template.render({"u": "javascript:alert(1)"}) == '<a href="#ZgotmplZ">x</a>'

    def test_html_normalises_safe_url(self, html_factory: HtmlTemplateFactory, ctx: FunctionContext) -> None:
        """Test that allowed URLs are percent-encoded and entity-escaped."""
        template = html_factory.parse(ctx, '<a href="{{ u }}">')

        rendered = template.render({"u": "https://example.com/a b?q=1&r=2"})

        assert rendered == '<a href="https://example.com/a%20b?q=1&amp;r=2">'

    def test_html_encodes_url_query_value(self, html_factory: HtmlTemplateFactory, ctx: FunctionContext) -> None:
        """Test that values inside a query string are fully percent-encoded."""
        template = html_factory.parse(ctx, '<a href="/search?q={{ q }}">')

        assert template.render({"q": "a&b c"}) == '<a href="/search?q=a%26b%20c">'

    def test_html_script_body_is_json(self, html_factory: HtmlTemplateFactory, ctx: FunctionContext) -> None:
        """Test that script values are serialized as HTML-safe JSON."""
        template = html_factory.parse(ctx, "<script>var x = {{ v }};</script><p>{{ v }}</p>")

        rendered = template.render({"v": "</script>"})

        assert rendered == (
            r'<script>var x = "\u003c/script\u003e";</script>'
            "<p>&lt;/script&gt;</p>"
        )

    def test_html_script_body_structures(self, html_factory: HtmlTemplateFactory, ctx: FunctionContext) -> None:
        """Test that mappings become JS object literals."""
        template = html_factory.parse(ctx, "<script>init({{ opts }})</script>")

        assert template.render({"opts": {"a": 1}}) == '<script>init({"a": 1})</script>'

    def test_html_event_handler_attribute(self, html_factory: HtmlTemplateFactory, ctx: FunctionContext) -> None:
        """Test that handler attributes get JSON, entity-escaped."""
        template = html_factory.parse(ctx, '<button onclick="go({{ v }})">')

        assert template.render({"v": "x"}) == '<button onclick="go(&#34;x&#34;)">'

    def test_html_safe_marks_trusted_url(self, html_factory: HtmlTemplateFactory, ctx: FunctionContext) -> None:
        """Test that |safe opts a URL out of scheme filtering."""
        template = html_factory.parse(ctx, '<a href="{{ u|safe }}">')

        assert template.render({"u": "javascript:void(0)"}) == '<a href="javascript:void(0)">'

    def test_text_leaves_urls_alone(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test that URL filtering is HTML-only."""
        template = text_factory.parse(ctx, '<a href="{{ u }}">')

        assert template.render({"u": "javascript:alert(1)"}) == '<a href="javascript:alert(1)">'

    def test_factory_kinds(self) -> None:
        """Test backend labels."""
        assert TextTemplateFactory.kind == "text"
        assert HtmlTemplateFactory.kind == "html"


class TestRendering:
    """Tests for rendering behaviour."""

    def test_round_trip_plain_text(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test that text without constructs renders unchanged, newline included."""
        source = "line one\n  line two\n\nend\n"
        template = text_factory.parse(ctx, source)

        assert template.render({"anything": 1}) == source
        assert template.render("ignored") == source

    def test_render_to_writer(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test streaming output."""
        buffer = io.StringIO()
        text_factory.parse(ctx, "{% for i in range(3) %}{{ i }}{% endfor %}").render_to(buffer)

        assert buffer.getvalue() == "012"

    def test_non_mapping_data_exposed_as_data(self, text_factory: TextTemplateFactory, ctx: FunctionContext) -> None:
        """Test that scalar data is available as ``data``."""
        template = text_factory.parse(ctx, "{{ data | upper }}")

        assert template.render("abc") == "ABC"

    def test_undefined_renders_empty_by_default(
        self,
        text_factory: TextTemplateFactory,
        ctx: FunctionContext,
    ) -> None:
        """Test lenient undefined handling."""
        assert text_factory.parse(ctx, "[{{ missing }}]").render() == "[]"

    def test_strict_undefined_is_render_error(self, ctx: FunctionContext) -> None:
        """Test strict mode raising a TemplateRenderError."""
        factory = TextTemplateFactory(strict_undefined=True)
        template = factory.parse_with_name(ctx, "strict", "{{ missing }}")

        with pytest.raises(TemplateRenderError, match="strict"):
            template.render()

    def test_function_errors_propagate(self, text_factory: TextTemplateFactory) -> None:
        """Test that exceptions from user functions are not wrapped."""

        def boom() -> str:
            raise RuntimeError("boom")

        template = text_factory.parse(FunctionContext({"boom": boom}), "{{ boom() }}")

        with pytest.raises(RuntimeError, match="boom"):
            template.render()


class TestSingletons:
    """Tests for process-wide factories."""

    def test_text_singleton(self) -> None:
        """Test that the text factory is shared."""
        assert text_template_factory() is text_template_factory()
        assert isinstance(text_template_factory(), TextTemplateFactory)

    def test_html_singleton(self) -> None:
        """Test that the HTML factory is shared."""
        assert html_template_factory() is html_template_factory()
        assert isinstance(html_template_factory(), HtmlTemplateFactory)
