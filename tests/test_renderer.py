"""Tests — rendu Jinja2 des blocs et persistance du HTML."""
from conftest import add_part, add_placement, blocks
from page_composer.core.context import RequestContext
from page_composer.database import db_get_rendered
from page_composer.renderer import RenderOutcome, render, render_all_locales, render_template


class TestRender:
    def test_renders_library_template_and_persists(self, db, ctx, page):
        add_part(db, "heroes/hero_centered", "home", blocks(title="Bienvenue", subtitle="Sous-titre"))
        pc = add_placement(db, page, "heroes/hero_centered", 0)
        result = render(db, ctx, pc)
        db.commit()
        assert result.outcome == RenderOutcome.RENDERED
        assert "<h1>Bienvenue</h1>" in result.html
        assert db_get_rendered(db, pc.id, "en").raw_html == result.html

    def test_stored_template_preferred(self, db, ctx, page):
        add_part(db, "cta/cta_banner", "home", blocks(title="Go"), template="<b>{{ page_part.title.content }}</b>")
        pc = add_placement(db, page, "cta/cta_banner", 0)
        assert render(db, ctx, pc).html == "<b>Go</b>"

    def test_rerender_overwrites(self, db, ctx, page):
        part = add_part(db, "cta/cta_banner", "home", blocks(title="A"), template="{{ page_part.title.content }}")
        pc = add_placement(db, page, "cta/cta_banner", 0)
        render(db, ctx, pc); db.commit()
        part.template = "[{{ page_part.title.content }}]"
        db.commit()
        render(db, ctx, pc); db.commit()
        assert db_get_rendered(db, pc.id, "en").raw_html == "[A]"

    def test_locale_fallback_content(self, db, page):
        add_part(db, "cta/cta_banner", "home", blocks("en", title="Hello"), template="{{ page_part.title.content }}")
        pc = add_placement(db, page, "cta/cta_banner", 0)
        result = render(db, RequestContext(website_id=1, locale="fr"), pc)
        assert result.html == "Hello"
        assert result.locale == "fr"

    def test_missing_fields_render_empty(self):
        assert render_template("[{{ page_part.nothing.content }}]", {}) == "[]"


class TestSkips:
    def test_container_always_skipped(self, db, ctx, page):
        add_part(db, "layout/layout_two_column_equal", "home", blocks(title="x"), template="<div>container</div>")
        pc = add_placement(db, page, "layout/layout_two_column_equal", 0)
        result = render(db, ctx, pc)
        assert result.outcome == RenderOutcome.SKIPPED
        assert result.reason == "container"
        assert db_get_rendered(db, pc.id, "en") is None

    def test_code_part_skipped(self, db, ctx, page):
        pc = add_placement(db, page, "search_cmpt", 0, is_rails_part=True)
        assert render(db, ctx, pc).reason == "code_part"

    def test_no_template(self, db, ctx, page):
        pc = add_placement(db, page, "custom/no_template", 0)
        assert render(db, ctx, pc).reason == "no_template"


class TestFailures:
    def test_syntax_error_absorbed(self, db, ctx, page):
        add_part(db, "cta/cta_banner", "home", blocks(title="x"), template="{% if %}")
        pc = add_placement(db, page, "cta/cta_banner", 0)
        result = render(db, ctx, pc)
        assert result.outcome == RenderOutcome.FAILED
        assert db_get_rendered(db, pc.id, "en") is None

    def test_all_locales_continue_past_failure(self, db, ctx, page):
        tpl = ("{% if page_part.broken.content %}{{ page_part.title.content.missing_method() }}{% endif %}"
               "{{ page_part.title.content }}")
        contents = {**blocks("en", title="Hello"), **blocks("fr", title="Bonjour", broken="1"),
                    **blocks("es", title="Hola")}
        add_part(db, "cta/cta_banner", "home", contents, template=tpl)
        pc = add_placement(db, page, "cta/cta_banner", 0)

        results = render_all_locales(db, ctx, pc)
        db.commit()
        assert {loc: r.outcome for loc, r in results.items()} == {
            "en": RenderOutcome.RENDERED,
            "fr": RenderOutcome.FAILED,
            "es": RenderOutcome.RENDERED,
        }
        assert db_get_rendered(db, pc.id, "es").raw_html == "Hola"
        assert db_get_rendered(db, pc.id, "fr") is None
