"""Tests — opérations composées (auto-création, contenu, documents, rendu public)."""
from unittest.mock import patch

import pytest

from conftest import add_part, add_placement, blocks
from page_composer import composer, placements
from page_composer.core.context import RequestContext
from page_composer.core.errors import BadRequest, PageNotFound, ValidationFailed
from page_composer.database import db_get_rendered, jd
from page_composer.models import PageContentDB, PageCreate, PageDB, PagePartDB, PartContentUpdate


class TestEnsureParts:
    def test_creates_records_and_placements(self, db, ctx, page):
        add_placement(db, page, "heroes/hero_centered", 0)
        composer.ensure_parts(db, ctx, page, ["heroes/hero_centered", "cta/cta_banner", "search_cmpt"])
        tree = composer.read_tree(db, ctx, page)
        assert [n["page_part_key"] for n in tree] == ["heroes/hero_centered", "cta/cta_banner", "search_cmpt"]
        assert tree[2]["kind"] == "code_part"
        assert db.query(PagePartDB).count() == 3

    def test_uses_page_declared_keys(self, db, ctx):
        composer.create_page(db, ctx, PageCreate(slug="landing", part_keys=["cta/cta_banner"]))
        page = composer.get_page_by_slug(db, ctx, "landing")
        tree = composer.read_tree(db, ctx, page)
        assert tree[0]["page_part_key"] == "cta/cta_banner"
        assert tree[0]["block_contents"]["button_style"] == {"content": "primary"}

    def test_idempotent(self, db, ctx, page):
        composer.ensure_parts(db, ctx, page, ["cta/cta_banner"])
        composer.ensure_parts(db, ctx, page, ["cta/cta_banner"])
        assert db.query(PageContentDB).count() == 1

    def test_concurrent_first_renders_share_one_placement(self, db, ctx, page, session_factory):
        other = session_factory()
        composer.ensure_parts(other, RequestContext(website_id=1), other.get(PageDB, page.id), ["cta/cta_banner"])
        other.close()

        real = placements._root_placement
        calls = []

        def miss_first(db_, page_, key):
            calls.append(key)
            return None if len(calls) == 1 else real(db_, page_, key)

        with patch("page_composer.placements._root_placement", side_effect=miss_first):
            composer.ensure_parts(db, ctx, page, ["cta/cta_banner"])

        assert db.query(PageContentDB).filter_by(page_id=page.id, page_part_key="cta/cta_banner").count() == 1
        assert composer.render_page_html(db, ctx, "home").count("class=\"pc-cta ") == 1


class TestPages:
    def test_duplicate_slug(self, db, ctx, page):
        with pytest.raises(ValidationFailed):
            composer.create_page(db, ctx, PageCreate(slug="home"))

    def test_unknown_page(self, db, ctx):
        with pytest.raises(PageNotFound) as exc:
            composer.get_page_by_slug(db, ctx, "nope")
        assert exc.value.code == "PAGE_NOT_FOUND"


@pytest.fixture
def shared_cta(db, ctx, page):
    """cta site partagé par home et about ; about déjà rendu avec l'ancien titre."""
    about = PageDB(website_id=1, slug="about")
    db.add(about); db.commit(); db.refresh(about)
    add_part(db, "cta/cta_banner", "", blocks(title="Old"), template="<h2>{{ page_part.title.content }}</h2>")
    add_placement(db, page, "cta/cta_banner", 0)
    pc_about = add_placement(db, about, "cta/cta_banner", 0)
    assert composer.render_page_html(db, ctx, "about") == "<h2>Old</h2>"
    return pc_about


class TestPartContent:
    def test_requires_html_or_regenerate(self, db, ctx, page):
        with pytest.raises(BadRequest) as exc:
            composer.update_part_content(db, ctx, page, "cta/cta_banner",
                                         PartContentUpdate(block_contents={"title": "x"}))
        assert exc.value.code == "MISSING_PARAMETER"
        # aucune mutation avant le contrôle
        assert db.query(PagePartDB).count() == 0

    def test_rejects_both(self, db, ctx, page):
        with pytest.raises(BadRequest):
            composer.update_part_content(db, ctx, page, "cta/cta_banner",
                                         PartContentUpdate(rendered_html="<p/>", regenerate=True))

    def test_merge_and_client_html(self, db, ctx, page):
        add_part(db, "cta/cta_banner", "home", blocks(title="Old", subtitle="Keep"))
        pc = add_placement(db, page, "cta/cta_banner", 0)
        data = composer.update_part_content(db, ctx, page, "cta/cta_banner", PartContentUpdate(
            block_contents={"blocks": {"title": {"content": "New"}}}, rendered_html="<p>client</p>"))
        assert data["block_contents"]["blocks"]["title"] == {"content": "New"}
        assert data["block_contents"]["blocks"]["subtitle"] == {"content": "Keep"}
        assert db_get_rendered(db, pc.id, "en").raw_html == "<p>client</p>"

    def test_regenerate(self, db, ctx, page):
        add_part(db, "cta/cta_banner", "home", blocks(title="Old"), template="<h2>{{ page_part.title.content }}</h2>")
        pc = add_placement(db, page, "cta/cta_banner", 0)
        data = composer.update_part_content(db, ctx, page, "cta/cta_banner", PartContentUpdate(
            block_contents={"title": "Fresh"}, regenerate=True))
        assert data["render"] == {pc.id: "rendered"}
        assert db_get_rendered(db, pc.id, "en").raw_html == "<h2>Fresh</h2>"

    def test_regenerate_refreshes_pages_sharing_site_record(self, db, ctx, page, shared_cta):
        data = composer.update_part_content(db, ctx, page, "cta/cta_banner", PartContentUpdate(
            block_contents={"title": "New"}, regenerate=True))
        assert data["render"][shared_cta.id] == "rendered"
        assert db_get_rendered(db, shared_cta.id, "en").raw_html == "<h2>New</h2>"
        assert composer.render_page_html(db, ctx, "about") == "<h2>New</h2>"

    def test_client_html_invalidates_pages_sharing_site_record(self, db, ctx, page, shared_cta):
        composer.update_part_content(db, ctx, page, "cta/cta_banner", PartContentUpdate(
            block_contents={"title": "New"}, rendered_html="<h2>client</h2>"))
        assert db_get_rendered(db, shared_cta.id, "en") is None
        assert composer.render_page_html(db, ctx, "about") == "<h2>New</h2>"
        assert composer.render_page_html(db, ctx, "home") == "<h2>client</h2>"

    def test_template_failure_keeps_content_update(self, db, ctx, page):
        add_part(db, "cta/cta_banner", "home", blocks(title="Old"), template="{% if %}")
        pc = add_placement(db, page, "cta/cta_banner", 0)
        data = composer.update_part_content(db, ctx, page, "cta/cta_banner", PartContentUpdate(
            block_contents={"title": "Saved"}, regenerate=True))
        assert data["render"] == {pc.id: "failed"}
        assert data["block_contents"]["blocks"]["title"] == {"content": "Saved"}

    def test_read_auto_creates(self, db, ctx, page):
        data = composer.read_part_content(db, ctx, page, "heroes/hero_split")
        assert data["available_locales"] == ["en"]
        assert data["field_schema"]["fields"][0]["name"] == "pretitle"
        assert db.query(PagePartDB).filter_by(page_slug="home").count() == 1


class TestDocuments:
    def test_page_document(self, db, ctx, page):
        add_part(db, "heroes/hero_centered", "", blocks(title="Site"))
        add_placement(db, page, "heroes/hero_centered", 0, visible_on_page=False)
        doc = composer.page_document(db, ctx, "home")
        item = doc["page_contents"][0]
        assert item["edit_key"] == "heroes/hero_centered"
        assert item["visible_on_page"] is False
        assert "page_part.title.content" in item["template"]
        assert item["block_contents"]["title"] == {"content": "Site"}
        assert item["rendered_html"] is None

    def test_public_html(self, db, ctx, page):
        add_part(db, "cta/cta_banner", "home", blocks(title="Left"), template="<p>{{ page_part.title.content }}</p>")
        box = add_placement(db, page, "layout/layout_two_column_equal", 0)
        add_placement(db, page, "cta/cta_banner", 0, parent_page_content_id=box.id, slot_name="left")
        add_placement(db, page, "search_cmpt", 1, is_rails_part=True)
        add_placement(db, page, "content_html", 2, visible_on_page=False)

        html = composer.render_page_html(db, ctx, "home")
        assert '<div class="pc-container" data-part-key="layout/layout_two_column_equal">' in html
        assert '<div class="pc-slot" data-slot="left"><p>Left</p></div>' in html
        assert '<div class="pc-slot" data-slot="right"></div>' in html
        assert '<div class="pc-code-part" data-part-key="search_cmpt"></div>' in html
        assert "pc-content-html" not in html

    def test_public_html_uses_cache(self, db, ctx, page):
        add_part(db, "cta/cta_banner", "home", blocks(title="Live"), template="{{ page_part.title.content }}")
        pc = add_placement(db, page, "cta/cta_banner", 0)
        assert composer.render_page_html(db, ctx, "home") == "Live"
        assert db_get_rendered(db, pc.id, "en").raw_html == "Live"

    def test_hidden_page(self, db, ctx, page):
        page.visible = False
        db.commit()
        with pytest.raises(PageNotFound):
            composer.render_page_html(db, ctx, "home")


class TestRegenerate:
    def test_site_part_regenerates_pages_without_override(self, db, ctx, page):
        from page_composer.models import PageDB
        about = PageDB(website_id=1, slug="about")
        db.add(about); db.commit(); db.refresh(about)
        site = add_part(db, "cta/cta_banner", "", {**blocks("en", title="Hi"), **blocks("es", title="Hola")},
                        template="{{ page_part.title.content }}")
        add_part(db, "cta/cta_banner", "home", blocks(title="Home"), template="{{ page_part.title.content }}")
        add_placement(db, page, "cta/cta_banner", 0)
        pc_about = add_placement(db, about, "cta/cta_banner", 0)

        data = composer.regenerate_page_part(db, ctx, site.id, all_locales=True)
        assert [r["page_slug"] for r in data["results"]] == ["about"]
        assert data["results"][0]["locales"] == {"en": "rendered", "es": "rendered"}
        assert db_get_rendered(db, pc_about.id, "es").raw_html == "Hola"
