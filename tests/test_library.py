"""Tests unitaires — registre des définitions de blocs."""
from page_composer.core.library import REGISTRY, PartDefinitionRegistry, infer_field_type


class TestRegistry:
    def test_definition(self):
        d = REGISTRY.definition("heroes/hero_centered")
        assert d is not None
        assert d.category == "heroes"
        assert not d.is_container

    def test_unknown_definition(self):
        assert REGISTRY.definition("nope/nothing") is None
        assert REGISTRY.is_container("nope/nothing") is False
        assert REGISTRY.field_schema("nope/nothing") is None

    def test_containers(self):
        assert REGISTRY.is_container("layout/layout_two_column_equal")
        assert REGISTRY.available_slots("layout/layout_sidebar_left") == ["sidebar", "main"]
        assert REGISTRY.available_slots("layout/layout_three_column") == ["left", "center", "right"]
        assert REGISTRY.available_slots("heroes/hero_centered") == []

    def test_code_parts(self):
        assert REGISTRY.is_code_part("search_cmpt")
        assert not REGISTRY.is_code_part("content_html")

    def test_template_for(self):
        tpl = REGISTRY.template_for("heroes/hero_centered")
        assert tpl is not None
        assert "page_part.title.content" in tpl
        assert REGISTRY.template_for("layout/layout_two_column_equal") is None

    def test_template_keys_stay_inside_library(self):
        assert REGISTRY.template_for("../../pyproject") is None
        assert REGISTRY.template_for("../core/library") is None

    def test_templates_loaded_once(self, tmp_path):
        (tmp_path / "cta").mkdir()
        tpl = tmp_path / "cta" / "banner.html"
        tpl.write_text("<h2>{{ page_part.title.content }}</h2>", encoding="utf-8")
        registry = PartDefinitionRegistry({}, tmp_path)

        tpl.unlink()
        (tmp_path / "late.html").write_text("<p>tard</p>", encoding="utf-8")
        assert registry.template_for("cta/banner") == "<h2>{{ page_part.title.content }}</h2>"
        assert registry.template_for("late") is None

    def test_missing_templates_dir(self, tmp_path):
        assert PartDefinitionRegistry({}, tmp_path / "absent").template_for("cta/cta_banner") is None

    def test_by_category(self):
        grouped = REGISTRY.by_category()
        assert "layout/layout_two_column_equal" in grouped["layout"]
        assert "heroes/hero_split" in REGISTRY.for_category("heroes")

    def test_catalog(self):
        cats = {c["key"]: c for c in REGISTRY.catalog()["categories"]}
        keys = [p["key"] for p in cats["layout"]["parts"]]
        assert "layout/layout_three_column" in keys


class TestFieldSchema:
    def test_dict_fields_with_groups(self):
        schema = REGISTRY.field_schema("cta/cta_banner")
        assert [g["key"] for g in schema["groups"]] == ["content", "buttons", "style"]
        style = next(f for f in schema["fields"] if f["name"] == "button_style")
        assert style["type"] == "select"
        assert style["default"] == "primary"

    def test_list_fields_inferred(self):
        fields = {f["name"]: f for f in REGISTRY.field_schema("heroes/hero_split")["fields"]}
        assert fields["image"]["type"] == "image"
        assert fields["cta_link"]["type"] == "url"
        assert fields["subtitle"]["type"] == "textarea"
        assert fields["title"]["type"] == "text"

    def test_infer_field_type(self):
        assert infer_field_type("our_agency_img") == "image"
        assert infer_field_type("content_html") == "html"
        assert infer_field_type("href") == "url"
        assert infer_field_type("testimonial_1_text") == "textarea"
