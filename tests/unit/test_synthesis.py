"""Tests for willforge/pipeline/synthesis.py and templates.py: document rendering."""

import itertools

import pytest

from willforge.models.document import TemplateKind
from willforge.models.facts import (
    AssetCategory,
    AssetEntry,
    DigitalAssetEntry,
    FactModel,
    MaritalStatus,
)
from willforge.pipeline.synthesis import (
    WILL_SECTIONS,
    completed_sections,
    completion_percentage,
    render,
    synthesize,
    to_roman,
)
from willforge.pipeline.templates import (
    TEMPLATES,
    build_family_information,
    get_template,
    join_inline,
)


TRADITIONAL_CONDITIONALS = {
    "residence": {"address": "9 Elm Road"},
    "guardian": {"guardian": "Sarah Lee"},
    "digital_assets": {
        "digital_asset_entries": [DigitalAssetEntry(asset_type="Email", details="Gmail")]
    },
    "final_wishes": {"final_wishes": "A small private service"},
}


class TestToRoman:

    @pytest.mark.parametrize("number,expected", [
        (1, "I"), (4, "IV"), (9, "IX"), (11, "XI"), (14, "XIV"), (40, "XL"), (1994, "MCMXCIV"),
    ])
    def test_to_roman(self, number, expected):
        assert to_roman(number) == expected

    def test_zero_rejected(self):
        with pytest.raises(ValueError):
            to_roman(0)


class TestArticleNumbering:

    @pytest.mark.parametrize("present", [
        combo
        for size in range(len(TRADITIONAL_CONDITIONALS) + 1)
        for combo in itertools.combinations(TRADITIONAL_CONDITIONALS, size)
    ])
    def test_contiguous_for_every_conditional_subset(self, present):
        data = {}
        for key in present:
            data.update(TRADITIONAL_CONDITIONALS[key])
        doc = synthesize(TemplateKind.TRADITIONAL, FactModel(**data))

        expected_keys = [
            spec.key
            for spec in TEMPLATES[TemplateKind.TRADITIONAL].articles
            if not spec.is_conditional or spec.key in present
        ]
        assert doc.article_keys == expected_keys
        assert [a.number for a in doc.articles] == list(range(1, len(expected_keys) + 1))
        assert doc.numerals == [to_roman(n) for n in range(1, len(expected_keys) + 1)]

    @pytest.mark.parametrize("kind", list(TemplateKind))
    def test_full_facts_every_template(self, kind, full_facts):
        doc = synthesize(kind, full_facts)
        assert doc.numerals == [to_roman(n) for n in range(1, len(doc.articles) + 1)]
        assert doc.articles[0].key == "revocation"
        assert doc.articles[-1].key == "general_provisions"


class TestEmptyFacts:

    def test_placeholders_and_absent_conditionals(self, empty_facts):
        doc = synthesize("traditional", empty_facts)
        text = doc.text
        assert "[YOUR NAME]" in text
        assert "[EXECUTOR NAME]" in text
        assert doc.article_keys == [
            "revocation",
            "family_information",
            "executor",
            "distribution",
            "general_provisions",
        ]
        assert "GUARDIAN" not in text
        assert "DIGITAL ASSETS" not in text
        assert "FINAL WISHES" not in text

    @pytest.mark.parametrize("kind", list(TemplateKind))
    def test_every_template_renders_empty(self, kind, empty_facts):
        text = render(kind, empty_facts)
        assert text.startswith(TEMPLATES[kind].title)
        assert "ARTICLE I: REVOCATION OF PRIOR WILLS" in text

    def test_family_template_always_has_guardian(self, empty_facts):
        doc = synthesize("family", empty_facts)
        assert "guardian" in doc.article_keys
        assert "[GUARDIAN NAME]" in doc.article("guardian").body
        assert "provisions_for_children" not in doc.article_keys

    def test_digital_template_has_placeholder_assets(self, empty_facts):
        doc = synthesize("digital-assets", empty_facts)
        assert "[DIGITAL ASSET TYPE]" in doc.article("digital_assets").body


class TestArticleText:

    def test_married_with_spouse(self):
        facts = FactModel(
            full_name="Jane Smith", marital_status=MaritalStatus.MARRIED, spouse_name="John Smith"
        )
        doc = synthesize("traditional", facts)
        assert "I am married to John Smith." in doc.article("family_information").body
        assert doc.preamble.startswith("I, Jane Smith, being of sound mind")

    def test_married_without_spouse(self):
        facts = FactModel(marital_status=MaritalStatus.MARRIED)
        assert "I am married to [SPOUSE NAME]." in build_family_information(facts)

    def test_children_sentence(self):
        assert "I have one child, Leo." in build_family_information(FactModel(children=["Leo"]))
        facts = FactModel(children=["Amy", "Ben", "Cara"])
        assert "I have 3 children: Amy, Ben, Cara." in build_family_information(facts)

    def test_executor_with_alternate(self):
        facts = FactModel(executor="Robert Jones", alternate_executor="Mary Jones")
        body = synthesize("traditional", facts).article("executor").body
        assert body.startswith("I appoint Robert Jones as Executor of this Will.")
        assert "I appoint Mary Jones to serve as my alternate Executor." in body

    def test_residence_from_parts(self):
        facts = FactModel(city="Austin", state="TX")
        body = synthesize("traditional", facts).article("residence").body
        assert body == "At the time of executing this Will, I reside at [ADDRESS], Austin, TX [ZIP CODE]."

    def test_residence_from_parsed_address(self):
        facts = FactModel(
            address="12 Elm Street, Austin, TX 78701", city="Austin", state="TX", postal_code="78701"
        )
        body = synthesize("traditional", facts).article("residence").body
        assert body == "At the time of executing this Will, I reside at 12 Elm Street, Austin, TX 78701."

    def test_distribution_lists_assets_and_beneficiaries(self):
        facts = FactModel(
            beneficiaries=["Anna Smith", "Tom Smith"],
            asset_entries=[
                AssetEntry(category=AssetCategory.REAL_ESTATE, descriptive_text="42 Oak Lane"),
            ],
        )
        body = synthesize("traditional", facts).article("distribution").body
        assert "- Real Estate: 42 Oak Lane" in body
        assert "remainder of my estate to Anna Smith and Tom Smith." in body

    def test_final_wishes(self):
        facts = FactModel(final_wishes="I would like to be cremated")
        body = synthesize("traditional", facts).article("final_wishes").body
        assert body.endswith("burial: I would like to be cremated.")

    def test_closing_names_testator(self):
        assert "[NAME OF TESTATOR]" in synthesize("traditional", FactModel()).closing
        assert "declared by Jane Smith" in synthesize("traditional", FactModel(full_name="Jane Smith")).closing


class TestDigitalAssetsTemplate:

    def test_one_bullet_per_entry(self):
        facts = FactModel(
            digital_asset_entries=[
                DigitalAssetEntry(asset_type="Cryptocurrency", details="Bitcoin on Coinbase"),
                DigitalAssetEntry(asset_type="Social Media", details="Facebook and Instagram"),
            ]
        )
        body = synthesize("digital-assets", facts).article("digital_assets").body
        bullets = [line for line in body.splitlines() if line.startswith("- ")]
        assert bullets == [
            "- Cryptocurrency: Bitcoin on Coinbase",
            "- Social Media: Facebook and Instagram",
        ]

    def test_title_and_preamble(self, empty_facts):
        doc = synthesize("digital", empty_facts)
        assert doc.template_kind == TemplateKind.DIGITAL_ASSETS
        assert doc.title == "DIGITAL ASSETS WILL AND TESTAMENT"
        assert doc.preamble.endswith("with specific provisions for my digital assets.")


class TestTemplateLookup:

    def test_unknown_template_falls_back(self, empty_facts):
        doc = synthesize("holographic", empty_facts)
        assert doc.template_kind == TemplateKind.TRADITIONAL
        assert get_template("holographic") is TEMPLATES[TemplateKind.TRADITIONAL]

    def test_conditional_and_base_keys(self):
        template = TEMPLATES[TemplateKind.TRADITIONAL]
        assert template.conditional_keys == ["residence", "guardian", "digital_assets", "final_wishes"]
        assert "executor" in template.base_keys

    @pytest.mark.parametrize("items,expected", [
        ([], ""),
        (["A"], "A"),
        (["A", "B"], "A and B"),
        (["A", "B", "C"], "A, B, and C"),
    ])
    def test_join_inline(self, items, expected):
        assert join_inline(items) == expected


class TestCompletion:

    def test_empty_is_zero(self, empty_facts):
        assert completion_percentage(empty_facts) == 0
        assert completed_sections(empty_facts) == []

    def test_full_is_hundred(self, full_facts):
        assert completion_percentage(full_facts) == 100
        assert completed_sections(full_facts) == list(WILL_SECTIONS)

    def test_partial(self):
        facts = FactModel(full_name="Jane Smith", executor="Robert Jones")
        assert completion_percentage(facts) == 25
