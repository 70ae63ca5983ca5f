"""
Document synthesis.

Renders a will from the template kind and the current Fact Model. Total over
partial facts: every article builder falls back to bracketed placeholders.
Articles are numbered only after their conditions are evaluated, so numbering
is always contiguous.
"""

import structlog

from willforge.models.document import ArticleBlock, RenderedDocument, TemplateKind
from willforge.models.facts import FactModel
from willforge.pipeline.templates import build_closing, get_template, or_placeholder

logger = structlog.get_logger(__name__)

ROMAN_NUMERALS = [
    (1000, "M"),
    (900, "CM"),
    (500, "D"),
    (400, "CD"),
    (100, "C"),
    (90, "XC"),
    (50, "L"),
    (40, "XL"),
    (10, "X"),
    (9, "IX"),
    (5, "V"),
    (4, "IV"),
    (1, "I"),
]

# Will sections tracked for progress display, with the fact that completes each
WILL_SECTIONS = {
    "personal_info": lambda f: bool(f.full_name),
    "family": lambda f: f.marital_status is not None or bool(f.children),
    "executor": lambda f: bool(f.executor),
    "guardian": lambda f: bool(f.guardian),
    "property": lambda f: bool(f.asset_entries),
    "beneficiaries": lambda f: bool(f.beneficiaries),
    "digital_assets": lambda f: bool(f.digital_asset_entries),
    "final_wishes": lambda f: bool(f.final_wishes),
}


def to_roman(number: int) -> str:
    """Convert a positive integer to Roman numerals."""
    if number < 1:
        raise ValueError(f"Roman numerals start at 1, got {number}")
    result = []
    for value, numeral in ROMAN_NUMERALS:
        count, number = divmod(number, value)
        result.append(numeral * count)
    return "".join(result)


def synthesize(template_kind: TemplateKind | str | None, facts: FactModel) -> RenderedDocument:
    """Render the structured document for a template kind."""
    template = get_template(template_kind)
    present = [spec for spec in template.articles if spec.is_present(facts)]
    articles = [
        ArticleBlock(
            number=i,
            numeral=to_roman(i),
            key=spec.key,
            title=spec.title,
            body=spec.builder(facts),
        )
        for i, spec in enumerate(present, start=1)
    ]
    logger.debug(
        "document_synthesized",
        template=template.kind.value,
        articles=[a.key for a in articles],
    )

    preamble = (
        f"I, {or_placeholder(facts.full_name, '[YOUR NAME]')}, being of sound mind, declare this "
        f"to be my Last Will and Testament{template.preamble_suffix}."
    )
    return RenderedDocument(
        template_kind=template.kind,
        title=template.title,
        preamble=preamble,
        articles=articles,
        closing=build_closing(facts),
    )


def render(template_kind: TemplateKind | str | None, facts: FactModel) -> str:
    """Render the document text for a template kind."""
    return synthesize(template_kind, facts).text


def completed_sections(facts: FactModel) -> list[str]:
    """Will sections that already have their key fact."""
    return [name for name, is_done in WILL_SECTIONS.items() if is_done(facts)]


def completion_percentage(facts: FactModel) -> int:
    """Share of will sections completed, 0-100."""
    return round(100 * len(completed_sections(facts)) / len(WILL_SECTIONS))
