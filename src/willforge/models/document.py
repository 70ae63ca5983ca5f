"""
Rendered document models.

A RenderedDocument is derived from the Fact Model on every change; it is never
the source of truth.
"""

from enum import Enum

from pydantic import BaseModel, Field


class TemplateKind(str, Enum):
    """Will template kinds."""

    TRADITIONAL = "traditional"
    DIGITAL_ASSETS = "digital-assets"
    BUSINESS = "business"
    FAMILY = "family"

    @classmethod
    def resolve(cls, value: "str | TemplateKind | None") -> "TemplateKind":
        """Map a template name or alias to a kind, falling back to TRADITIONAL."""
        if isinstance(value, TemplateKind):
            return value
        if not value:
            return cls.TRADITIONAL
        key = value.strip().lower().replace("_", "-")
        return TEMPLATE_ALIASES.get(key, cls.TRADITIONAL)


TEMPLATE_ALIASES = {
    "traditional": TemplateKind.TRADITIONAL,
    "basic": TemplateKind.TRADITIONAL,
    "standard": TemplateKind.TRADITIONAL,
    "digital-assets": TemplateKind.DIGITAL_ASSETS,
    "digital": TemplateKind.DIGITAL_ASSETS,
    "business": TemplateKind.BUSINESS,
    "family": TemplateKind.FAMILY,
}


class ArticleBlock(BaseModel):
    """One numbered article of a rendered will."""

    number: int = Field(..., ge=1)
    numeral: str
    key: str = Field(..., description="Stable article identifier, e.g. 'executor'")
    title: str
    body: str

    @property
    def heading(self) -> str:
        return f"ARTICLE {self.numeral}: {self.title}"

    @property
    def text(self) -> str:
        return f"{self.heading}\n{self.body}"


class RenderedDocument(BaseModel):
    """A will rendered from the current Fact Model."""

    template_kind: TemplateKind
    title: str
    preamble: str
    articles: list[ArticleBlock] = Field(default_factory=list)
    closing: str = ""

    @property
    def article_keys(self) -> list[str]:
        return [a.key for a in self.articles]

    @property
    def numerals(self) -> list[str]:
        return [a.numeral for a in self.articles]

    def article(self, key: str) -> ArticleBlock | None:
        for block in self.articles:
            if block.key == key:
                return block
        return None

    @property
    def text(self) -> str:
        parts = [self.title, self.preamble]
        parts.extend(a.text for a in self.articles)
        if self.closing:
            parts.append(self.closing)
        return "\n\n".join(parts)
