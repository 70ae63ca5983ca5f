"""
Pydantic models for willforge.

- Fact models for the accumulated will-in-progress
- Contact models for the roster
- Document models for rendered output
- Conversation models for stages and transcripts
"""

from willforge.models.facts import (
    AssetCategory,
    AssetEntry,
    DigitalAssetEntry,
    FactDelta,
    FactModel,
    MaritalStatus,
    Speaker,
)
from willforge.models.contact import Contact, ContactRole
from willforge.models.document import ArticleBlock, RenderedDocument, TemplateKind
from willforge.models.conversation import Message, Stage, Transcript

__all__ = [
    # Fact models
    "AssetCategory",
    "AssetEntry",
    "DigitalAssetEntry",
    "FactDelta",
    "FactModel",
    "MaritalStatus",
    "Speaker",
    # Contact models
    "Contact",
    "ContactRole",
    # Document models
    "ArticleBlock",
    "RenderedDocument",
    "TemplateKind",
    # Conversation models
    "Message",
    "Stage",
    "Transcript",
]
