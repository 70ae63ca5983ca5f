"""
Utterance extraction.

Runs the rule battery over one utterance and folds the rule matches into a
single FactDelta. The returned delta only carries information that is new
relative to the current facts, so re-analysing the same text yields an empty
delta.
"""

import json
import re
from typing import Any, Iterable

import structlog

from willforge.config import get_settings
from willforge.models.conversation import Message
from willforge.models.document import TemplateKind
from willforge.models.facts import (
    LIST_FIELDS,
    SCALAR_FIELDS,
    FactDelta,
    FactModel,
    Speaker,
    normalize_key,
)
from willforge.pipeline.extraction_rules import (
    EXTRACTION_RULES,
    ExtractionContext,
    ExtractionRule,
    RuleMatch,
)
from willforge.pipeline.merge import merge_facts

logger = structlog.get_logger(__name__)

HINTS_BLOCK = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


def _item_key(item: Any) -> str:
    if isinstance(item, str):
        return normalize_key(item)
    return item.dedup_key


def _fold(pending: FactDelta, match: RuleMatch) -> None:
    """Fold one rule match into the pending delta."""
    for field_name, value in match.values.items():
        if field_name in LIST_FIELDS:
            existing = getattr(pending, field_name)
            keys = {_item_key(item) for item in existing}
            for item in value:
                if _item_key(item) not in keys:
                    existing.append(item)
                    keys.add(_item_key(item))
        elif field_name in SCALAR_FIELDS:
            setattr(pending, field_name, value)


def new_information(delta: FactDelta, facts: FactModel) -> FactDelta:
    """Drop everything in `delta` that `facts` already holds."""
    data: dict[str, Any] = {}
    for field_name in SCALAR_FIELDS:
        value = getattr(delta, field_name)
        if value and value != getattr(facts, field_name):
            data[field_name] = value
    for field_name in LIST_FIELDS:
        known = {_item_key(item) for item in getattr(facts, field_name)}
        fresh = [item for item in getattr(delta, field_name) if _item_key(item) not in known]
        if fresh:
            data[field_name] = fresh
    return FactDelta(**data)


def is_self_introduction(text: str, assistant_name: str) -> bool:
    """True for assistant messages in which the assistant introduces itself."""
    lowered = text.casefold()
    name = assistant_name.casefold()
    return f"i'm {name}" in lowered or f"i am {name}" in lowered


def _run_rule(rule: ExtractionRule, ctx: ExtractionContext) -> RuleMatch | None:
    try:
        return rule.apply(ctx)
    except Exception as e:
        logger.warning("extraction_rule_failed", rule=rule.name, error=str(e))
        return None


def extract(
    text: str,
    template_kind: TemplateKind | str | None,
    facts: FactModel,
    speaker: Speaker = Speaker.USER,
    preview: bool = False,
    assistant_name: str | None = None,
) -> FactDelta:
    """
    Extract a fact delta from one utterance.

    Args:
        text: The utterance (typed message, keystroke preview or model reply)
        template_kind: Template the will is being written against
        facts: Current Fact Model
        speaker: Who produced the utterance
        preview: True for keystroke-level previews; disables the bare-name fallback
        assistant_name: Assistant display name, never accepted as a person name

    Returns:
        Delta containing only information not already present in `facts`.
    """
    if not text or not text.strip() or speaker == Speaker.SYSTEM:
        return FactDelta()

    assistant_name = assistant_name or get_settings().assistant_name
    if speaker == Speaker.ASSISTANT and is_self_introduction(text, assistant_name):
        logger.debug("assistant_introduction_skipped")
        return FactDelta()

    ctx = ExtractionContext(
        text=text,
        template_kind=TemplateKind.resolve(template_kind),
        facts=facts,
        speaker=speaker,
        preview=preview,
        assistant_name=assistant_name,
    )

    for rule in EXTRACTION_RULES:
        if not rule.applies_to(ctx):
            continue
        if rule.fallback and not ctx.pending.is_empty():
            continue
        match = _run_rule(rule, ctx)
        if match is None:
            continue
        _fold(ctx.pending, match)
        logger.debug("extraction_rule_fired", rule=match.rule, fields=list(match.values))

    return new_information(ctx.pending, facts)


def split_structured_hints(reply: str) -> tuple[str, dict[str, Any]]:
    """
    Separate a fenced JSON hints object from a model reply.

    Returns (reply text without the block, hints). Malformed JSON is ignored.
    """
    match = HINTS_BLOCK.search(reply)
    if not match:
        return reply, {}
    try:
        hints = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        logger.warning("structured_hints_invalid", error=str(e))
        return reply, {}
    if not isinstance(hints, dict):
        return reply, {}
    text = (reply[: match.start()] + reply[match.end():]).strip()
    return text, hints


def hints_to_delta(hints: dict[str, Any], facts: FactModel) -> FactDelta:
    """Convert structured hints into a delta of new information."""
    if not hints:
        return FactDelta()
    return new_information(FactDelta.from_hints(hints), facts)


def rederive_facts(
    messages: Iterable[Message],
    template_kind: TemplateKind | str | None,
    assistant_name: str | None = None,
) -> FactModel:
    """
    Rebuild a Fact Model from a whole transcript.

    Recovery/reset only; the live conversation path is incremental.
    """
    facts = FactModel()
    count = 0
    for message in messages:
        delta = extract(
            message.text,
            template_kind,
            facts,
            speaker=message.speaker,
            assistant_name=assistant_name,
        )
        facts = merge_facts(facts, delta).facts
        count += 1
    logger.info("facts_rederived", messages=count, fields=facts.known_fields())
    return facts
