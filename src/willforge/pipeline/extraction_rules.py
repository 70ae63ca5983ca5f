"""Extraction rules for will facts.

Each rule recognizes one logical field in a single utterance and returns a
typed partial result. Rules are independent: they never see each other's
output except through `ExtractionContext.pending`, which the spouse rule uses
to read a marital status recognized earlier in the same utterance.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable

from willforge.models.document import TemplateKind
from willforge.models.facts import (
    AssetCategory,
    AssetEntry,
    DigitalAssetEntry,
    FactDelta,
    FactModel,
    MaritalStatus,
    Speaker,
    normalize_key,
)


# =============================================================================
# Shared fragments
# =============================================================================

# Capitalized person name of one to four tokens, e.g. "Jane Smith", "J. R. Doe"
NAME_TOKEN = r"[A-Z][a-zA-Z.'-]*"
NAME = rf"{NAME_TOKEN}(?:[ \t]+{NAME_TOKEN}){{0,3}}"

SENTENCE_END = re.compile(r"[.!?](?:\s|$)")
LIST_SEPARATOR = re.compile(r"\s*(?:,\s*(?:and|&)\s+|,|\s+and\s+|\s*&\s*)\s*")
NAME_RE = re.compile(NAME)

# Capitalized words that are never names on their own
NON_NAME_WORDS = {
    "I", "Yes", "No", "Ok", "Okay", "Hi", "Hello", "Hey", "Thanks", "Thank",
    "Please", "Sure", "Great", "Good", "Sounds", "Not", "My", "The", "And",
}

MAX_DETAIL_LENGTH = 200


def first_sentence(text: str) -> str:
    """Text up to (not including) the first sentence terminator."""
    match = SENTENCE_END.search(text)
    return text[: match.start()] if match else text.rstrip(".!?")


def clean_name(raw: str) -> str | None:
    """Trim a captured name at its sentence boundary and drop filler tokens."""
    tokens: list[str] = []
    for token in raw.split():
        # "Smith." ends the sentence; "J." is an initial
        ends_sentence = token.endswith(".") and len(token.rstrip(".")) > 1
        token = token.rstrip(",;:!?") if not ends_sentence else token.rstrip(".")
        if token in NON_NAME_WORDS:
            break
        tokens.append(token)
        if ends_sentence:
            break
    name = " ".join(tokens).strip()
    return name or None


def split_names(text: str, assistant_name: str) -> list[str]:
    """Split "Amy, Ben, and Cara" style lists into individual names."""
    names: list[str] = []
    seen: set[str] = set()
    for part in LIST_SEPARATOR.split(first_sentence(text)):
        part = part.strip()
        if not part:
            continue
        match = NAME_RE.search(part)
        if not match:
            continue
        name = clean_name(match.group(0))
        if not name or is_assistant_name(name, assistant_name):
            continue
        key = normalize_key(name)
        if key not in seen:
            seen.add(key)
            names.append(name)
    return names


def is_assistant_name(name: str, assistant_name: str) -> bool:
    lowered = name.casefold()
    return assistant_name.casefold() in lowered or "assistant" in lowered


def clip(text: str) -> str:
    return text.strip()[:MAX_DETAIL_LENGTH].strip()


# =============================================================================
# Rule framework
# =============================================================================

USER_ONLY = frozenset({Speaker.USER})
ANY_SPEAKER = frozenset({Speaker.USER, Speaker.ASSISTANT})


@dataclass
class ExtractionContext:
    """Everything a rule may look at for one utterance."""

    text: str
    template_kind: TemplateKind
    facts: FactModel
    speaker: Speaker = Speaker.USER
    preview: bool = False
    assistant_name: str = "Skyler"
    pending: FactDelta = field(default_factory=FactDelta)

    @property
    def marital_status(self) -> MaritalStatus | None:
        """Marital status as it will stand after this utterance is merged."""
        return self.pending.marital_status or self.facts.marital_status


@dataclass(frozen=True)
class RuleMatch:
    """Tagged result of one rule: the rule name and the field values it recognized."""

    rule: str
    values: dict[str, Any]


@dataclass(frozen=True)
class ExtractionRule:
    """One independent pattern rule."""

    name: str
    matcher: Callable[[ExtractionContext], dict[str, Any] | None]
    speakers: frozenset[Speaker] = USER_ONLY
    template_kinds: frozenset[TemplateKind] | None = None
    fallback: bool = False  # runs only when no other rule fired

    def applies_to(self, ctx: ExtractionContext) -> bool:
        if ctx.speaker not in self.speakers:
            return False
        if self.template_kinds is not None and ctx.template_kind not in self.template_kinds:
            return False
        return True

    def apply(self, ctx: ExtractionContext) -> RuleMatch | None:
        values = self.matcher(ctx)
        if not values:
            return None
        return RuleMatch(rule=self.name, values=values)


# =============================================================================
# Name
# =============================================================================

SELF_INTRODUCTION = re.compile(
    rf"(?i:\b(?:my\s+(?:full\s+)?name\s+is|i\s+am|i'm|call\s+me))\s+(?P<name>{NAME})"
)
BARE_NAME = re.compile(r"^[A-Z][a-zA-Z'-]+\s+[A-Z][a-zA-Z'-]+$")


def match_self_introduction(ctx: ExtractionContext) -> dict[str, Any] | None:
    for match in SELF_INTRODUCTION.finditer(ctx.text):
        name = clean_name(match.group("name"))
        if not name or len(name.split()) < 2:
            continue
        if is_assistant_name(name, ctx.assistant_name):
            continue
        return {"full_name": name}
    return None


def match_bare_name(ctx: ExtractionContext) -> dict[str, Any] | None:
    """Low-confidence fallback: a lone "First Last" reply, only while no name is known."""
    if ctx.preview or ctx.facts.full_name or ctx.pending.full_name:
        return None
    candidate = ctx.text.strip().rstrip(".")
    if not BARE_NAME.match(candidate):
        return None
    if any(token in NON_NAME_WORDS for token in candidate.split()):
        return None
    if is_assistant_name(candidate, ctx.assistant_name):
        return None
    return {"full_name": candidate}


# =============================================================================
# Marital status and spouse
# =============================================================================

# Ordered: negations and "late spouse" are checked before the plain married forms
MARITAL_PATTERNS: list[tuple[MaritalStatus, re.Pattern]] = [
    (
        MaritalStatus.SINGLE,
        re.compile(
            r"\b(?:i\s+am|i'm)\s+(?:currently\s+)?single\b"
            r"|\bnever\s+(?:been\s+)?married\b|\bnot\s+married\b|\bunmarried\b",
            re.IGNORECASE,
        ),
    ),
    (
        MaritalStatus.WIDOWED,
        re.compile(
            r"\b(?:i\s+am|i'm)\s+(?:a\s+)?widow(?:ed|er)?\b|\bmy\s+late\s+(?:husband|wife|spouse)\b",
            re.IGNORECASE,
        ),
    ),
    (
        MaritalStatus.DIVORCED,
        re.compile(
            r"\b(?:i\s+am|i'm)\s+(?:currently\s+)?(?:divorced|separated)\b",
            re.IGNORECASE,
        ),
    ),
    (
        MaritalStatus.MARRIED,
        re.compile(
            r"\b(?:i\s+am|i'm)\s+(?:currently\s+|happily\s+)?married\b"
            r"|\bi\s+have\s+a\s+(?:husband|wife|spouse)\b"
            r"|\bmy\s+(?:husband|wife|spouse)\b",
            re.IGNORECASE,
        ),
    ),
]

SPOUSE = re.compile(
    r"(?i:\b(?:my\s+(?:wife|husband|spouse)(?:'s\s+name\s+is|\s+is\s+named|\s+is|\s+named|\s*:)"
    r"|married\s+to|spouse\s+is))"
    rf"\s+(?P<name>{NAME})"
)


def match_marital_status(ctx: ExtractionContext) -> dict[str, Any] | None:
    for status, pattern in MARITAL_PATTERNS:
        if pattern.search(ctx.text):
            return {"marital_status": status}
    return None


def match_spouse(ctx: ExtractionContext) -> dict[str, Any] | None:
    if ctx.marital_status != MaritalStatus.MARRIED:
        return None
    for match in SPOUSE.finditer(ctx.text):
        name = clean_name(match.group("name"))
        if name and not is_assistant_name(name, ctx.assistant_name):
            return {"spouse_name": name}
    return None


# =============================================================================
# Residence
# =============================================================================

ADDRESS = re.compile(
    r"(?i:\b(?:i\s+(?:currently\s+)?(?:live|reside|stay)(?:\s+(?:at|in))?"
    r"|my\s+(?:home\s+)?address\s*(?:is|:)|i\s+am\s+located\s+at))"
    r"\s*:?\s*(?P<rest>.+)$",
    re.DOTALL,
)
CITY_STATE_ZIP = re.compile(r"([^,]+),\s*([A-Z]{2})\s*(\d{5}(?:-\d{4})?)\b")


def match_address(ctx: ExtractionContext) -> dict[str, Any] | None:
    match = ADDRESS.search(ctx.text)
    if not match:
        return None
    address = " ".join(match.group("rest").split()).rstrip(".!? ")
    # Addresses start with a house number or a place name
    if len(address) <= 5 or not re.match(r"[0-9A-Z]", address):
        return None
    values: dict[str, Any] = {"address": clip(address)}
    parts = CITY_STATE_ZIP.search(address)
    if parts:
        values["city"] = parts.group(1).strip()
        values["state"] = parts.group(2)
        values["postal_code"] = parts.group(3)
    return values


# =============================================================================
# Children
# =============================================================================

CHILD_NOUN = r"(?:children|child|kids|kid|sons?|daughters?)"
CHILDREN_COUNT = re.compile(
    rf"(?i:\b(?:i|we)\s+have\s+(?:\d+|one|two|three|four|five|six|seven|eight|nine|ten)\s+{CHILD_NOUN}\b"
    r"(?:\s*,?\s*(?:named|called|:))?)\s*(?P<names>.*)",
    re.DOTALL,
)
CHILDREN_LIST = re.compile(
    r"(?i:\bmy\s+(?:children|kids)(?:'s\s+names\s+are|\s+are\s+named|\s+are|:)"
    r"|\bmy\s+(?:son|daughter|child)(?:'s\s+name\s+is|\s+is\s+named|\s+is|\s+named|:)"
    r"|\b(?:i|we)\s+have\s+(?:children|kids|a\s+son|a\s+daughter|one\s+child|a\s+child)(?:\s+named|\s+called|\s*:)?"
    r"|\bchildren(?:'s\s+names\s+are|\s*:))"
    r"\s*(?P<names>.*)",
    re.DOTALL,
)


def match_children(ctx: ExtractionContext) -> dict[str, Any] | None:
    for pattern in (CHILDREN_COUNT, CHILDREN_LIST):
        match = pattern.search(ctx.text)
        if not match:
            continue
        names = split_names(match.group("names"), ctx.assistant_name)
        if names:
            return {"children": names}
    return None


# =============================================================================
# Executor and guardian
# =============================================================================

APPOINTMENT_VERB = r"(?:will\s+be|should\s+be|to\s+be|'s\s+name\s+is|\s*is\s+named|is|named|:)"

EXECUTOR = re.compile(
    r"(?i:\b(?:(?:my|the)\s+)?(?P<qual>alternate|backup|secondary|successor|digital)?\s*executor\s*"
    rf"{APPOINTMENT_VERB})\s*(?P<name>{NAME})"
)
EXECUTOR_APPOINTMENT = re.compile(
    rf"(?i:\b(?:appoint|choose|select|want|name|nominate))\s+(?P<name>{NAME})\s+"
    r"(?i:as\s+(?:my|the)\s+(?P<qual>alternate\s+|backup\s+)?executor)"
)
GUARDIAN = re.compile(
    r"(?i:\b(?:(?:my|the)\s+)?(?P<qual>alternate|backup|secondary|successor)?\s*guardian"
    r"(?:\s+(?:for|of)\s+(?:my|our)\s+(?:children|kids|child|son|daughter))?\s*"
    rf"{APPOINTMENT_VERB})\s*(?P<name>{NAME})"
)
GUARDIAN_APPOINTMENT = re.compile(
    rf"(?i:\b(?:appoint|choose|select|want|name|nominate))\s+(?P<name>{NAME})\s+"
    r"(?i:as\s+(?:my|the)\s+(?:children's\s+)?(?P<qual>alternate\s+|backup\s+)?guardian)"
)


def _match_role(
    ctx: ExtractionContext,
    patterns: tuple[re.Pattern, ...],
    primary: str,
    alternate: str,
) -> dict[str, Any] | None:
    values: dict[str, Any] = {}
    for pattern in patterns:
        for match in pattern.finditer(ctx.text):
            qual = (match.group("qual") or "").strip().lower()
            if qual == "digital":
                continue
            target = alternate if qual else primary
            if target in values:
                continue
            name = clean_name(match.group("name"))
            if name and not is_assistant_name(name, ctx.assistant_name):
                values[target] = name
    return values or None


def match_executor(ctx: ExtractionContext) -> dict[str, Any] | None:
    return _match_role(
        ctx, (EXECUTOR, EXECUTOR_APPOINTMENT), "executor", "alternate_executor"
    )


def match_guardian(ctx: ExtractionContext) -> dict[str, Any] | None:
    return _match_role(
        ctx, (GUARDIAN, GUARDIAN_APPOINTMENT), "guardian", "alternate_guardian"
    )


# =============================================================================
# Beneficiaries and final wishes
# =============================================================================

BENEFICIARIES = re.compile(
    r"(?i:\b(?:my\s+)?beneficiar(?:y|ies)\s+(?:is|are|will\s+be|should\s+be|:)"
    r"|\b(?:leave|give|bequeath)\s+(?:everything|my\s+(?:entire\s+)?estate|all\s+(?:of\s+)?my\s+(?:property|assets))\s+to)"
    r"\s*(?P<names>.*)",
    re.DOTALL,
)

FINAL_WISHES = re.compile(
    r"(?i:\bmy\s+(?:funeral|burial|final)\s+(?:wishes|instructions|arrangements)\s+(?:are|is|:)"
    r"|\bfor\s+my\s+funeral,?)\s*(?P<wishes>.*)",
    re.DOTALL,
)
DISPOSITION = re.compile(
    r"(?i:\bi\s+(?:would\s+like|want|wish|prefer)\s+to\s+be\s+(?:cremated|buried)\b)[^.!?]*",
)


def match_beneficiaries(ctx: ExtractionContext) -> dict[str, Any] | None:
    match = BENEFICIARIES.search(ctx.text)
    if not match:
        return None
    names = split_names(match.group("names"), ctx.assistant_name)
    return {"beneficiaries": names} if names else None


def match_final_wishes(ctx: ExtractionContext) -> dict[str, Any] | None:
    match = FINAL_WISHES.search(ctx.text)
    if match:
        wishes = clip(first_sentence(match.group("wishes")))
        if wishes:
            return {"final_wishes": wishes[0].upper() + wishes[1:]}
    match = DISPOSITION.search(ctx.text)
    if match:
        return {"final_wishes": clip(match.group(0)[0].upper() + match.group(0)[1:])}
    return None


# =============================================================================
# Assets
# =============================================================================

ASSET_KEYWORDS: dict[AssetCategory, str] = {
    AssetCategory.REAL_ESTATE: (
        r"house|home(?!\s+address)|property|real\s+estate|apartment|condo|land|cabin|farm"
    ),
    AssetCategory.VEHICLE: r"cars?|vehicles?|trucks?|automobiles?|motorcycles?|boats?",
    AssetCategory.FINANCIAL: (
        r"savings|bank\s+accounts?|checking(?:\s+account)?|investments?(?:\s+accounts?)?"
        r"|retirement\s+accounts?|401\(k\)|ira|stocks|bonds|money"
    ),
    AssetCategory.PERSONAL_PROPERTY: (
        r"jewelry|jewellery|art\s+collection|artwork|paintings|furniture|heirlooms?|collection"
    ),
}


def _asset_patterns(keywords: str) -> tuple[re.Pattern, re.Pattern]:
    # "my house" alone is not an asset; a possessive needs a connector
    possessive = re.compile(
        rf"\b(?:my|our)\s+(?P<noun>{keywords})\b"
        r"(?:\s+(?:is|are)\s+(?:located\s+)?(?:at|in|with)\b|\s+(?:located\s+)?(?:at|in)\b"
        r"|\s+(?:is|are)\b|\s*:)"
        r"\s*:?\s*(?P<detail>[^.!?]*)",
        re.IGNORECASE,
    )
    ownership = re.compile(
        r"\b(?:i|we)\s+(?:have|own)\s+(?:(?:a|an|the|some|two|several)\s+)?"
        rf"(?P<noun>{keywords})\b"
        r"(?:\s+(?:(?:is|are)\s+)?(?:located\s+)?(?:at|in|with)\b)?\s*:?\s*(?P<detail>[^.!?]*)",
        re.IGNORECASE,
    )
    return possessive, ownership


ASSET_PATTERNS = {category: _asset_patterns(kw) for category, kw in ASSET_KEYWORDS.items()}


def asset_matcher(category: AssetCategory) -> Callable[[ExtractionContext], dict[str, Any] | None]:
    patterns = ASSET_PATTERNS[category]

    def match_asset(ctx: ExtractionContext) -> dict[str, Any] | None:
        match = next(filter(None, (p.search(ctx.text) for p in patterns)), None)
        if not match:
            return None
        description = clip(match.group("detail")) or " ".join(match.group("noun").split())
        return {
            "asset_entries": [AssetEntry(category=category, descriptive_text=description)]
        }

    match_asset.__name__ = f"match_asset_{category.value}"
    return match_asset


# =============================================================================
# Digital assets (digital-assets template only)
# =============================================================================

DIGITAL_ASSET_KEYWORDS: dict[str, str] = {
    "Cryptocurrency": r"crypto(?:currency|currencies)?|bitcoin|ethereum|nfts?|crypto\s+wallet",
    "Social Media": r"social\s+media|facebook|instagram|twitter|tiktok|linkedin",
    "Email": r"e-?mail\s+accounts?|gmail|outlook\.com|yahoo\s+mail",
    "Online Accounts": r"online\s+accounts?|digital\s+accounts?|paypal|cloud\s+storage|domain\s+names?|websites?",
}

DIGITAL_ASSET_PATTERNS = {
    asset_type: re.compile(rf"\b(?:{keywords})\b", re.IGNORECASE)
    for asset_type, keywords in DIGITAL_ASSET_KEYWORDS.items()
}


def _containing_sentence(text: str, start: int) -> str:
    begin = max(text.rfind(sep, 0, start) for sep in (". ", "! ", "? ", "\n"))
    begin = 0 if begin < 0 else begin + 1
    end_match = SENTENCE_END.search(text, start)
    end = end_match.start() if end_match else len(text)
    return text[begin:end].strip().rstrip(".!?")


def digital_asset_matcher(asset_type: str) -> Callable[[ExtractionContext], dict[str, Any] | None]:
    pattern = DIGITAL_ASSET_PATTERNS[asset_type]

    def match_digital_asset(ctx: ExtractionContext) -> dict[str, Any] | None:
        match = pattern.search(ctx.text)
        if not match:
            return None
        details = clip(_containing_sentence(ctx.text, match.start()))
        return {
            "digital_asset_entries": [DigitalAssetEntry(asset_type=asset_type, details=details)]
        }

    match_digital_asset.__name__ = f"match_digital_{normalize_key(asset_type).replace(' ', '_')}"
    return match_digital_asset


# =============================================================================
# Rule table (evaluation order)
# =============================================================================

DIGITAL_ONLY = frozenset({TemplateKind.DIGITAL_ASSETS})

EXTRACTION_RULES: list[ExtractionRule] = [
    ExtractionRule("self_introduction", match_self_introduction),
    ExtractionRule("marital_status", match_marital_status, speakers=ANY_SPEAKER),
    ExtractionRule("spouse_name", match_spouse, speakers=ANY_SPEAKER),
    ExtractionRule("address", match_address),
    ExtractionRule("children", match_children),
    ExtractionRule("executor", match_executor),
    ExtractionRule("guardian", match_guardian),
    ExtractionRule("beneficiaries", match_beneficiaries),
    *[
        ExtractionRule(f"asset_{category.value}", asset_matcher(category))
        for category in ASSET_KEYWORDS
    ],
    *[
        ExtractionRule(
            f"digital_{normalize_key(asset_type).replace(' ', '_')}",
            digital_asset_matcher(asset_type),
            template_kinds=DIGITAL_ONLY,
        )
        for asset_type in DIGITAL_ASSET_KEYWORDS
    ],
    ExtractionRule("final_wishes", match_final_wishes),
    ExtractionRule("bare_name", match_bare_name, fallback=True),
]
