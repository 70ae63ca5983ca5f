"""Will template tables.

Every template kind is a declarative list of articles in their fixed relative
order. Conditional articles carry a predicate over the Fact Model; base articles
have none and always render, with bracketed placeholders for unknown facts.
"""

from dataclasses import dataclass
from typing import Callable

import structlog

from willforge.models.document import TEMPLATE_ALIASES, TemplateKind
from willforge.models.facts import FactModel, MaritalStatus

logger = structlog.get_logger(__name__)


ArticleBuilder = Callable[[FactModel], str]
ArticleCondition = Callable[[FactModel], bool]


@dataclass(frozen=True)
class ArticleSpec:
    """One article of a template: stable key, heading, body builder and optional condition."""

    key: str
    title: str
    builder: ArticleBuilder
    condition: ArticleCondition | None = None

    @property
    def is_conditional(self) -> bool:
        return self.condition is not None

    def is_present(self, facts: FactModel) -> bool:
        return self.condition is None or bool(self.condition(facts))


@dataclass(frozen=True)
class TemplateSpec:
    """Title, preamble wording and article table of one template kind."""

    kind: TemplateKind
    display_name: str
    title: str
    preamble_suffix: str
    articles: tuple[ArticleSpec, ...]

    @property
    def conditional_keys(self) -> list[str]:
        return [a.key for a in self.articles if a.is_conditional]

    @property
    def base_keys(self) -> list[str]:
        return [a.key for a in self.articles if not a.is_conditional]


# =============================================================================
# Text helpers
# =============================================================================


def or_placeholder(value: str | None, placeholder: str) -> str:
    return value if value else placeholder


def join_inline(items: list[str]) -> str:
    """Join names as an inline clause: a / a and b / a, b, and c."""
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} and {items[1]}"
    return f"{', '.join(items[:-1])}, and {items[-1]}"


def bullets(lines: list[str]) -> str:
    return "\n".join(f"- {line}" for line in lines)


def sentence(text: str) -> str:
    text = text.strip()
    return text if text.endswith((".", "!", "?")) else f"{text}."


# =============================================================================
# Article builders
# =============================================================================


def build_revocation(facts: FactModel) -> str:
    return "I revoke all wills and codicils previously made by me."


def build_residence(facts: FactModel) -> str:
    # A parsed address already carries its own city/state/postal code
    if facts.address and (not facts.postal_code or facts.postal_code in facts.address):
        return f"At the time of executing this Will, I reside at {sentence(facts.address)}"
    return (
        "At the time of executing this Will, I reside at "
        f"{or_placeholder(facts.address, '[ADDRESS]')}, "
        f"{or_placeholder(facts.city, '[CITY]')}, "
        f"{or_placeholder(facts.state, '[STATE]')} "
        f"{or_placeholder(facts.postal_code, '[ZIP CODE]')}."
    )


MARITAL_SENTENCES = {
    MaritalStatus.SINGLE: "I am currently single.",
    MaritalStatus.DIVORCED: "I am divorced.",
    MaritalStatus.WIDOWED: "I am widowed.",
}


def build_family_information(facts: FactModel) -> str:
    lines: list[str] = []
    if facts.marital_status == MaritalStatus.MARRIED:
        lines.append(f"I am married to {or_placeholder(facts.spouse_name, '[SPOUSE NAME]')}.")
    elif facts.marital_status is not None:
        lines.append(MARITAL_SENTENCES[facts.marital_status])

    if len(facts.children) == 1:
        lines.append(f"I have one child, {facts.children[0]}.")
    elif facts.children:
        lines.append(f"I have {len(facts.children)} children: {', '.join(facts.children)}.")

    if not lines:
        lines.append("My marital status is [MARITAL STATUS]. My children are [CHILDREN'S NAMES].")
    return "\n".join(lines)


def build_executor(facts: FactModel) -> str:
    return (
        f"I appoint {or_placeholder(facts.executor, '[EXECUTOR NAME]')} as Executor of this Will. "
        f"If {or_placeholder(facts.executor, 'my named Executor')} is unwilling or unable to serve, "
        f"I appoint {or_placeholder(facts.alternate_executor, '[ALTERNATE EXECUTOR]')} "
        "to serve as my alternate Executor."
    )


def build_guardian(facts: FactModel) -> str:
    return (
        "If any of my children are minors at the time of my death, I appoint "
        f"{or_placeholder(facts.guardian, '[GUARDIAN NAME]')} as guardian of my minor children. "
        f"If {or_placeholder(facts.guardian, 'my named guardian')} is unwilling or unable to serve, "
        f"I appoint {or_placeholder(facts.alternate_guardian, '[ALTERNATE GUARDIAN]')} "
        "to serve as alternate guardian."
    )


def build_provisions_for_children(facts: FactModel) -> str:
    return (
        f"The share of my estate passing to any of my children, {join_inline(facts.children)}, "
        "who has not attained the age of [AGE] shall be held in trust by my Executor for that "
        "child's health, education, maintenance and support until the child attains that age."
    )


def build_distribution(facts: FactModel) -> str:
    lines: list[str] = []
    if facts.asset_entries:
        lines.append("My estate includes the following property:")
        lines.append(
            bullets([f"{a.category.label}: {a.descriptive_text}" for a in facts.asset_entries])
        )
    recipients = join_inline(facts.beneficiaries) or "[PRIMARY BENEFICIARY]"
    lines.append(f"I give all the rest and remainder of my estate to {recipients}.")
    lines.append(
        "If none of my named beneficiaries survive me, I give my estate to [CONTINGENT BENEFICIARY]."
    )
    return "\n".join(lines)


def _digital_asset_lines(facts: FactModel) -> list[str]:
    return [f"{d.asset_type}: {d.details}" for d in facts.digital_asset_entries]


def build_digital_assets(facts: FactModel) -> str:
    return f"I own the following digital assets:\n{bullets(_digital_asset_lines(facts))}"


def build_digital_assets_detailed(facts: FactModel) -> str:
    lines = _digital_asset_lines(facts) or [
        "[DIGITAL ASSET TYPE]: [DESCRIPTION AND ACCESS INFORMATION]",
        "[DIGITAL ASSET TYPE]: [DESCRIPTION AND ACCESS INFORMATION]",
    ]
    return (
        "I own the following digital assets, online accounts, and digital property:\n"
        f"{bullets(lines)}\n"
        f"I appoint {or_placeholder(facts.executor, '[DIGITAL EXECUTOR NAME]')} as my Digital "
        "Executor to manage, access, control, and dispose of my digital assets according to this Will."
    )


def build_digital_authorization(facts: FactModel) -> str:
    return (
        "I explicitly authorize my Digital Executor to access, handle, distribute, and dispose of "
        "my digital assets. This includes accessing my computers, smartphones, tablets, storage "
        "devices, email accounts, social media accounts, financial accounts, cryptocurrency "
        "wallets, domain names, digital intellectual property, and other digital assets."
    )


def build_passwords(facts: FactModel) -> str:
    return (
        "Access information for my digital accounts can be found in "
        "[LOCATION OF PASSWORD MANAGER OR ACCESS INFORMATION]."
    )


def build_business_interests(facts: FactModel) -> str:
    return (
        "I own the following business interests:\n"
        + bullets(["[BUSINESS NAME]: [DESCRIPTION, OWNERSHIP PERCENTAGE, AND BUSINESS STRUCTURE]"] * 2)
    )


def build_business_succession(facts: FactModel) -> str:
    return (
        "I direct that my business interests be handled as follows:\n"
        + bullets(
            [
                "[BUSINESS NAME]: I give my ownership interest to [BENEFICIARY/SUCCESSOR].",
                "[BUSINESS NAME]: I direct my Executor to [SELL/TRANSFER] this business and "
                "distribute the proceeds to [BENEFICIARY].",
            ]
        )
        + "\nIf any business succession plan, buy-sell agreement, or other contractual arrangement "
        "exists that governs the disposition of my business interests, such agreement shall take "
        "precedence over the provisions in this Will."
    )


def build_final_wishes(facts: FactModel) -> str:
    return (
        "It is my wish that the following instructions be observed regarding my funeral and "
        f"burial: {sentence(facts.final_wishes or '')}"
    )


def build_general_provisions(facts: FactModel) -> str:
    return "\n".join(
        [
            "1. If any beneficiary predeceases me, their share shall be distributed equally "
            "among the remaining beneficiaries.",
            "2. This Will shall be governed by the laws of the jurisdiction in which I reside "
            "at the time of my death.",
            "3. If any provision of this Will is held invalid, the remaining provisions shall "
            "continue in full force and effect.",
        ]
    )


def build_closing(facts: FactModel) -> str:
    testator = or_placeholder(facts.full_name, "[NAME OF TESTATOR]")
    return (
        "IN WITNESS WHEREOF, I have signed this Will on this ____ day of ____________, 20____.\n\n"
        f"____________________________\n{or_placeholder(facts.full_name, '[YOUR SIGNATURE]')}\n\n"
        f"The foregoing instrument was signed, published, and declared by {testator} as their "
        "Will in our presence, and we, at their request and in their presence, and in the "
        "presence of each other, have subscribed our names as witnesses thereto, believing said "
        f"{testator} to be of sound mind and memory.\n\n"
        "____________________________\nWITNESS SIGNATURE\n\n"
        "____________________________\nWITNESS SIGNATURE"
    )


# =============================================================================
# Article specs
# =============================================================================

REVOCATION = ArticleSpec("revocation", "REVOCATION OF PRIOR WILLS", build_revocation)
RESIDENCE = ArticleSpec(
    "residence", "RESIDENCE", build_residence, condition=lambda f: f.has_residence
)
FAMILY_INFORMATION = ArticleSpec("family_information", "FAMILY INFORMATION", build_family_information)
EXECUTOR = ArticleSpec("executor", "EXECUTOR", build_executor)
GUARDIAN = ArticleSpec("guardian", "GUARDIAN", build_guardian)
GUARDIAN_IF_KNOWN = ArticleSpec(
    "guardian", "GUARDIAN", build_guardian, condition=lambda f: bool(f.guardian)
)
PROVISIONS_FOR_CHILDREN = ArticleSpec(
    "provisions_for_children",
    "PROVISIONS FOR CHILDREN",
    build_provisions_for_children,
    condition=lambda f: bool(f.children),
)
DISTRIBUTION = ArticleSpec("distribution", "DISTRIBUTION OF PROPERTY", build_distribution)
DIGITAL_ASSETS_IF_KNOWN = ArticleSpec(
    "digital_assets",
    "DIGITAL ASSETS",
    build_digital_assets,
    condition=lambda f: bool(f.digital_asset_entries),
)
DIGITAL_ASSETS = ArticleSpec("digital_assets", "DIGITAL ASSETS", build_digital_assets_detailed)
DIGITAL_AUTHORIZATION = ArticleSpec(
    "digital_authorization", "AUTHORIZATION FOR DIGITAL ACCESS", build_digital_authorization
)
PASSWORDS = ArticleSpec("passwords", "PASSWORDS AND ACCESS INFORMATION", build_passwords)
BUSINESS_INTERESTS = ArticleSpec("business_interests", "BUSINESS INTERESTS", build_business_interests)
BUSINESS_SUCCESSION = ArticleSpec(
    "business_succession", "BUSINESS SUCCESSION", build_business_succession
)
FINAL_WISHES = ArticleSpec(
    "final_wishes", "FINAL WISHES", build_final_wishes, condition=lambda f: bool(f.final_wishes)
)
GENERAL_PROVISIONS = ArticleSpec("general_provisions", "GENERAL PROVISIONS", build_general_provisions)


TEMPLATES: dict[TemplateKind, TemplateSpec] = {
    TemplateKind.TRADITIONAL: TemplateSpec(
        kind=TemplateKind.TRADITIONAL,
        display_name="Traditional Will",
        title="LAST WILL AND TESTAMENT",
        preamble_suffix="",
        articles=(
            REVOCATION,
            RESIDENCE,
            FAMILY_INFORMATION,
            EXECUTOR,
            GUARDIAN_IF_KNOWN,
            DISTRIBUTION,
            DIGITAL_ASSETS_IF_KNOWN,
            FINAL_WISHES,
            GENERAL_PROVISIONS,
        ),
    ),
    TemplateKind.DIGITAL_ASSETS: TemplateSpec(
        kind=TemplateKind.DIGITAL_ASSETS,
        display_name="Digital Assets Will",
        title="DIGITAL ASSETS WILL AND TESTAMENT",
        preamble_suffix=" with specific provisions for my digital assets",
        articles=(
            REVOCATION,
            RESIDENCE,
            FAMILY_INFORMATION,
            EXECUTOR,
            GUARDIAN_IF_KNOWN,
            DIGITAL_ASSETS,
            DIGITAL_AUTHORIZATION,
            PASSWORDS,
            DISTRIBUTION,
            FINAL_WISHES,
            GENERAL_PROVISIONS,
        ),
    ),
    TemplateKind.BUSINESS: TemplateSpec(
        kind=TemplateKind.BUSINESS,
        display_name="Business Owner Will",
        title="BUSINESS OWNER'S LAST WILL AND TESTAMENT",
        preamble_suffix=" with specific provisions for my business interests",
        articles=(
            REVOCATION,
            RESIDENCE,
            FAMILY_INFORMATION,
            EXECUTOR,
            GUARDIAN_IF_KNOWN,
            BUSINESS_INTERESTS,
            BUSINESS_SUCCESSION,
            DISTRIBUTION,
            DIGITAL_ASSETS_IF_KNOWN,
            FINAL_WISHES,
            GENERAL_PROVISIONS,
        ),
    ),
    TemplateKind.FAMILY: TemplateSpec(
        kind=TemplateKind.FAMILY,
        display_name="Family Protection Will",
        title="FAMILY PROTECTION WILL",
        preamble_suffix=" with specific provisions for the care of my children",
        articles=(
            REVOCATION,
            RESIDENCE,
            FAMILY_INFORMATION,
            EXECUTOR,
            GUARDIAN,
            PROVISIONS_FOR_CHILDREN,
            DISTRIBUTION,
            DIGITAL_ASSETS_IF_KNOWN,
            FINAL_WISHES,
            GENERAL_PROVISIONS,
        ),
    ),
}


def get_template(kind: TemplateKind | str | None) -> TemplateSpec:
    """Template definition for a kind or alias; unknown kinds get the traditional template."""
    if isinstance(kind, str) and not isinstance(kind, TemplateKind):
        if kind.strip().lower().replace("_", "-") not in TEMPLATE_ALIASES:
            logger.warning("unknown_template_kind", requested=kind, fallback="traditional")
    return TEMPLATES[TemplateKind.resolve(kind)]
