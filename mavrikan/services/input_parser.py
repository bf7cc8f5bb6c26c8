"""Literal keyword and number matching for customer replies."""

import re
from typing import Optional, Sequence

from mavrikan.services.state_machine import ItemKind

TRIGGER_PHRASES = (
    "ניקוי",
    "שלום",
    "היי",
    "הי",
    "בוקר טוב",
    "ערב טוב",
    "מחיר",
    "הצעת מחיר",
    "כמה עולה",
)

ITEM_LABELS: dict[ItemKind, str] = {
    ItemKind.SOFA: "ספה",
    ItemKind.MATTRESS: "מזרן",
    ItemKind.CARPET: "שטיח",
}
MULTIPLE_ITEMS_LABEL = "כמה פריטים"

# Menu order of the item question and the multi-item question
ITEM_MENU = (ItemKind.SOFA, ItemKind.MATTRESS, ItemKind.CARPET)

MATTRESS_TYPE_OPTIONS = ("יחיד", "זוגי", "קינג סייז")
YES_NO_OPTIONS = ("כן", "לא")
SOFA_TYPE_OPTIONS = ("ספה סטנדרטית", 'שזלונג "ר"', "מערכת ישיבה גדולה", "ספה מלבנית")
CARPET_TYPE_OPTIONS = (
    "שטיח שאגי",
    "שטיח סינטתי",
    "שטיח וינטג׳ / מודרני",
    "שטיח עבודת יד (צמר / כותנה)",
    "שטיח מקיר לקיר",
)

SKIP_TOKENS = frozenset({"0", "דלג", "skip"})

_MULTI_DIGITS = re.compile(r"[123]")


def contains_trigger(text: str) -> bool:
    normalized = (text or "").strip()
    return any(phrase in normalized for phrase in TRIGGER_PHRASES)


def sanitize_input(text: object, max_length: int = 500) -> str:
    """Trim free text and cap its length."""
    if not isinstance(text, str):
        return ""
    return text.strip()[:max_length]


def sanitize_name(name: object) -> Optional[str]:
    """Strip markup characters from a profile name; None when nothing usable remains."""
    if not isinstance(name, str):
        return None
    cleaned = re.sub(r"[<>]", "", name.strip())[:100]
    return cleaned or None


def resolve_option(text: str, options: Sequence[str]) -> str:
    """Map an ordinal ("2") or a partial name onto the option list.

    Anything that matches no option is kept as the trimmed free text.
    """
    trimmed = (text or "").strip()
    if not trimmed:
        return trimmed

    try:
        number = int(trimmed)
    except ValueError:
        number = None
    if number is not None and 1 <= number <= len(options):
        return options[number - 1]

    for option in options:
        if trimmed in option or option in trimmed:
            return option

    return trimmed


def parse_item_choice(text: str) -> ItemKind | str | None:
    """Classify the answer to "which item?".

    Returns an ItemKind, the MULTIPLE_ITEMS_LABEL marker for the multi-item
    branch, or None when nothing matched.
    """
    normalized = (text or "").strip()
    if normalized == "1" or ITEM_LABELS[ItemKind.SOFA] in normalized:
        return ItemKind.SOFA
    if normalized == "2" or ITEM_LABELS[ItemKind.MATTRESS] in normalized:
        return ItemKind.MATTRESS
    if normalized == "3" or ITEM_LABELS[ItemKind.CARPET] in normalized:
        return ItemKind.CARPET
    if normalized == "4" or MULTIPLE_ITEMS_LABEL in normalized or "יחד" in normalized:
        return MULTIPLE_ITEMS_LABEL
    return None


def parse_multiple_items(text: str) -> list[ItemKind]:
    """Parse "1,2", "1 3", "123" or item names into an ordered, deduplicated item list."""
    normalized = (text or "").strip()

    digits = _MULTI_DIGITS.findall(normalized)
    if digits:
        items: list[ItemKind] = []
        for digit in digits:
            item = ITEM_MENU[int(digit) - 1]
            if item not in items:
                items.append(item)
        return items

    return [item for item in ITEM_MENU if ITEM_LABELS[item] in normalized]


def parse_poll_selections(labels: Sequence[str]) -> list[ItemKind]:
    """Map selected poll option labels onto item kinds, keeping vote order."""
    items: list[ItemKind] = []
    for label in labels:
        for item in ITEM_MENU:
            if ITEM_LABELS[item] in (label or "") and item not in items:
                items.append(item)
    return items


def is_skip(text: str) -> bool:
    return (text or "").strip().casefold() in SKIP_TOKENS
