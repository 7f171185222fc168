"""
Free-text normalization helpers shared by every flow.

Statuses are matched case-insensitively: an exact canonical label wins, then
an ordered list of prefixes is tried. Anything else yields None and the
calling node reprompts with the valid options.
"""

import re
from typing import Literal, Optional

EntityKind = Literal["order", "ticket", "service"]


# -----------------------------------------------------------------------------
# Canonical status labels
# -----------------------------------------------------------------------------

ORDER_STATUS_OPTIONS = [
    "Pending",
    "Processing",
    "Awaiting Payment",
    "For Delivery/Pick-up",
    "Completed",
    "Cancelled",
]

SERVICE_STATUS_OPTIONS = ["Active", "Inactive", "Retired"]

TICKET_STATUS_OPTIONS = ["Open", "Pending", "Closed"]

STATUS_OPTIONS: dict[str, list[str]] = {
    "order": ORDER_STATUS_OPTIONS,
    "service": SERVICE_STATUS_OPTIONS,
    "ticket": TICKET_STATUS_OPTIONS,
}

# Checked top to bottom; the first matching prefix wins.
_STATUS_PREFIXES: dict[str, list[tuple[tuple[str, ...], str]]] = {
    "order": [
        (("pend",), "Pending"),
        (("proc",), "Processing"),
        (("await", "payment"), "Awaiting Payment"),
        (("deliver", "pick", "for delivery"), "For Delivery/Pick-up"),
        (("comp",), "Completed"),
        (("cancel",), "Cancelled"),
    ],
    "service": [
        (("act",), "Active"),
        (("inact", "deac", "dis"), "Inactive"),
        (("ret", "arch"), "Retired"),
    ],
    "ticket": [
        (("open",), "Open"),
        (("pend",), "Pending"),
        (("clos",), "Closed"),
    ],
}


def normalize_status(kind: EntityKind, raw: str) -> Optional[str]:
    """Map free text onto a canonical status for the entity kind, or None."""
    text = (raw or "").strip().lower()
    if not text:
        return None

    for label in STATUS_OPTIONS[kind]:
        if text == label.lower():
            return label

    for prefixes, label in _STATUS_PREFIXES[kind]:
        if any(text.startswith(prefix) for prefix in prefixes):
            return label
    return None


# -----------------------------------------------------------------------------
# ID extraction
# -----------------------------------------------------------------------------

ID_PATTERNS: dict[str, re.Pattern] = {
    "order": re.compile(r"\bORD-\d+\b", re.IGNORECASE),
    "ticket": re.compile(r"\bTCK-\d+\b", re.IGNORECASE),
    "service": re.compile(r"\bSRV-[A-Z0-9]+\b", re.IGNORECASE),
}


def extract_ids(kind: EntityKind, text: str) -> list[str]:
    """Return every ID of the given kind in text, uppercased, in order, repeats kept."""
    return [match.upper() for match in ID_PATTERNS[kind].findall(text or "")]


# -----------------------------------------------------------------------------
# Input validators
# -----------------------------------------------------------------------------

END_CHAT_INPUTS = ("end chat", "end")


def is_end_chat(text: str) -> bool:
    return (text or "").strip().lower() in END_CHAT_INPUTS


def is_valid_text_input(text: str) -> bool:
    return bool((text or "").strip())


def is_valid_service_name(text: str) -> bool:
    return 0 < len((text or "").strip()) <= 100


def is_valid_category(text: str) -> bool:
    return 0 < len((text or "").strip()) <= 50


def is_valid_ticket_reply(text: str) -> bool:
    return 0 < len((text or "").strip()) <= 1000


# -----------------------------------------------------------------------------
# Peso price helpers
# -----------------------------------------------------------------------------

_PRICE_STRIP = re.compile(r"[₱,\s]")
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def _leading_number(text: str) -> Optional[float]:
    match = _LEADING_NUMBER.match(_PRICE_STRIP.sub("", text))
    if not match:
        return None
    return float(match.group(0))


def format_price_input(raw: str) -> str:
    """
    Format a typed amount as a peso string.

    "3800", "3,800" and "₱3,800" all become "₱3,800". Up to three decimals are
    kept without trailing zeros. Text with no leading number is returned as-is.
    """
    value = _leading_number(raw)
    if value is None:
        return raw
    formatted = f"{value:,.3f}".rstrip("0").rstrip(".")
    return f"₱{formatted}"


def is_valid_price_input(raw: str) -> bool:
    formatted = format_price_input(raw)
    return "₱" in formatted and bool(re.search(r"[\d,]", formatted))


def extract_numeric_value(formatted_price: str) -> float:
    """Inverse of format_price_input; 0.0 when nothing numeric is present."""
    value = _leading_number(formatted_price or "")
    return value or 0.0
