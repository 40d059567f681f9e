"""Ingredient text normalization and splitting."""

import re
import unicodedata

# Vietnamese vowels grouped by their base letter
_ACCENT_GROUPS = {
    "a": "àáạảãâầấậẩẫăằắặẳẵ",
    "e": "èéẹẻẽêềếệểễ",
    "i": "ìíịỉĩ",
    "o": "òóọỏõôồốộổỗơờớợởỡ",
    "u": "ùúụủũưừứựửữ",
    "y": "ỳýỵỷỹ",
    "d": "đ",
}

ACCENT_MAP = {char: base for base, chars in _ACCENT_GROUPS.items() for char in chars}

_SPLIT_PATTERN = re.compile(r"[,;]|\s+and\s+|\s+và\s+|\s*&\s*", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_INVALID_CHARS = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUNS = re.compile(r"-{2,}")


def normalize(text: str) -> str:
    """Normalize an ingredient name to a lowercase ASCII hyphenated key.

    "Thịt Gà" -> "thit-ga", "Hành lá" -> "hanh-la". Idempotent.
    """
    # NFC first so decomposed input still hits the accent map
    value = unicodedata.normalize("NFC", text).lower().strip()
    value = "".join(ACCENT_MAP.get(char, char) for char in value)
    value = "".join(
        char
        for char in unicodedata.normalize("NFD", value)
        if not unicodedata.combining(char)
    )
    value = _WHITESPACE.sub("-", value)
    value = _INVALID_CHARS.sub("", value)
    value = _HYPHEN_RUNS.sub("-", value)
    return value.strip("-")


def slugify_english(text: str) -> str:
    """Canonical form for English ingredient names ("Green Onion" -> "green-onion")."""
    return normalize(text)


def split_ingredients(texts: list[str]) -> list[str]:
    """Split free-text entries into individual ingredients.

    Entries are split on commas, semicolons and the conjunctions and/và/&.
    Duplicates (by normalized form) keep their first occurrence.
    """
    result: list[str] = []
    seen: set[str] = set()
    for text in texts:
        for part in _SPLIT_PATTERN.split(text or ""):
            cleaned = part.strip()
            if not cleaned:
                continue
            key = normalize(cleaned)
            if not key or key in seen:
                continue
            seen.add(key)
            result.append(cleaned)
    return result
