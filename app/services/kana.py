"""Kana values and phonetic row classification.

Rows are derived from the romanization every time rather than trusted from
the dataset, because combined (yōon) forms such as "kya" must land in their
base consonant's row even though they contain a "y".
"""
import logging
import random
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from functools import cmp_to_key
from typing import Dict, Iterable, List, Optional, Sequence

from app.constants import (
    ROW_DISPLAY_NAMES,
    ROW_FAMILIES,
    ROW_ORDER,
    SPECIAL_ROW,
    VOWEL_ORDER,
)

logger = logging.getLogger(__name__)

# Sorts characters whose vowel cannot be determined after every real vowel
UNKNOWN_VOWEL_RANK = len(VOWEL_ORDER)


class Script(str, Enum):
    """The two kana scripts."""
    HIRAGANA = "hiragana"  # primary
    KATAKANA = "katakana"  # secondary


@dataclass(frozen=True)
class KanaCharacter:
    """A single kana glyph and its reading. Never mutated."""
    character: str
    romanization: str
    id: str
    script: Script
    row_hint: Optional[str] = None


@dataclass(frozen=True)
class ClassifiedKana:
    """A kana character together with its derived row."""
    kana: KanaCharacter
    row: str

    @property
    def vowel(self) -> Optional[str]:
        return get_vowel(self.kana.romanization)


def classify_row(kana: KanaCharacter) -> str:
    """
    Assign a kana character to its phonetic row.

    The leading letter of the romanization decides the row. Combined forms
    are keyed by that leading consonant too, never by the embedded glide,
    so "kya" and "gya" both belong to the k row. Voiced and semi-voiced
    consonants join their unvoiced family (g->k, z->s, d->t, b/p->h).

    Combined forms get no rule of their own: they go through the same
    family table as every other reading, so "gya" lands in k rather than
    a row named after its raw leading letter. One whose leading letter is
    outside the table, such as "jya", takes the row hint like "ji" does.

    Args:
        kana: Character to classify

    Returns:
        One of the keys in ROW_ORDER. Leading letters outside the family
        table ("chi", "fu", "ji") use the record's row hint, else "special".
    """
    romanization = (kana.romanization or "").strip().lower()
    if not romanization:
        logger.warning(
            f"Kana {kana.id!r} ({kana.character}) has no romanization; classifying as special",
            extra={"char_id": kana.id}
        )
        return SPECIAL_ROW

    row = ROW_FAMILIES.get(romanization[0])
    if row is not None:
        return row
    return kana.row_hint or SPECIAL_ROW


def classify(kana: KanaCharacter) -> ClassifiedKana:
    return ClassifiedKana(kana=kana, row=classify_row(kana))


def get_vowel(romanization: str) -> Optional[str]:
    """Return the first vowel letter in a romanization, or None if it has none."""
    for letter in (romanization or "").lower():
        if letter in VOWEL_ORDER:
            return letter
    return None


def _vowel_rank(romanization: str) -> int:
    vowel = get_vowel(romanization)
    return VOWEL_ORDER[vowel] if vowel is not None else UNKNOWN_VOWEL_RANK


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def compare_within_row(a: KanaCharacter, b: KanaCharacter) -> int:
    """
    Compare two characters for display inside a row.

    Characters sharing a leading letter are ordered by the Japanese vowel
    sequence a, i, u, e, o. Everything else, including vowel ties such as
    "sa" and "sha", falls through to plain lexicographic order.

    Returns:
        Negative, zero or positive, as for a ``cmp`` function
    """
    rom_a = a.romanization or ""
    rom_b = b.romanization or ""

    if rom_a[:1] == rom_b[:1]:
        by_vowel = _vowel_rank(rom_a) - _vowel_rank(rom_b)
        if by_vowel != 0:
            return by_vowel

    return _cmp(rom_a, rom_b)


def sort_within_row(characters: Iterable[KanaCharacter]) -> List[KanaCharacter]:
    return sorted(characters, key=cmp_to_key(compare_within_row))


def order_rows(rows: Iterable[str]) -> List[str]:
    """Sort row keys in traditional order; unknown keys follow, alphabetically."""
    known = len(ROW_ORDER)

    def row_key(row: str):
        if row in ROW_ORDER:
            return (ROW_ORDER.index(row), "")
        return (known, row)

    return sorted(set(rows), key=row_key)


def row_display_name(row: str) -> str:
    return ROW_DISPLAY_NAMES.get(row, f"Row {row.upper()}")


def group_by_row(characters: Iterable[KanaCharacter]) -> "OrderedDict[str, List[KanaCharacter]]":
    """
    Group characters into rows for the study view.

    Args:
        characters: Characters to group, typically one script

    Returns:
        Mapping of row key to its sorted characters, rows in display order
    """
    buckets: Dict[str, List[KanaCharacter]] = {}
    for item in map(classify, characters):
        buckets.setdefault(item.row, []).append(item.kana)

    grouped = OrderedDict()
    for row in order_rows(buckets):
        grouped[row] = sort_within_row(buckets[row])
    return grouped


def filter_by_script(characters: Sequence[KanaCharacter], script: Optional[Script]) -> List[KanaCharacter]:
    """Characters of one script, or all of them when ``script`` is None."""
    if script is None:
        return list(characters)
    return [kana for kana in characters if kana.script == script]


def draw_flashcard(
    characters: Sequence[KanaCharacter],
    script: Script,
    rng: Optional[random.Random] = None
) -> Optional[KanaCharacter]:
    """Pick one random character of ``script`` for a flashcard, or None if there are none."""
    pool = filter_by_script(characters, script)
    if not pool:
        return None
    return (rng or random).choice(pool)
