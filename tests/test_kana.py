"""Unit tests for kana row classification and ordering."""
import random
import pytest
from app.constants import ROW_ORDER
from app.services.kana import (
    Script,
    classify,
    classify_row,
    compare_within_row,
    draw_flashcard,
    get_vowel,
    group_by_row,
    order_rows,
    row_display_name,
    sort_within_row,
)

UNVOICED_ROW = {"g": "k", "z": "s", "d": "t", "b": "h", "p": "h"}


class TestClassifyRow:
    """Tests for classify_row."""

    @pytest.mark.parametrize("romanization,expected", [
        ("a", "a"), ("o", "a"),
        ("ka", "k"), ("so", "s"), ("te", "t"), ("ni", "n"),
        ("ho", "h"), ("mu", "m"), ("ya", "y"), ("yo", "y"),
        ("ri", "r"), ("wa", "w"), ("wo", "w"), ("n", "n"),
    ])
    def test_basic_rows(self, make_kana, romanization, expected):
        """Plain syllables go to the row of their leading letter."""
        assert classify_row(make_kana(romanization)) == expected

    @pytest.mark.parametrize("voiced,unvoiced", [
        ("ga", "ka"), ("zo", "so"), ("de", "te"), ("ba", "ha"), ("po", "ho"),
    ])
    def test_voiced_joins_unvoiced_family(self, make_kana, voiced, unvoiced):
        """Voiced and semi-voiced syllables share the unvoiced row."""
        assert classify_row(make_kana(voiced)) == classify_row(make_kana(unvoiced))

    def test_every_voiced_dataset_entry_joins_unvoiced_row(self, dataset):
        """Every shipped reading starting with g, z, d, b or p lands in k, s, t or h."""
        voiced = [kana for kana in dataset if kana.romanization[0] in UNVOICED_ROW]
        assert voiced, "dataset should contain voiced kana"

        for kana in voiced:
            assert classify_row(kana) == UNVOICED_ROW[kana.romanization[0]], kana

    @pytest.mark.parametrize("romanization", ["kya", "kyu", "kyo"])
    def test_combined_k_forms_stay_in_k_row(self, make_kana, romanization):
        """Combined forms belong to their base consonant, not the y row."""
        assert classify_row(make_kana(romanization)) == "k"

    def test_every_combined_k_dataset_entry_is_k(self, dataset):
        combined = [
            kana for kana in dataset
            if kana.romanization.startswith("k") and len(kana.romanization) > 2 and "y" in kana.romanization
        ]
        assert len(combined) == 6  # kya/kyu/kyo in both scripts

        assert {classify_row(kana) for kana in combined} == {"k"}

    @pytest.mark.parametrize("romanization,expected", [
        ("gya", "k"), ("nyo", "n"), ("hyu", "h"), ("myo", "m"),
        ("ryu", "r"), ("byo", "h"), ("pya", "h"),
    ])
    def test_combined_forms_use_base_consonant_row(self, make_kana, romanization, expected):
        assert classify_row(make_kana(romanization)) == expected

    def test_unmatched_letter_uses_row_hint(self, make_kana):
        """Readings like chi and fu fall back to the record's hint."""
        assert classify_row(make_kana("chi", row_hint="t")) == "t"
        assert classify_row(make_kana("fu", row_hint="h")) == "h"

    def test_combined_form_outside_family_table_uses_hint(self, make_kana):
        """A reading such as "jya" is not given a row of its own."""
        assert classify_row(make_kana("jya", row_hint="s")) == "s"
        assert classify_row(make_kana("jya")) == "special"

    def test_unmatched_letter_without_hint_is_special(self, make_kana):
        assert classify_row(make_kana("fu")) == "special"
        assert classify_row(make_kana("chi")) == "special"

    def test_table_wins_over_hint(self, make_kana):
        """The hint is only a fallback."""
        assert classify_row(make_kana("ka", row_hint="w")) == "k"

    def test_empty_romanization_is_special(self, make_kana):
        assert classify_row(make_kana("")) == "special"
        assert classify_row(make_kana("", row_hint="k")) == "special"

    def test_case_insensitive(self, make_kana):
        assert classify_row(make_kana("KA")) == "k"

    def test_classified_kana_exposes_vowel(self, make_kana):
        item = classify(make_kana("kyo"))

        assert item.row == "k"
        assert item.vowel == "o"

    def test_shipped_dataset_has_no_special_rows(self, dataset):
        rows = {classify_row(kana) for kana in dataset}
        assert "special" not in rows
        assert rows <= set(ROW_ORDER)


class TestVowel:
    """Tests for vowel extraction."""

    @pytest.mark.parametrize("romanization,expected", [
        ("a", "a"), ("ki", "i"), ("tsu", "u"), ("kyo", "o"), ("sha", "a"), ("n", None), ("", None),
    ])
    def test_first_vowel(self, romanization, expected):
        assert get_vowel(romanization) == expected


class TestCompareWithinRow:
    """Tests for intra-row ordering."""

    def test_same_consonant_sorted_by_vowel_sequence(self, make_kana):
        """Any input order comes out as a, i, u, e, o."""
        kana = [make_kana(r) for r in ["ka", "ki", "ku", "ke", "ko"]]
        rng = random.Random(7)

        for _ in range(20):
            shuffled = list(kana)
            rng.shuffle(shuffled)
            assert [k.romanization for k in sort_within_row(shuffled)] == ["ka", "ki", "ku", "ke", "ko"]

    def test_vowel_row_order(self, make_kana):
        kana = [make_kana(r) for r in ["o", "e", "u", "i", "a"]]
        # Single vowels have different leading letters, so plain lexicographic order applies
        assert [k.romanization for k in sort_within_row(kana)] == ["a", "e", "i", "o", "u"]

    def test_different_consonants_fall_back_to_lexicographic(self, make_kana):
        """あ (a) and か (ka) are in different rows; "a" sorts before "ka"."""
        a = make_kana("a", id="h1", character="あ")
        ka = make_kana("ka", id="h2", character="か")

        assert classify_row(a) == "a"
        assert classify_row(ka) == "k"
        assert compare_within_row(a, ka) < 0
        assert compare_within_row(ka, a) > 0

    def test_vowel_tie_falls_through_to_lexicographic(self, make_kana):
        sa, sha = make_kana("sa"), make_kana("sha")

        assert compare_within_row(sa, sha) < 0
        assert compare_within_row(sha, sa) > 0

    def test_equal_romanizations_compare_equal(self, make_kana):
        assert compare_within_row(make_kana("ji"), make_kana("ji")) == 0

    def test_syllabic_n_sorts_after_vowel_bearing_n(self, make_kana):
        kana = [make_kana(r) for r in ["n", "no", "na"]]
        assert [k.romanization for k in sort_within_row(kana)] == ["na", "no", "n"]

    def test_combined_forms_interleave_by_vowel(self, make_kana):
        kana = [make_kana(r) for r in ["kyo", "ko", "kyu", "ku", "kya", "ka"]]
        assert [k.romanization for k in sort_within_row(kana)] == ["ka", "kya", "ku", "kyu", "ko", "kyo"]


class TestRowOrdering:
    """Tests for row display order."""

    def test_traditional_order(self):
        assert order_rows(["w", "a", "special", "k", "n"]) == ["a", "k", "n", "w", "special"]

    def test_unknown_rows_sort_last_alphabetically(self):
        assert order_rows(["zz", "special", "xx", "h"]) == ["h", "special", "xx", "zz"]

    def test_display_names(self):
        assert row_display_name("k") == "K (か行/が行)"
        assert row_display_name("q") == "Row Q"


class TestGroupByRow:
    """Tests for the study view grouping."""

    def test_rows_in_traditional_order(self, dataset):
        hiragana = [kana for kana in dataset if kana.script == Script.HIRAGANA]
        grouped = group_by_row(hiragana)

        assert list(grouped) == ["a", "k", "s", "t", "n", "h", "m", "y", "r", "w"]
        assert sum(len(members) for members in grouped.values()) == len(hiragana)

    def test_vowel_row_contents(self, dataset):
        hiragana = [kana for kana in dataset if kana.script == Script.HIRAGANA]
        grouped = group_by_row(hiragana)

        assert [k.character for k in grouped["a"]] == ["あ", "え", "い", "お", "う"]

    def test_k_row_contents(self, dataset):
        """The k row holds the g and combined forms, grouped by leading letter then vowel."""
        hiragana = [kana for kana in dataset if kana.script == Script.HIRAGANA]
        grouped = group_by_row(hiragana)

        assert [k.romanization for k in grouped["k"]] == [
            "ga", "gya", "gi", "gu", "gyu", "ge", "go", "gyo",
            "ka", "kya", "ki", "ku", "kyu", "ke", "ko", "kyo",
        ]

    def test_hinted_readings_join_their_rows(self, dataset):
        katakana = [kana for kana in dataset if kana.script == Script.KATAKANA]
        grouped = group_by_row(katakana)

        assert "chi" in [k.romanization for k in grouped["t"]]
        assert "fu" in [k.romanization for k in grouped["h"]]
        assert "ja" in [k.romanization for k in grouped["s"]]

    def test_empty_input(self):
        assert list(group_by_row([])) == []


class TestFlashcard:
    """Tests for flashcard drawing."""

    def test_draws_from_requested_script(self, dataset):
        rng = random.Random(3)
        for _ in range(20):
            kana = draw_flashcard(dataset, Script.KATAKANA, rng=rng)
            assert kana.script == Script.KATAKANA

    def test_none_when_script_empty(self, make_kana):
        assert draw_flashcard([make_kana("a")], Script.KATAKANA) is None
