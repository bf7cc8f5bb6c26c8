import pytest

from mavrikan.services.input_parser import (
    CARPET_TYPE_OPTIONS,
    MATTRESS_TYPE_OPTIONS,
    MULTIPLE_ITEMS_LABEL,
    YES_NO_OPTIONS,
    contains_trigger,
    is_skip,
    parse_item_choice,
    parse_multiple_items,
    parse_poll_selections,
    resolve_option,
    sanitize_input,
    sanitize_name,
)
from mavrikan.services.state_machine import ItemKind


class TestContainsTrigger:
    @pytest.mark.parametrize("text", ["שלום", "היי, רציתי לשאול", "כמה עולה ניקוי ספה?", "  מחיר  "])
    def test_trigger_phrases(self, text):
        assert contains_trigger(text) is True

    @pytest.mark.parametrize("text", ["", "hello", "123", None])
    def test_non_triggers(self, text):
        assert contains_trigger(text) is False


class TestResolveOption:
    def test_ordinal_picks_option(self):
        for index, option in enumerate(MATTRESS_TYPE_OPTIONS, start=1):
            assert resolve_option(str(index), MATTRESS_TYPE_OPTIONS) == option

    def test_out_of_range_ordinal_kept_as_text(self):
        assert resolve_option("9", YES_NO_OPTIONS) == "9"
        assert resolve_option("0", YES_NO_OPTIONS) == "0"

    def test_partial_name_matches(self):
        assert resolve_option("זוגי", MATTRESS_TYPE_OPTIONS) == "זוגי"
        assert resolve_option("שאגי", CARPET_TYPE_OPTIONS) == "שטיח שאגי"

    def test_longer_text_containing_option(self):
        assert resolve_option("כן בטח", YES_NO_OPTIONS) == "כן"

    def test_unmatched_text_kept_trimmed(self):
        assert resolve_option("  משהו אחר ", YES_NO_OPTIONS) == "משהו אחר"

    def test_empty_input_is_empty(self):
        assert resolve_option("   ", YES_NO_OPTIONS) == ""

    def test_result_is_option_or_trimmed_input(self):
        for text in ["1", "2", "3", "7", "יחיד", "abc", " קינג "]:
            result = resolve_option(text, MATTRESS_TYPE_OPTIONS)
            assert result in MATTRESS_TYPE_OPTIONS or result == text.strip()


class TestParseItemChoice:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("1", ItemKind.SOFA),
            ("ספה", ItemKind.SOFA),
            ("2", ItemKind.MATTRESS),
            ("יש לי מזרן", ItemKind.MATTRESS),
            ("3", ItemKind.CARPET),
            ("שטיח", ItemKind.CARPET),
            ("4", MULTIPLE_ITEMS_LABEL),
            ("כמה פריטים", MULTIPLE_ITEMS_LABEL),
            ("הכל יחד", MULTIPLE_ITEMS_LABEL),
        ],
    )
    def test_choices(self, text, expected):
        assert parse_item_choice(text) == expected

    def test_unknown(self):
        assert parse_item_choice("מקרר") is None
        assert parse_item_choice("") is None


class TestParseMultipleItems:
    def test_comma_separated(self):
        assert parse_multiple_items("1,2") == [ItemKind.SOFA, ItemKind.MATTRESS]

    def test_order_and_dedup(self):
        assert parse_multiple_items("3 1 3") == [ItemKind.CARPET, ItemKind.SOFA]

    def test_compact_digits(self):
        assert parse_multiple_items("123") == [ItemKind.SOFA, ItemKind.MATTRESS, ItemKind.CARPET]

    def test_names_in_menu_order(self):
        assert parse_multiple_items("שטיח וספה") == [ItemKind.SOFA, ItemKind.CARPET]

    def test_nothing_recognised(self):
        assert parse_multiple_items("") == []
        assert parse_multiple_items("5,6") == []


class TestPollSelections:
    def test_labels_with_emoji(self):
        assert parse_poll_selections(["מזרן 🛏️", "ספה 🛋️"]) == [ItemKind.MATTRESS, ItemKind.SOFA]

    def test_unknown_labels_dropped(self):
        assert parse_poll_selections(["כיסא"]) == []


class TestSanitize:
    def test_input_trimmed_and_capped(self):
        assert sanitize_input("  abc  ") == "abc"
        assert sanitize_input("x" * 2000, max_length=1000) == "x" * 1000

    def test_input_non_string(self):
        assert sanitize_input(None) == ""

    def test_name_markup_removed(self):
        assert sanitize_name("<b>Dana</b>") == "bDana/b"

    def test_name_empty(self):
        assert sanitize_name("  ") is None
        assert sanitize_name(None) is None


class TestIsSkip:
    @pytest.mark.parametrize("text", ["0", "דלג", "skip", "SKIP", " Skip "])
    def test_skip_tokens(self, text):
        assert is_skip(text) is True

    def test_other_text(self):
        assert is_skip("תמונה") is False
