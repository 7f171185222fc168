"""
Tests for status normalization, ID extraction, validators and price helpers.
"""
import pytest

from printy_admin.flows.normalizers import (
    STATUS_OPTIONS,
    extract_ids,
    extract_numeric_value,
    format_price_input,
    is_end_chat,
    is_valid_category,
    is_valid_price_input,
    is_valid_service_name,
    is_valid_ticket_reply,
    normalize_status,
)


class TestNormalizeStatus:
    """Free text onto canonical status labels."""

    @pytest.mark.parametrize(
        "kind,label",
        [(kind, label) for kind, labels in STATUS_OPTIONS.items() for label in labels],
    )
    def test_canonical_labels_round_trip(self, kind, label):
        assert normalize_status(kind, label) == label
        assert normalize_status(kind, label.lower()) == label
        assert normalize_status(kind, label.upper()) == label

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("pend", "Pending"),
            ("processing now", "Processing"),
            ("awaiting", "Awaiting Payment"),
            ("payment", "Awaiting Payment"),
            ("pickup", "For Delivery/Pick-up"),
            ("delivered", "For Delivery/Pick-up"),
            ("complete", "Completed"),
            ("cancel it", "Cancelled"),
        ],
    )
    def test_order_prefixes(self, raw, expected):
        assert normalize_status("order", raw) == expected

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("activate", "Active"),
            ("inactive", "Inactive"),
            ("deactivate", "Inactive"),
            ("disable", "Inactive"),
            ("retire", "Retired"),
            ("archive", "Retired"),
        ],
    )
    def test_service_prefixes(self, raw, expected):
        assert normalize_status("service", raw) == expected

    def test_ticket_prefixes(self):
        assert normalize_status("ticket", "opened") == "Open"
        assert normalize_status("ticket", "close") == "Closed"
        assert normalize_status("ticket", "PENDING") == "Pending"

    def test_unknown_or_empty_input_is_none(self):
        assert normalize_status("order", "shipped") is None
        assert normalize_status("service", "") is None
        assert normalize_status("ticket", "   ") is None

    def test_order_label_is_not_a_ticket_status(self):
        assert normalize_status("ticket", "Completed") is None


class TestExtractIds:
    """Domain ID patterns inside free text."""

    def test_order_ids_in_order_uppercased(self):
        assert extract_ids("order", "move ord-12 and ORD-7 please") == ["ORD-12", "ORD-7"]

    def test_repeats_are_kept(self):
        assert extract_ids("order", "ORD-1 then ORD-1 again") == ["ORD-1", "ORD-1"]

    def test_ticket_and_service_patterns(self):
        assert extract_ids("ticket", "reply to TCK-3055") == ["TCK-3055"]
        assert extract_ids("service", "edit srv-cp001 now") == ["SRV-CP001"]

    def test_other_domains_do_not_match(self):
        assert extract_ids("ticket", "ORD-1 and SRV-CP001") == []


class TestValidators:
    def test_end_chat_is_case_insensitive(self):
        assert is_end_chat("End Chat")
        assert is_end_chat("  END ")
        assert not is_end_chat("the end of it")

    def test_service_name_length(self):
        assert is_valid_service_name("Flyers")
        assert not is_valid_service_name("   ")
        assert not is_valid_service_name("x" * 101)

    def test_category_length(self):
        assert is_valid_category("Packaging")
        assert not is_valid_category("x" * 51)

    def test_ticket_reply_length(self):
        assert is_valid_ticket_reply("Thanks, we are on it.")
        assert not is_valid_ticket_reply("")
        assert not is_valid_ticket_reply("x" * 1001)


class TestPriceHelpers:
    """Peso formatting of typed quote amounts."""

    @pytest.mark.parametrize("raw", ["3800", "3,800", "₱3,800", " ₱ 3800 "])
    def test_common_inputs_format_the_same(self, raw):
        assert format_price_input(raw) == "₱3,800"

    def test_decimals_without_trailing_zeros(self):
        assert format_price_input("1250.50") == "₱1,250.5"
        assert format_price_input("99.125") == "₱99.125"

    def test_text_without_number_is_returned_unchanged(self):
        assert format_price_input("free") == "free"
        assert not is_valid_price_input("free")

    def test_valid_price_input(self):
        assert is_valid_price_input("₱15,000")

    def test_extract_numeric_value(self):
        assert extract_numeric_value("₱15,000") == 15000.0
        assert extract_numeric_value("TBD") == 0.0
