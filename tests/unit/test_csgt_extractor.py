"""
Unit tests for CSGT result card extraction.

Tests cover:
- Plate normalization
- Labeled-field lookup with repeated labels
- Card parsing with missing nodes
- Dropping malformed cards
"""

import pytest

from core.exceptions import ExtractionError
from fake_browser import FakeElement, FakeLocator, make_broken_card, make_card, make_sample_card
from platforms.csgt_extractor import (
    extract_all_violations,
    extract_violation,
    find_labeled_value,
    get_info_value,
    normalize_plate,
    parse_card,
)


def card_locator(card: FakeElement) -> FakeLocator:
    return FakeLocator([card])


class TestNormalizePlate:
    """Test plate normalization."""

    def test_strips_spaces(self) -> None:
        assert normalize_plate("30E - 438.07") == "30E-438.07"

    def test_keeps_only_digits_uppercase_dots_and_dashes(self) -> None:
        assert normalize_plate("\n 51f F-123.45 (new)") == "51F-123.45"

    def test_empty(self) -> None:
        assert normalize_plate("") == ""


class TestLabeledFieldLookup:
    """Test find_labeled_value / get_info_value."""

    @pytest.mark.asyncio
    async def test_repeated_label_by_occurrence(self) -> None:
        card = card_locator(make_card(pairs=[("Địa chỉ:", "A"), ("Khác:", "x"), ("Địa chỉ:", "B")]))

        assert await get_info_value(card, "Địa chỉ:", 0) == "A"
        assert await get_info_value(card, "Địa chỉ:", 1) == "B"
        assert await get_info_value(card, "Địa chỉ:", 2) == ""

    @pytest.mark.asyncio
    async def test_default_index_is_first_match(self) -> None:
        card = card_locator(make_card(pairs=[("Địa chỉ:", "A"), ("Địa chỉ:", "B")]))
        assert await get_info_value(card, "Địa chỉ:") == "A"

    @pytest.mark.asyncio
    async def test_label_matches_by_substring(self) -> None:
        card = card_locator(make_card(pairs=[("  Thời gian: ", "10:24, 29/12/2025")]))
        assert await get_info_value(card, "Thời gian:") == "10:24, 29/12/2025"

    @pytest.mark.asyncio
    async def test_value_is_trimmed(self) -> None:
        card = card_locator(make_card(pairs=[("Loại xe:", "  Ô tô \n")]))
        assert await get_info_value(card, "Loại xe:") == "Ô tô"

    @pytest.mark.asyncio
    async def test_no_match(self) -> None:
        card = card_locator(make_card(pairs=[("Loại xe:", "Ô tô")]))

        assert await find_labeled_value(card, "Điện thoại:") is None
        assert await get_info_value(card, "Điện thoại:") == ""

    @pytest.mark.asyncio
    async def test_item_without_label_is_skipped(self) -> None:
        card = card_locator(make_card(pairs=[(None, "orphan"), ("Loại xe:", "Xe máy")]))
        assert await get_info_value(card, "Loại xe:") == "Xe máy"

    @pytest.mark.asyncio
    async def test_matching_item_without_value(self) -> None:
        card = card_locator(make_card(pairs=[("Điện thoại:", None)]))
        assert await find_labeled_value(card, "Điện thoại:") is None

    @pytest.mark.asyncio
    async def test_dom_error_yields_empty_value(self) -> None:
        broken_item = FakeElement(
            children={
                ".label": [FakeElement("Loại xe:")],
                ".value": [FakeElement("Ô tô", detached=True)],
            }
        )
        card = card_locator(FakeElement(children={".info-item": [broken_item]}))

        assert await find_labeled_value(card, "Loại xe:") is None
        assert await get_info_value(card, "Loại xe:") == ""


class TestParseCard:
    """Test parse_card / extract_violation."""

    @pytest.mark.asyncio
    async def test_full_card(self) -> None:
        record = await parse_card(card_locator(make_sample_card()))

        assert record.plate_number == "30E-438.07"
        assert record.status == "Chưa xử phạt"
        assert record.vehicle_info.vehicle_type == "Ô tô"
        assert record.vehicle_info.plate_color == "Nền màu trắng, chữ và số màu đen"
        assert record.violation_detail.time == "10:24, 29/12/2025"
        assert record.violation_detail.violation_type.startswith("16824.6.9.b.01")
        assert record.violation_detail.location.startswith("Tràng Tiền")
        assert record.processing_unit.detecting_unit.startswith("Đội CHGT")
        assert record.processing_unit.detecting_address == "Số 54 Trần Hưng Đạo, Phường Cửa Nam, Hà Nội"
        assert record.processing_unit.resolving_unit.startswith("Đội CSGT ĐB số 6")
        assert record.processing_unit.resolving_address == "số 2 Phạm Hùng, Phường Từ Liêm, Hà Nội"
        assert record.processing_unit.phone == "02437683373"

    @pytest.mark.asyncio
    async def test_missing_nodes_are_absent_not_errors(self) -> None:
        record = await parse_card(card_locator(make_card(title=None, status=None, pairs=[])))

        assert record.plate_number is None
        assert record.status is None
        assert record.processing_unit.phone is None
        assert record.to_dict()["plateNumber"] == ""
        assert "phone" not in record.to_dict()["processingUnit"]

    @pytest.mark.asyncio
    async def test_unreadable_card_raises_extraction_error(self) -> None:
        with pytest.raises(ExtractionError, match="not attached"):
            await parse_card(card_locator(make_broken_card()))

    @pytest.mark.asyncio
    async def test_extract_violation_drops_unreadable_card(self) -> None:
        assert await extract_violation(card_locator(make_broken_card())) is None


class TestExtractAll:
    """Test extract_all_violations."""

    @pytest.mark.asyncio
    async def test_malformed_card_is_dropped(self) -> None:
        good = make_sample_card()
        other = make_card(title="29A - 987.65", pairs=[("Loại xe:", "Xe máy")])
        bad = make_broken_card()

        records = await extract_all_violations(FakeLocator([good, bad, other]))

        assert [record.plate_number for record in records] == ["30E-438.07", "29A-987.65"]

    @pytest.mark.asyncio
    async def test_no_cards(self) -> None:
        assert await extract_all_violations(FakeLocator([])) == []
