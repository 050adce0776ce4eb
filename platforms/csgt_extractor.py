"""
Result card extraction for the CSGT violation search.

Each violation on the result page is rendered as a `.violation-card`:

    <div class="violation-card">
      <div class="violation-title">30E - 438.07</div>
      <span class="status-badge">Chưa xử phạt</span>
      <div class="info-item"><span class="label">Loại xe:</span><span class="value">Ô tô</span></div>
      ...
    </div>

Labels are not unique: "Địa chỉ:" (address) appears once for the detecting
unit and once for the resolving unit, so labeled lookups are resolved by
occurrence order.

Extraction only needs the small CardNode interface below, which Playwright's
Locator satisfies, so it can be exercised without a browser.
"""

import re
from typing import List, Optional, Protocol

from core.exceptions import ExtractionError
from core.logger import get_logger
from core.models import ProcessingUnit, VehicleInfo, ViolationDetail, ViolationRecord

logger = get_logger("violation_lookup.csgt_extractor")

TITLE_SELECTOR = ".violation-title"
STATUS_SELECTOR = ".status-badge"
INFO_ITEM_SELECTOR = ".info-item"
LABEL_SELECTOR = ".label"
VALUE_SELECTOR = ".value"

LABEL_VEHICLE_TYPE = "Loại xe:"
LABEL_PLATE_COLOR = "Màu biển:"
LABEL_VIOLATION_TYPE = "Lỗi vi phạm:"
LABEL_TIME = "Thời gian:"
LABEL_LOCATION = "Địa điểm:"
LABEL_DETECTING_UNIT = "Đơn vị phát hiện:"
LABEL_RESOLVING_UNIT = "Đơn vị giải quyết:"
LABEL_ADDRESS = "Địa chỉ:"
LABEL_PHONE = "Điện thoại:"

# Occurrence index of LABEL_ADDRESS within a card
DETECTING_ADDRESS_INDEX = 0
RESOLVING_ADDRESS_INDEX = 1

_PLATE_JUNK = re.compile(r"[^0-9A-Z.\-]")


class CardNode(Protocol):
    """DOM query capability needed by the extractor."""

    async def count(self) -> int: ...

    def nth(self, index: int) -> "CardNode": ...

    def locator(self, selector: str) -> "CardNode": ...

    async def text_content(self) -> Optional[str]: ...


def normalize_plate(text: str) -> str:
    """
    Strip every character outside [0-9A-Z.-] from a card title.

    Example: "30E - 438.07" -> "30E-438.07"
    """
    return _PLATE_JUNK.sub("", text).strip()


async def _text_of(node: CardNode) -> Optional[str]:
    """Text of the first matched node, or None when nothing matches."""
    if await node.count() == 0:
        return None
    return await node.nth(0).text_content()


async def find_labeled_value(card: CardNode, label: str, index: int = 0) -> Optional[str]:
    """
    Find the value of the index-th label/value pair whose label contains `label`.

    Pairs are scanned in document order. Matching is by substring, not
    equality.

    Args:
        card: Result card node
        label: Label text to look for (e.g. "Địa chỉ:")
        index: 0-based occurrence among matching labels

    Returns:
        Trimmed value text, or None if there are fewer than index + 1 matches
        or the DOM could not be read
    """
    try:
        items = card.locator(INFO_ITEM_SELECTOR)
        count = await items.count()

        match_count = 0
        for i in range(count):
            item = items.nth(i)
            label_text = await _text_of(item.locator(LABEL_SELECTOR))
            if label_text is None or label not in label_text:
                continue
            if match_count == index:
                value = await _text_of(item.locator(VALUE_SELECTOR))
                return value.strip() if value is not None else None
            match_count += 1
    except Exception as e:
        logger.debug(f"Labeled lookup failed for {label!r}[{index}]: {e}")

    return None


async def get_info_value(card: CardNode, label: str, index: int = 0) -> str:
    """Same as find_labeled_value(), with a missing value rendered as ""."""
    value = await find_labeled_value(card, label, index)
    return value if value is not None else ""


async def parse_card(card: CardNode) -> ViolationRecord:
    """
    Map one result card to a ViolationRecord.

    Missing nodes become None fields; they are not errors.

    Raises:
        ExtractionError: If the card cannot be read at all
    """
    try:
        title = await _text_of(card.locator(TITLE_SELECTOR))
        status = await _text_of(card.locator(STATUS_SELECTOR))

        return ViolationRecord(
            plate_number=normalize_plate(title) if title is not None else None,
            status=status.strip() if status is not None else None,
            vehicle_info=VehicleInfo(
                vehicle_type=await find_labeled_value(card, LABEL_VEHICLE_TYPE),
                plate_color=await find_labeled_value(card, LABEL_PLATE_COLOR),
            ),
            violation_detail=ViolationDetail(
                violation_type=await find_labeled_value(card, LABEL_VIOLATION_TYPE),
                time=await find_labeled_value(card, LABEL_TIME),
                location=await find_labeled_value(card, LABEL_LOCATION),
            ),
            processing_unit=ProcessingUnit(
                detecting_unit=await find_labeled_value(card, LABEL_DETECTING_UNIT),
                detecting_address=await find_labeled_value(
                    card, LABEL_ADDRESS, DETECTING_ADDRESS_INDEX
                ),
                resolving_unit=await find_labeled_value(card, LABEL_RESOLVING_UNIT),
                resolving_address=await find_labeled_value(
                    card, LABEL_ADDRESS, RESOLVING_ADDRESS_INDEX
                ),
                phone=await find_labeled_value(card, LABEL_PHONE),
            ),
        )
    except Exception as e:
        raise ExtractionError(f"Failed to extract violation card: {e}") from e


async def extract_violation(card: CardNode) -> Optional[ViolationRecord]:
    """Parse one card, returning None (and logging) if it cannot be parsed."""
    try:
        return await parse_card(card)
    except ExtractionError as e:
        logger.error(str(e))
        return None


async def extract_all_violations(cards: CardNode) -> List[ViolationRecord]:
    """
    Parse every card matched by `cards`.

    A card that fails to parse contributes nothing; the others are kept.
    """
    count = await cards.count()
    violations: List[ViolationRecord] = []

    for i in range(count):
        record = await extract_violation(cards.nth(i))
        if record is not None:
            violations.append(record)

    logger.debug(f"Extracted {len(violations)}/{count} violation cards")
    return violations
