
from decimal import Decimal

from loguru import logger

from ...models.bill import BillRecord, TransactionBlock
from .amounts import extract_amount
from .lines import is_amount_distractor, is_noise
from .rules import ExtractionRules


def resolve_merchant(block: TransactionBlock, rules: ExtractionRules) -> tuple[int, str]:
    """
    Pick the merchant line: the first content line, or the next one if the
    first is noise. Only one step of fallback; after that the merchant is
    unknown.

    Returns:
        (index of the resolved merchant line, merchant name)
    """
    index = 1
    merchant = block.lines[index]

    if is_noise(merchant, rules) and len(block) > 2:
        index = 2
        merchant = block.lines[index]

    if is_noise(merchant, rules):
        merchant = rules.unknown_merchant

    return index, merchant


def resolve_amount(block: TransactionBlock, start: int, rules: ExtractionRules) -> Decimal | None:
    """
    First positive amount below the merchant line that is not a discount or
    original price. The charged amount sits closer to the merchant than the
    struck-through price, so the scan stops at the first clean match.
    """
    for line in block.lines[start:]:
        amount = extract_amount(line, rules)
        if amount is None or amount <= 0:
            continue
        if is_amount_distractor(line, rules):
            continue
        return amount
    return None


def extract_block(block: TransactionBlock, rules: ExtractionRules) -> BillRecord | None:
    """Turn one transaction block into a bill, or None when it has no usable amount"""
    if len(block) < 2:
        return None

    index, merchant = resolve_merchant(block, rules)
    amount = resolve_amount(block, index + 1, rules)

    if amount is None:
        logger.debug("Dropping block without amount", anchor=block.anchor, merchant=merchant)
        return None

    return BillRecord(
        amount=amount,
        merchant=merchant,
        date_label=block.anchor,
        type=rules.rule_type,
        source_is_ai=False,
    )
