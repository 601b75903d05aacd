"""
Rule-based bill text parser.

Turns the raw OCR text of one payment screenshot into zero or more bills.
A screenshot may show a list of transactions, so the text is cut into blocks
at every date/time line and each block is parsed on its own.

The parser is a pure function of (text, rules): it keeps no state between
calls and is safe to run concurrently for different images.
"""

from loguru import logger

from ...models.bill import BillRecord
from .blocks import segment_blocks
from .extractor import extract_block
from .lines import normalize_lines
from .rules import ExtractionRules, load_rules


class BillTextParser:
    """Parses OCR text into bills using a fixed ExtractionRules value"""

    def __init__(self, rules: ExtractionRules = None):
        self.rules = rules or ExtractionRules()

    def parse(self, text: str) -> list[BillRecord]:
        """
        Parse raw OCR text.

        Never raises: text without anchors, blocks without amounts and any
        block that fails unexpectedly are skipped, so unreadable input gives
        an empty list.
        """
        if not isinstance(text, str):
            return []

        blocks = segment_blocks(normalize_lines(text, self.rules), self.rules)

        bills = []
        for block in blocks:
            try:
                bill = extract_block(block, self.rules)
            except Exception as e:
                logger.warning(f"Skipping unparseable block: {type(e).__name__}")
                logger.debug("Unparseable block", anchor=block.anchor, error=str(e))
                continue
            if bill is not None:
                bills.append(bill)

        logger.debug("Parsed bill text", blocks=len(blocks), bills=len(bills))
        return bills


def parse_bill_text(text: str, rules: ExtractionRules = None) -> list[BillRecord]:
    return BillTextParser(rules).parse(text)


def create_bill_parser(rules_path: str = None) -> BillTextParser:
    """
    Factory function to create the parser from configuration.

    Uses EXTRACTION_RULES_PATH when no path is given; bundled defaults when
    neither is set.
    """
    from ...core.config import settings

    if rules_path is None:
        rules_path = settings.extraction_rules_path

    return BillTextParser(load_rules(rules_path))
