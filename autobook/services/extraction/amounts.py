
from decimal import Decimal, InvalidOperation

from .rules import ExtractionRules


def extract_amount(line: str, rules: ExtractionRules) -> Decimal | None:
    """
    Return the first (leftmost) amount on a line, or None.

    The currency glyph or sign in front of the number is discarded; it is not
    used to tell income from expense.
    """
    match = rules.amount_re.search(line)
    if not match:
        return None
    try:
        return Decimal(match.group(1))
    except (InvalidOperation, IndexError, TypeError):
        return None
