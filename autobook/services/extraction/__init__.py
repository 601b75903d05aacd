from .rules import ExtractionRules, load_rules
from .parser import BillTextParser, create_bill_parser, parse_bill_text

__all__ = [
    "BillTextParser",
    "ExtractionRules",
    "create_bill_parser",
    "load_rules",
    "parse_bill_text",
]
