"""
Line normalisation and classification for OCR text.
"""

from .rules import ExtractionRules


def normalize_lines(text: str, rules: ExtractionRules) -> list[str]:
    """Split OCR text into trimmed lines, dropping those shorter than min_line_length"""
    if not text:
        return []
    lines = (line.strip() for line in text.replace("\r\n", "\n").split("\n"))
    return [line for line in lines if len(line) >= rules.min_line_length]


def is_anchor(line: str, rules: ExtractionRules) -> bool:
    """True if the line contains a date or time expression"""
    return rules.anchor_re.search(line) is not None


def is_noise(line: str, rules: ExtractionRules) -> bool:
    """
    True if the line is UI chrome rather than merchant or amount content.

    A long line mentioning the transaction keyword is a transaction
    description, not the bare label, so it is kept.
    """
    if rules.transaction_keyword in line and len(line) > rules.transaction_min_length:
        return False
    if rules.bare_number_re.fullmatch(line):
        return True
    return any(term in line for term in rules.noise_terms)


def is_amount_distractor(line: str, rules: ExtractionRules) -> bool:
    """True if an amount on this line is an original price or a discount"""
    return any(term in line for term in rules.distractor_terms)
