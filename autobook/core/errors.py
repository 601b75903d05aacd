"""
Exception types raised outside the extraction engine.

The engine itself never raises for bad OCR text; these cover configuration
problems and failures of the external capabilities (OCR, LLM).
"""


class AutobookError(Exception):
    """Base class for all autobook errors"""


class RulesConfigError(AutobookError):
    """Extraction rules file is missing, unreadable or contains an invalid pattern"""


class ImageDecodeError(AutobookError):
    """Image could not be read or is empty"""


class OcrError(AutobookError):
    """OCR engine failed to produce text"""


class LLMError(AutobookError):
    """LLM endpoint returned an unusable response"""
