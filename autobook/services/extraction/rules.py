"""
Extraction rules: the vocabulary and patterns the bill parser works from.

Payment-app wording differs between providers and changes over time, so the
denylists and patterns live here as data. Rules are loaded once (defaults or a
JSON/YAML file) into an immutable value and passed into the parser.
"""

import json
import re
from functools import lru_cache
from pathlib import Path

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ...core.errors import RulesConfigError
from ...models.bill import RULE_TYPE, UNKNOWN_MERCHANT

DEFAULT_NOISE_TERMS = (
    "支付", "银行", "详情", "成功", "账单", "退款", "入账",
    "报销", "开票", "查看", "更多", "服务", "余额",
    "当前状态", "交易", "商品", "商户", "全称",
    "中国移动", "中国电信", "中国联通",
)

DEFAULT_DISTRACTOR_TERMS = ("原价", "优惠", "已省", "折扣", "划线", "立减", "抵扣")

DEFAULT_ANCHOR_PATTERNS = (
    r"\d{1,2}月\d{1,2}日",   # 10月25日
    r"\d{4}-\d{2}-\d{2}",    # 2023-10-25
    r"\d{1,2}:\d{2}",        # 14:30
    r"昨天",
    r"今天",
)


class ExtractionRules(BaseModel):
    """
    Immutable rule set for the bill text parser.

    fraction_digits is a hard assumption of the amount tokenizer: an amount is
    only recognised when written with exactly this many decimals (25.50, not 25
    or 25.5). amount_pattern, when given, must expose the number as group 1.
    """
    model_config = ConfigDict(frozen=True)

    noise_terms: tuple[str, ...] = DEFAULT_NOISE_TERMS
    distractor_terms: tuple[str, ...] = DEFAULT_DISTRACTOR_TERMS
    anchor_patterns: tuple[str, ...] = DEFAULT_ANCHOR_PATTERNS
    fraction_digits: int = 2
    amount_pattern: str | None = None
    bare_number_pattern: str = r"[0-9.\-+: ]+"
    transaction_keyword: str = "交易"
    transaction_min_length: int = 6
    min_line_length: int = 2
    unknown_merchant: str = UNKNOWN_MERCHANT
    rule_type: str = RULE_TYPE

    @field_validator("anchor_patterns")
    @classmethod
    def _check_anchor_patterns(cls, patterns: tuple[str, ...]) -> tuple[str, ...]:
        if not patterns:
            raise ValueError("at least one anchor pattern is required")
        for pattern in patterns:
            _compile(pattern)
        return patterns

    @field_validator("amount_pattern", "bare_number_pattern")
    @classmethod
    def _check_pattern(cls, pattern: str | None) -> str | None:
        if pattern is not None:
            _compile(pattern)
        return pattern

    @field_validator("fraction_digits")
    @classmethod
    def _check_fraction_digits(cls, digits: int) -> int:
        if digits < 1:
            raise ValueError("fraction_digits must be positive")
        return digits

    # Compiled from the current field values on every access (model_copy safe)
    @property
    def amount_re(self) -> re.Pattern:
        pattern = self.amount_pattern or (
            r"(?:￥|¥|[+\-])?\s*(\d+\.\d{%d})" % self.fraction_digits
        )
        return _compile_cached(pattern)

    @property
    def anchor_re(self) -> re.Pattern:
        return _compile_cached("|".join(f"(?:{p})" for p in self.anchor_patterns))

    @property
    def bare_number_re(self) -> re.Pattern:
        return _compile_cached(self.bare_number_pattern)

    @classmethod
    def from_file(cls, path: str | Path) -> "ExtractionRules":
        """
        Load rules from a JSON or YAML file. Keys left out keep their defaults.

        Raises:
            RulesConfigError: file missing, unreadable, or rules invalid
        """
        path = Path(path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise RulesConfigError(f"Cannot read extraction rules {path}: {e}") from e

        try:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(raw) or {}
            else:
                data = json.loads(raw)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise RulesConfigError(f"Malformed extraction rules {path}: {e}") from e

        if not isinstance(data, dict):
            raise RulesConfigError(f"Extraction rules {path} must be a mapping")

        try:
            rules = cls.model_validate(data)
        except ValidationError as e:
            raise RulesConfigError(f"Invalid extraction rules {path}: {e}") from e

        logger.info(
            "Loaded extraction rules",
            path=str(path),
            noise_terms=len(rules.noise_terms),
            distractor_terms=len(rules.distractor_terms),
            anchor_patterns=len(rules.anchor_patterns),
        )
        return rules


def _compile(pattern: str) -> re.Pattern:
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ValueError(f"invalid pattern {pattern!r}: {e}") from e


@lru_cache(maxsize=128)
def _compile_cached(pattern: str) -> re.Pattern:
    return re.compile(pattern)


def load_rules(path: str | None = None) -> ExtractionRules:
    """Bundled defaults, or the rules file at path when one is configured"""
    if path:
        return ExtractionRules.from_file(path)
    return ExtractionRules()
