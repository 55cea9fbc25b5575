"""Transaction categorization package."""

from budgetwise.categorization.categorizer import (
    BUILTIN_KEYWORDS,
    FALLBACK_PATTERNS,
    CategorizationError,
    InvalidRuleError,
    TransactionCategorizer,
    compile_rule,
)

__all__ = [
    "BUILTIN_KEYWORDS",
    "FALLBACK_PATTERNS",
    "CategorizationError",
    "InvalidRuleError",
    "TransactionCategorizer",
    "compile_rule",
]
