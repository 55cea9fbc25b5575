"""
Transaction Categorization

Suggests a category for a transaction description, e.g. for bank
statement imports.

Tiers, first match wins:
1. User rules, lowest priority number first
2. Builtin merchant keywords
3. Builtin fallback patterns (utilities, insurance, connectivity, health)
4. A category whose name appears in the description

DESIGN DECISION: Builtin tiers map to category NAMES and only match
when the user owns a category with that name. The engine never
invents categories.

IMPORTANT: A broken user regex never breaks an import. The rule is
logged and skipped.
"""

import re
from typing import Iterable, Optional

import structlog

from budgetwise.config import CategorizationSettings, get_settings
from budgetwise.models.ledger import (
    Category,
    CategoryRule,
    FinancialPriority,
    Transaction,
    TransactionPatch,
    apply_patch,
)
from budgetwise.models.stats import CategorizationResult


logger = structlog.get_logger(__name__)


# Merchant keyword -> category name. Order matters: first hit wins.
BUILTIN_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("AMAZON", "Shopping"),
    ("UBER", "Transport"),
    ("LYFT", "Transport"),
    ("NETFLIX", "Subscriptions"),
    ("SPOTIFY", "Subscriptions"),
    ("APPLE", "Subscriptions"),
    ("STARBUCKS", "Dining Out"),
    ("MCDONALD", "Dining Out"),
    ("BURGER KING", "Dining Out"),
    ("WALMART", "Groceries"),
    ("TARGET", "Shopping"),
    ("KROGER", "Groceries"),
    ("WHOLE FOODS", "Groceries"),
    ("SHELL", "Transport"),
    ("BP", "Transport"),
    ("EXXON", "Transport"),
    ("CHEVRON", "Transport"),
    ("AIRBNB", "Travel"),
    ("HOTEL", "Travel"),
    ("AIRLINES", "Travel"),
)

FALLBACK_PATTERNS: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"(POWER|WATER|GAS|ELECTRIC|UTILITY)", re.IGNORECASE), "Utilities"),
    (re.compile(r"(INSURANCE|GEICO|PROGRESSIVE|STATE FARM)", re.IGNORECASE), "Insurance"),
    (
        re.compile(r"(INTERNET|WIFI|CABLE|COMCAST|AT&T|VERIZON|T-MOBILE)", re.IGNORECASE),
        "Connectivity",
    ),
    (
        re.compile(r"(HOSPITAL|DOCTOR|CLINIC|DENTIST|PHARMACY|CVS|WALGREENS)", re.IGNORECASE),
        "Health",
    ),
)


class CategorizationError(Exception):
    """Base exception for categorization."""
    pass


class InvalidRuleError(CategorizationError):
    """A user rule's regular expression does not compile."""

    def __init__(self, rule_id: str, pattern: str, reason: str):
        self.rule_id = rule_id
        self.pattern = pattern
        super().__init__(f"Invalid pattern in rule {rule_id}: {pattern!r} ({reason})")


def compile_rule(rule: CategoryRule) -> Optional[re.Pattern]:
    """
    Compile a rule's regular expression (case-insensitive).

    Call at save time to reject bad rules early.

    Returns:
        The compiled pattern, or None when the rule has none

    Raises:
        InvalidRuleError: If the pattern does not compile
    """
    if not rule.regex_pattern:
        return None
    try:
        return re.compile(rule.regex_pattern, re.IGNORECASE)
    except re.error as e:
        raise InvalidRuleError(rule.id, rule.regex_pattern, str(e)) from e


class TransactionCategorizer:
    """
    Rule-based categorizer.

    Usage:
        categorizer = TransactionCategorizer()
        result = categorizer.categorize("UBER *TRIP", rules, categories)
        result.category_name  # "Transport", if the user has that category
    """

    def __init__(self, settings: Optional[CategorizationSettings] = None):
        self._settings = settings or get_settings().categorization

    def _result_for(self, category: Category, matched_by: str) -> CategorizationResult:
        return CategorizationResult(
            category_id=category.id,
            category_name=category.name,
            priority=category.priority or FinancialPriority(self._settings.default_priority),
            matched_by=matched_by,
        )

    def _rule_matches(self, rule: CategoryRule, description: str) -> bool:
        """Keyword substring or regex match. Raises InvalidRuleError on a bad regex."""
        if any(kw.upper() in description for kw in rule.keywords):
            return True
        pattern = compile_rule(rule)
        return pattern is not None and pattern.search(description) is not None

    def categorize(
        self,
        text: str,
        user_rules: Iterable[CategoryRule] = (),
        categories: Iterable[Category] = (),
    ) -> CategorizationResult:
        """
        Suggest a category for a description.

        Returns:
            The first tier's match, or an uncategorized result with
            the default priority when nothing matches
        """
        description = (text or "").upper()
        categories = list(categories)
        by_id = {c.id: c for c in categories}
        by_name = {c.name.upper(): c for c in categories}

        # 1. User rules
        for rule in sorted(user_rules, key=lambda r: r.priority):
            try:
                matched = self._rule_matches(rule, description)
            except InvalidRuleError as e:
                logger.warning("category_rule_skipped", rule_id=rule.id, error=str(e))
                continue

            if matched:
                category = by_id.get(rule.category_id)
                if category is not None:
                    return self._result_for(category, "user_rule")

        # 2. Builtin merchant keywords
        for keyword, category_name in BUILTIN_KEYWORDS:
            if keyword in description:
                category = by_name.get(category_name.upper())
                if category is not None:
                    return self._result_for(category, "keyword")

        # 3. Builtin fallback patterns
        for pattern, category_name in FALLBACK_PATTERNS:
            if pattern.search(description):
                category = by_name.get(category_name.upper())
                if category is not None:
                    return self._result_for(category, "pattern")

        # 4. Category name contained in the description
        for category in categories:
            if category.name.upper() in description:
                return self._result_for(category, "category_name")

        return CategorizationResult(
            category_id=None,
            category_name=self._settings.uncategorized_label,
            priority=FinancialPriority(self._settings.default_priority),
        )

    def categorize_many(
        self,
        transactions: Iterable[Transaction],
        user_rules: Iterable[CategoryRule] = (),
        categories: Iterable[Category] = (),
    ) -> list[Transaction]:
        """
        Assign categories to the uncategorized transactions of a batch.

        Returns the batch in order. Transactions that already had a
        category, or that matched nothing, are returned unchanged;
        the others are re-validated copies with category_id set.
        """
        user_rules = list(user_rules)
        categories = list(categories)
        results = []
        assigned = 0

        for transaction in transactions:
            if transaction.category_id is not None:
                results.append(transaction)
                continue

            suggestion = self.categorize(transaction.title, user_rules, categories)
            if suggestion.category_id is None:
                results.append(transaction)
                continue

            results.append(apply_patch(
                transaction,
                TransactionPatch(category_id=suggestion.category_id),
            ))
            assigned += 1

        logger.info("transactions_categorized", total=len(results), assigned=assigned)
        return results
