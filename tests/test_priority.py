"""
Tests for effective priority resolution and auto-categorization.
"""

import pytest
from datetime import date

from budgetwise.calculations import PriorityResolver, effective_priority
from budgetwise.categorization import InvalidRuleError, TransactionCategorizer, compile_rule
from budgetwise.config import CategorizationSettings
from budgetwise.models.ledger import (
    Category,
    CategoryRule,
    CustomBudget,
    EffectivePriority,
    FinancialPriority,
    Transaction,
    TransactionType,
)


GROCERIES = Category(id="groceries", name="Groceries", priority=FinancialPriority.NEEDS)
TRANSPORT = Category(id="transport", name="Transport", priority=FinancialPriority.NEEDS)
UTILITIES = Category(id="utilities", name="Utilities", priority=FinancialPriority.NEEDS)
DINING = Category(id="dining", name="Dining Out", priority=FinancialPriority.WANTS)
PETS = Category(id="pets", name="Pets")

TRIP = CustomBudget(
    id="trip",
    name="Lisbon",
    allocated_amount=800,
    start_date=date(2024, 6, 1),
    end_date=date(2024, 6, 10),
)
MIRROR = CustomBudget(
    id="mirror",
    name="Needs mirror",
    start_date=date(2024, 6, 1),
    end_date=date(2024, 6, 30),
    is_system_budget=True,
)


def expense(**kwargs) -> Transaction:
    values = {
        "title": "Supermarket",
        "type": TransactionType.EXPENSE,
        "amount": 50,
        "date": date(2024, 6, 3),
    }
    values.update(kwargs)
    return Transaction(**values)


class TestPriorityResolver:
    """Tests for the priority hierarchy."""

    def test_custom_budget_overrides_needs_category(self):
        """Test a needs expense inside a trip budget counts as wants."""
        tx = expense(category_id="groceries", custom_budget_id="trip")
        assert effective_priority(tx, [GROCERIES], [TRIP]) == EffectivePriority.WANTS

    def test_clearing_budget_restores_category_priority(self):
        """Test the same expense without the budget link is needs again."""
        tx = expense(category_id="groceries")
        assert effective_priority(tx, [GROCERIES], [TRIP]) == EffectivePriority.NEEDS

    def test_system_mirror_is_not_a_custom_budget(self):
        """Test a link to a system budget mirror does not force wants."""
        resolver = PriorityResolver([GROCERIES], [TRIP, MIRROR])
        tx = expense(category_id="groceries", custom_budget_id="mirror")

        assert resolver.is_actual_custom_budget("mirror") is False
        assert resolver.is_actual_custom_budget("trip") is True
        assert resolver.effective_priority(tx) == EffectivePriority.NEEDS

    def test_unknown_budget_is_not_a_custom_budget(self):
        """Test a dangling budget id falls through to the category."""
        tx = expense(category_id="groceries", custom_budget_id="deleted")
        assert effective_priority(tx, [GROCERIES], [TRIP]) == EffectivePriority.NEEDS

    def test_transaction_priority_beats_category(self):
        """Test an explicit financial_priority wins over the category's."""
        tx = expense(category_id="groceries", financial_priority=FinancialPriority.SAVINGS)
        assert effective_priority(tx, [GROCERIES]) == EffectivePriority.SAVINGS

    def test_income_is_income(self):
        """Test income always resolves to income."""
        tx = expense(type=TransactionType.INCOME, custom_budget_id="trip")
        assert effective_priority(tx, [], [TRIP]) == EffectivePriority.INCOME

    def test_uncategorized(self):
        """Test missing or priority-less categories are uncategorized."""
        assert effective_priority(expense()) == EffectivePriority.UNCATEGORIZED
        assert effective_priority(expense(category_id="pets"), [PETS]) == (
            EffectivePriority.UNCATEGORIZED
        )


class TestTransactionCategorizer:
    """Tests for the categorization tiers."""

    def _categorizer(self) -> TransactionCategorizer:
        return TransactionCategorizer(CategorizationSettings())

    def test_user_rule_wins(self):
        """Test a user rule beats the builtin keyword table."""
        rule = CategoryRule(category_id="dining", keywords=["uber"])
        result = self._categorizer().categorize(
            "UBER EATS 1234",
            [rule],
            [TRANSPORT, DINING],
        )
        assert result.category_id == "dining"
        assert result.matched_by == "user_rule"
        assert result.priority == FinancialPriority.WANTS

    def test_rules_evaluated_by_priority(self):
        """Test lower priority numbers are evaluated first."""
        late = CategoryRule(category_id="groceries", keywords=["TESCO"], priority=5)
        early = CategoryRule(category_id="dining", regex_pattern=r"tesco\s+cafe", priority=1)
        result = self._categorizer().categorize(
            "Tesco Cafe Leeds",
            [late, early],
            [GROCERIES, DINING],
        )
        assert result.category_id == "dining"

    def test_rule_for_missing_category_skipped(self):
        """Test a rule pointing at a deleted category falls through."""
        rule = CategoryRule(category_id="gone", keywords=["WALMART"])
        result = self._categorizer().categorize("WALMART #44", [rule], [GROCERIES])
        assert result.category_id == "groceries"
        assert result.matched_by == "keyword"

    def test_builtin_keyword_needs_user_category(self):
        """Test builtin keywords only match categories the user owns."""
        result = self._categorizer().categorize("NETFLIX.COM", [], [GROCERIES])
        assert result.category_id is None

    def test_fallback_pattern(self):
        """Test the utilities fallback pattern."""
        result = self._categorizer().categorize("City Water Board", [], [UTILITIES])
        assert result.category_id == "utilities"
        assert result.matched_by == "pattern"

    def test_category_name_match(self):
        """Test a category name contained in the description."""
        result = self._categorizer().categorize("Pets at home", [], [PETS])
        assert result.category_id == "pets"
        assert result.matched_by == "category_name"
        assert result.priority == FinancialPriority.WANTS

    def test_no_match_defaults(self):
        """Test the uncategorized default."""
        result = self._categorizer().categorize("zzz", [], [GROCERIES])
        assert result.category_id is None
        assert result.category_name == "Uncategorized"
        assert result.priority == FinancialPriority.WANTS
        assert result.matched_by is None

    def test_invalid_regex_is_skipped(self):
        """Test a broken user regex is skipped, not raised."""
        broken = CategoryRule(category_id="dining", regex_pattern="([unclosed", priority=0)
        result = self._categorizer().categorize("KROGER 12", [broken], [GROCERIES, DINING])
        assert result.category_id == "groceries"

    def test_compile_rule_raises_for_invalid_regex(self):
        """Test compile_rule rejects bad patterns at save time."""
        broken = CategoryRule(category_id="dining", regex_pattern="([unclosed")
        with pytest.raises(InvalidRuleError) as exc_info:
            compile_rule(broken)
        assert exc_info.value.rule_id == broken.id

    def test_categorize_many(self):
        """Test a batch keeps existing categories and fills the rest."""
        batch = [
            expense(title="KROGER 12"),
            expense(title="mystery", category_id="pets"),
            expense(title="zzz"),
        ]
        results = self._categorizer().categorize_many(batch, [], [GROCERIES, PETS])

        assert [t.category_id for t in results] == ["groceries", "pets", None]
        assert batch[0].category_id is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
