"""
Category Registry

A fixed, ordered catalog of spending and income categories.
Loaded once at import and never mutated; transactions reference
categories by id.
"""

from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict

from smart_ledger.models.ledger import TransactionType


class Category(BaseModel):
    """A classification tag with its display metadata."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    icon: str
    color: str
    type: TransactionType


OTHER_EXPENSE_ID = "other_exp"
OTHER_INCOME_ID = "other_inc"

CATEGORIES: tuple[Category, ...] = (
    Category(id="food", name="餐饮", icon="🍔", color="bg-orange-400", type=TransactionType.EXPENSE),
    Category(id="transport", name="交通", icon="🚗", color="bg-blue-400", type=TransactionType.EXPENSE),
    Category(id="shopping", name="购物", icon="🛍️", color="bg-pink-400", type=TransactionType.EXPENSE),
    Category(id="housing", name="居住", icon="🏠", color="bg-indigo-400", type=TransactionType.EXPENSE),
    Category(id="entertainment", name="娱乐", icon="🎮", color="bg-purple-400", type=TransactionType.EXPENSE),
    Category(id="health", name="医疗", icon="🏥", color="bg-red-400", type=TransactionType.EXPENSE),
    Category(id="education", name="教育", icon="📚", color="bg-cyan-400", type=TransactionType.EXPENSE),
    Category(id=OTHER_EXPENSE_ID, name="其他支出", icon="✨", color="bg-gray-400", type=TransactionType.EXPENSE),
    Category(id="salary", name="工资", icon="💰", color="bg-green-500", type=TransactionType.INCOME),
    Category(id="bonus", name="奖金", icon="🧧", color="bg-red-500", type=TransactionType.INCOME),
    Category(id="investment", name="投资", icon="📈", color="bg-emerald-500", type=TransactionType.INCOME),
    Category(id=OTHER_INCOME_ID, name="其他收入", icon="🧧", color="bg-lime-500", type=TransactionType.INCOME),
)


class CategoryRegistry:
    """
    Read-only lookup over an ordered set of categories.

    Every other component resolves display metadata and validates
    category references through this class.
    """

    def __init__(self, categories: Iterable[Category] = CATEGORIES):
        self._categories = tuple(categories)
        self._by_id: dict[str, Category] = {}
        for category in self._categories:
            if category.id in self._by_id:
                raise ValueError(f"Duplicate category id: {category.id}")
            self._by_id[category.id] = category

        for fallback_id in (OTHER_EXPENSE_ID, OTHER_INCOME_ID):
            if fallback_id not in self._by_id:
                raise ValueError(f"Registry is missing fallback category: {fallback_id}")

    def __len__(self) -> int:
        return len(self._categories)

    def __iter__(self):
        return iter(self._categories)

    def list_all(self) -> list[Category]:
        """All categories in registry order."""
        return list(self._categories)

    def find_by_id(self, category_id: str) -> Optional[Category]:
        return self._by_id.get(category_id)

    def is_known(self, category_id: str) -> bool:
        return category_id in self._by_id

    def for_type(self, txn_type: TransactionType) -> list[Category]:
        """Categories of one direction, in registry order."""
        return [c for c in self._categories if c.type == txn_type]

    def fallback_for(self, txn_type: TransactionType) -> Category:
        """The catch-all category used when a reference can't be resolved."""
        if txn_type == TransactionType.INCOME:
            return self._by_id[OTHER_INCOME_ID]
        return self._by_id[OTHER_EXPENSE_ID]

    def name_of(self, category_id: str, default: str = "") -> str:
        category = self._by_id.get(category_id)
        return category.name if category else default


_default_registry: Optional[CategoryRegistry] = None


def get_registry() -> CategoryRegistry:
    """Shared registry over the built-in catalog."""
    global _default_registry
    if _default_registry is None:
        _default_registry = CategoryRegistry()
    return _default_registry
