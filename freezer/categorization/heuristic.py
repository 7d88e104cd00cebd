"""
Categorization Heuristic

Suggests a category (and then a drawer) for a new item from its name.

Resolution order:
1. User keyword mappings, in mapping order
2. The built-in keyword table, in table order
3. The first category by name

All matching is substring matching on normalized text, so
"Chicken Thighs" matches the keyword "chicken".
"""

from typing import Optional
from uuid import UUID

from freezer.models.inventory import (
    Category,
    Drawer,
    InventoryDocument,
    normalize_name,
)


# Ordered: the first keyword contained in the name wins.
BUILT_IN_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("chicken", "Meat"),
    ("beef", "Meat"),
    ("lamb", "Meat"),
    ("pork", "Meat"),
    ("steak", "Meat"),
    ("mince", "Meat"),
    ("fish", "Fish"),
    ("salmon", "Fish"),
    ("cod", "Fish"),
    ("tuna", "Fish"),
    ("prawn", "Fish"),
    ("milk", "Dairy"),
    ("cheese", "Dairy"),
    ("butter", "Dairy"),
    ("yogurt", "Dairy"),
    ("yoghurt", "Dairy"),
    ("cream", "Dairy"),
    ("broccoli", "Fruit & Veg"),
    ("carrot", "Fruit & Veg"),
    ("peas", "Fruit & Veg"),
    ("spinach", "Fruit & Veg"),
    ("apple", "Fruit & Veg"),
    ("berries", "Fruit & Veg"),
    ("soup", "Ready Meal"),
    ("spag bol", "Ready Meal"),
    ("lasagne", "Ready Meal"),
    ("curry", "Ready Meal"),
    ("ready meal", "Ready Meal"),
    ("pizza", "Ready Meal"),
)


def _category_named(document: InventoryDocument, name: str) -> Optional[Category]:
    wanted = normalize_name(name)
    return next(
        (c for c in document.categories if normalize_name(c.name) == wanted),
        None,
    )


def suggest_category(document: InventoryDocument, item_name: str) -> Optional[Category]:
    """
    Suggest a category for an item name.

    Returns None only for a blank name (or a document without categories,
    which the store never produces).
    """
    normalized = normalize_name(item_name)
    if not normalized:
        return None

    for mapping in document.user_mappings:
        keyword = normalize_name(mapping.keyword)
        if keyword and keyword in normalized:
            category = document.category(mapping.category_id)
            if category is not None:
                return category

    for keyword, category_name in BUILT_IN_KEYWORDS:
        if keyword in normalized:
            category = _category_named(document, category_name)
            if category is not None:
                return category
            break

    categories = document.sorted_categories()
    return categories[0] if categories else None


def suggest_drawer(document: InventoryDocument, category_id: UUID) -> Optional[Drawer]:
    """Lowest-order drawer defaulting to the category, else the lowest-order drawer."""
    drawers = document.sorted_drawers()
    for drawer in drawers:
        if drawer.default_category_id == category_id:
            return drawer
    return drawers[0] if drawers else None
