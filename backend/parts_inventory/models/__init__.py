from parts_inventory.models.category import Category
from parts_inventory.models.part import Part
from parts_inventory.models.user import User

__all__ = [
    "Category",
    "Part",
    "User",
]
