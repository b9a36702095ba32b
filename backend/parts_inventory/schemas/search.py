"""Advanced search criteria and result schemas."""

from decimal import Decimal

from pydantic import BaseModel

from parts_inventory.schemas.part import PartResponse

DEFAULT_SORT_BY = "updatedAt"
DEFAULT_SORT_ORDER = "DESC"
DEFAULT_PAGE = 0
DEFAULT_PAGE_SIZE = 20

TEXT_FIELDS = (
    "part_number",
    "part_name",
    "manufacturer",
    "category_name",
    "created_after",
    "created_before",
    "updated_after",
    "updated_before",
    "sort_by",
    "sort_order",
)

DATE_FIELDS = ("created_after", "created_before", "updated_after", "updated_before")


def _present(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


class SearchCriteria(BaseModel):
    """A partially-filled set of search predicates.

    Dates are kept as ``YYYY-MM-DD`` strings so that format problems can be
    reported alongside the other validation errors instead of failing at
    request parsing.
    """

    part_number: str | None = None
    part_name: str | None = None
    manufacturer: str | None = None
    category_id: int | None = None
    category_name: str | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    created_after: str | None = None
    created_before: str | None = None
    updated_after: str | None = None
    updated_before: str | None = None
    sort_by: str | None = None
    sort_order: str | None = None
    page: int | None = None
    size: int | None = None

    model_config = {"frozen": True}

    def is_empty(self) -> bool:
        """True when no filtering predicate is set.

        Sorting and pagination fields never count as predicates.
        """
        return not (
            _present(self.part_number)
            or _present(self.part_name)
            or _present(self.manufacturer)
            or self.category_id is not None
            or _present(self.category_name)
            or self.has_price_filter()
            or self.has_date_filter()
        )

    def has_price_filter(self) -> bool:
        return self.min_price is not None or self.max_price is not None

    def has_date_filter(self) -> bool:
        return any(_present(getattr(self, name)) for name in DATE_FIELDS)


class SearchStatistics(BaseModel):
    search_time: str
    total_results: int
    search_criteria: dict[str, str | int]
    is_empty: bool
    has_date_filter: bool
    has_price_filter: bool


class SearchPage(BaseModel):
    content: list[PartResponse]
    total_count: int
    current_page: int
    total_pages: int
    page_size: int
    has_next: bool
    has_previous: bool
    statistics: SearchStatistics | None = None
