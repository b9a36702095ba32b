"""Advanced search: criteria handling, filters, sorting, paging, statistics."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from parts_inventory.core.exceptions import ValidationError
from parts_inventory.schemas.search import SearchCriteria
from parts_inventory.services import search as search_service
from tests.helpers import make_category, make_part

BASE_TIME = datetime(2026, 3, 1, 12, 0, 0)


def test_blank_strings_count_as_absent():
    criteria = SearchCriteria(part_name="   ", manufacturer="", sort_by=" ")
    assert criteria.is_empty()

    cleaned = search_service.clean_criteria(criteria)
    assert cleaned.part_name is None
    assert cleaned.manufacturer is None
    assert cleaned.sort_by is None


def test_sort_and_paging_do_not_make_criteria_non_empty():
    assert SearchCriteria(page=3, size=5, sort_by="price", sort_order="ASC").is_empty()
    assert not SearchCriteria(category_id=1).is_empty()
    assert not SearchCriteria(max_price=Decimal("10")).is_empty()
    assert not SearchCriteria(updated_before="2026-01-01").is_empty()


def test_defaults_applied_only_when_absent():
    defaulted = search_service.normalize_criteria(SearchCriteria(page=-4, size=0))
    assert defaulted.sort_by == "updatedAt"
    assert defaulted.sort_order == "DESC"
    assert defaulted.page == 0
    assert defaulted.size == 20

    explicit = search_service.normalize_criteria(SearchCriteria(sort_by="price", page=2, size=5))
    assert explicit.sort_by == "price"
    assert explicit.sort_order is None
    assert explicit.page == 2
    assert explicit.size == 5


def test_inverted_price_range_is_reported():
    errors = search_service.validate_search_criteria(
        SearchCriteria(min_price=Decimal("100"), max_price=Decimal("50"))
    )
    assert "priceRange" in errors


def test_validation_collects_every_error():
    errors = search_service.validate_search_criteria(
        SearchCriteria(
            min_price=Decimal("-1"),
            max_price=Decimal("-5"),
            created_after="2026-05-02",
            created_before="2026-05-01",
            updated_after="not-a-date",
            page=-1,
            size=0,
        )
    )
    assert set(errors) == {
        "priceRange",
        "minPrice",
        "maxPrice",
        "createdDateRange",
        "updatedAfter",
        "page",
        "size",
    }


def test_page_offset_must_fit_bigint():
    too_far = search_service.validate_search_criteria(SearchCriteria(page=10**18, size=10**6))
    assert set(too_far) == {"page"}

    # Without an explicit size the default page size bounds the offset.
    assert "page" in search_service.validate_search_criteria(SearchCriteria(page=2**62))
    assert search_service.validate_search_criteria(SearchCriteria(page=10**6, size=100)) == {}

    assert set(search_service.validate_search_criteria(SearchCriteria(size=2**63))) == {"size"}


@pytest.mark.asyncio
async def test_huge_page_is_rejected_before_querying(db: AsyncSession):
    await make_part(db, "P-1")
    with pytest.raises(ValidationError) as exc_info:
        await search_service.search_by_advanced_criteria(
            db, SearchCriteria(page=10**18, size=10**6)
        )
    assert "page" in exc_info.value.errors

    far_page = await search_service.search_by_advanced_criteria(
        db, SearchCriteria(page=10**6, size=100)
    )
    assert far_page.content == []
    assert far_page.total_count == 1


def test_valid_criteria_have_no_errors():
    criteria = SearchCriteria(
        min_price=Decimal("10"),
        max_price=Decimal("10"),
        created_after="2026-05-01",
        created_before="2026-05-01",
    )
    assert search_service.validate_search_criteria(criteria) == {}


def test_sort_aliases():
    from parts_inventory.models.category import Category
    from parts_inventory.models.part import Part

    assert search_service.map_sort_field("PartNumber") is Part.part_number
    assert search_service.map_sort_field("part_name") is Part.part_name
    assert search_service.map_sort_field("categoryName") is Category.name
    assert search_service.map_sort_field("created_at") is Part.created_at
    assert search_service.map_sort_field("bogus") is Part.updated_at
    assert search_service.map_sort_field(None) is Part.updated_at


@pytest.mark.asyncio
async def test_invalid_criteria_raise_validation_error(db: AsyncSession):
    with pytest.raises(ValidationError) as exc_info:
        await search_service.search_by_advanced_criteria(
            db, SearchCriteria(min_price=Decimal("100"), max_price=Decimal("50"))
        )
    assert "priceRange" in exc_info.value.errors


@pytest.mark.asyncio
async def test_empty_criteria_page_everything_by_update_time(db: AsyncSession):
    for i in range(25):
        await make_part(db, f"P-{i:02d}", 100 + i, updated_at=BASE_TIME + timedelta(minutes=i))

    page = await search_service.search_by_advanced_criteria(db, SearchCriteria())

    assert page.total_count == 25
    assert page.page_size == 20
    assert page.current_page == 0
    assert page.total_pages == 2
    assert page.has_next
    assert not page.has_previous
    assert len(page.content) == 20
    assert page.content[0].part_number == "P-24"
    assert page.content[-1].part_number == "P-05"

    second = await search_service.search_by_advanced_criteria(db, SearchCriteria(page=1))
    assert [p.part_number for p in second.content] == ["P-04", "P-03", "P-02", "P-01", "P-00"]
    assert not second.has_next
    assert second.has_previous


@pytest.mark.asyncio
async def test_empty_store_returns_empty_page(db: AsyncSession):
    page = await search_service.search_by_advanced_criteria(db, SearchCriteria())
    assert page.total_count == 0
    assert page.total_pages == 0
    assert page.content == []
    assert not page.has_next


@pytest.mark.asyncio
async def test_category_and_min_price_scenario(db: AsyncSession):
    categories = [await make_category(db, f"Category {i}") for i in range(1, 6)]
    target = categories[4]
    assert target.id == 5

    await make_part(db, "T-500", 500, category_id=target.id)
    await make_part(db, "T-1500", 1500, category_id=target.id)
    await make_part(db, "T-2000", 2000, category_id=target.id)
    await make_part(db, "O-1500", 1500, category_id=categories[0].id)
    await make_part(db, "O-9000", 9000, category_id=categories[1].id)

    page = await search_service.search_by_advanced_criteria(
        db, SearchCriteria(category_id=5, min_price=Decimal("1000"))
    )

    assert page.total_count == 2
    assert {p.part_number for p in page.content} == {"T-1500", "T-2000"}
    assert {p.price for p in page.content} == {Decimal("1500"), Decimal("2000")}


@pytest.mark.asyncio
async def test_text_filters_are_case_insensitive_substrings(db: AsyncSession):
    gears = await make_category(db, "Planetary Gears")
    await make_part(db, "AT-100", part_name="Sun gear", manufacturer="Aisin", category_id=gears.id)
    await make_part(db, "AT-200", part_name="Ring Gear", manufacturer="JATCO")
    await make_part(db, "BT-300", part_name="Oil seal", manufacturer="aisin seiki")

    by_name = await search_service.search_by_advanced_criteria(db, SearchCriteria(part_name="GEAR"))
    assert {p.part_number for p in by_name.content} == {"AT-100", "AT-200"}

    by_number = await search_service.search_by_advanced_criteria(
        db, SearchCriteria(part_number="at-")
    )
    assert by_number.total_count == 2

    by_maker = await search_service.search_by_advanced_criteria(
        db, SearchCriteria(manufacturer="AISIN")
    )
    assert {p.part_number for p in by_maker.content} == {"AT-100", "BT-300"}

    by_category_name = await search_service.search_by_advanced_criteria(
        db, SearchCriteria(category_name="planetary")
    )
    assert [p.part_number for p in by_category_name.content] == ["AT-100"]
    assert by_category_name.content[0].category_name == "Planetary Gears"


@pytest.mark.asyncio
async def test_date_bounds_cover_whole_days(db: AsyncSession):
    await make_part(db, "EARLY", created_at=datetime(2026, 4, 30, 23, 59, 0))
    await make_part(db, "START", created_at=datetime(2026, 5, 1, 0, 0, 0))
    await make_part(db, "END", created_at=datetime(2026, 5, 2, 23, 59, 59))
    await make_part(db, "LATE", created_at=datetime(2026, 5, 3, 0, 0, 1))

    page = await search_service.search_by_advanced_criteria(
        db, SearchCriteria(created_after="2026-05-01", created_before="2026-05-02")
    )
    assert {p.part_number for p in page.content} == {"START", "END"}


@pytest.mark.asyncio
async def test_filtered_search_sorts_by_alias(db: AsyncSession):
    await make_part(db, "B", 300, manufacturer="Aisin")
    await make_part(db, "A", 100, manufacturer="Aisin")
    await make_part(db, "C", 200, manufacturer="Aisin")

    ascending = await search_service.search_by_advanced_criteria(
        db, SearchCriteria(manufacturer="aisin", sort_by="price", sort_order="asc")
    )
    assert [p.part_number for p in ascending.content] == ["A", "C", "B"]

    descending = await search_service.search_by_advanced_criteria(
        db, SearchCriteria(manufacturer="aisin", sort_by="part_number")
    )
    assert [p.part_number for p in descending.content] == ["C", "B", "A"]


@pytest.mark.asyncio
async def test_unfiltered_search_sorts_by_field_name(db: AsyncSession):
    await make_part(db, "B", 300)
    await make_part(db, "A", 100)
    await make_part(db, "C", 200)

    page = await search_service.search_by_advanced_criteria(
        db, SearchCriteria(sort_by="partNumber", sort_order="ASC")
    )
    assert [p.part_number for p in page.content] == ["A", "B", "C"]


@pytest.mark.asyncio
async def test_count_and_matching_parts(db: AsyncSession):
    await make_part(db, "A", 100)
    await make_part(db, "B", 2000)
    await make_part(db, "C", 3000)

    assert await search_service.count_by_advanced_criteria(db, SearchCriteria()) == 3
    criteria = SearchCriteria(min_price=Decimal("1000"))
    assert await search_service.count_by_advanced_criteria(db, criteria) == 2
    matching = await search_service.find_matching_parts(
        db, SearchCriteria(min_price=Decimal("1000"), sort_by="price", sort_order="ASC")
    )
    assert [p.part_number for p in matching] == ["B", "C"]


@pytest.mark.asyncio
async def test_search_statistics(db: AsyncSession):
    await make_part(db, "A", 1500, part_name="Gear")
    await make_part(db, "B", 500, part_name="Gear")

    stats = await search_service.get_search_statistics(
        db,
        SearchCriteria(part_name="Gear", min_price=Decimal("1000"), max_price=Decimal("2000")),
    )

    assert stats.total_results == 1
    assert stats.search_criteria["partName"] == "Gear"
    assert stats.search_criteria["priceRange"] == "1000 and above 2000 and below"
    assert not stats.is_empty
    assert stats.has_price_filter
    assert not stats.has_date_filter
    datetime.strptime(stats.search_time, "%Y-%m-%d %H:%M:%S")


@pytest.mark.asyncio
async def test_statistics_for_empty_criteria(db: AsyncSession):
    await make_part(db, "A", 100)
    stats = await search_service.get_search_statistics(db, SearchCriteria())
    assert stats.is_empty
    assert stats.total_results == 1
    assert stats.search_criteria == {}
