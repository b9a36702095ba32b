"""CSV export and import of parts.

Both directions share one column layout. Exports quote every field and end
lines with ``\\n``. Imports never abort on a bad row: each data row runs in its
own savepoint and ends up as a success, a skip (part number already stored)
or an error tagged with its physical row number (the header is row 1).
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from parts_inventory.core.config import settings
from parts_inventory.core.exceptions import ValidationError
from parts_inventory.models.part import Part
from parts_inventory.schemas.part import PartCreate
from parts_inventory.schemas.search import SearchCriteria
from parts_inventory.schemas.transfer import ImportOutcomeResponse, RowMessage
from parts_inventory.services.parts import find_all_parts, find_by_part_number, register_part
from parts_inventory.services.search import find_matching_parts

logger = logging.getLogger(__name__)

CSV_HEADERS = ("部品番号", "部品名", "価格", "説明", "メーカー名")
REQUIRED_COLUMNS = 3
FILENAME_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

EXPORT_BASENAME = "parts_export"
EXPORT_ALL_BASENAME = "parts_all_export"
EXPORT_SEARCH_BASENAME = "parts_search_export"


@dataclass
class ImportOutcome:
    success_count: int = 0
    error_count: int = 0
    skip_count: int = 0
    error_messages: list[tuple[int, str]] = field(default_factory=list)
    skipped_messages: list[tuple[int, str]] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return self.success_count + self.error_count + self.skip_count

    @property
    def is_success(self) -> bool:
        return self.error_count == 0

    def add_success(self) -> None:
        self.success_count += 1

    def add_error(self, row: int, message: str) -> None:
        self.error_count += 1
        self.error_messages.append((row, message))

    def add_skipped(self, row: int, message: str) -> None:
        self.skip_count += 1
        self.skipped_messages.append((row, message))

    def to_response(self) -> ImportOutcomeResponse:
        return ImportOutcomeResponse(
            success=self.is_success,
            success_count=self.success_count,
            error_count=self.error_count,
            skip_count=self.skip_count,
            total_count=self.total_count,
            error_messages=[RowMessage(row=r, message=m) for r, m in self.error_messages],
            skipped_messages=[RowMessage(row=r, message=m) for r, m in self.skipped_messages],
        )


def export_filename(base: str, now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"{base}_{now.strftime(FILENAME_TIMESTAMP_FORMAT)}.csv"


def export_parts_to_csv(parts: list[Part]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for part in parts:
        writer.writerow(
            [
                part.part_number,
                part.part_name,
                str(part.price) if part.price is not None else "",
                part.description or "",
                part.manufacturer or "",
            ]
        )
    return buffer.getvalue().encode("utf-8")


async def export_all_parts(db: AsyncSession) -> bytes:
    parts = await find_all_parts(db)
    logger.info("Exporting %d parts to CSV", len(parts))
    return export_parts_to_csv(parts)


async def export_parts_by_criteria(db: AsyncSession, criteria: SearchCriteria) -> bytes:
    """Export the search result; empty criteria export everything."""
    parts = await find_matching_parts(db, criteria)
    logger.info("Exporting %d searched parts to CSV", len(parts))
    return export_parts_to_csv(parts)


def _validate_upload(filename: str | None, content: bytes) -> None:
    if not content:
        raise ValidationError("The uploaded file is empty.", {"file": "empty"})
    if not filename or not filename.lower().endswith(".csv"):
        raise ValidationError("Only CSV files can be imported.", {"file": "not a .csv file"})
    check_upload_size(len(content))


def check_upload_size(size: int | None) -> None:
    """Reject uploads above ``CSV_MAX_UPLOAD_BYTES``; an unknown size passes."""
    if size is not None and size > settings.CSV_MAX_UPLOAD_BYTES:
        limit_mb = settings.CSV_MAX_UPLOAD_BYTES // (1024 * 1024)
        raise ValidationError(
            f"The file is too large (limit {limit_mb} MB).", {"file": "too large"}
        )


def _read_rows(content: bytes) -> list[list[str]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValidationError("The file is not valid UTF-8.", {"file": "encoding"}) from exc
    try:
        return list(csv.reader(io.StringIO(text, newline="")))
    except csv.Error as exc:
        raise ValidationError(
            f"The file could not be parsed as CSV: {exc}", {"file": "format"}
        ) from exc


def _validate_header(header: list[str]) -> None:
    if len(header) < len(CSV_HEADERS):
        raise ValidationError(
            f"The header must have {len(CSV_HEADERS)} columns.", {"header": "too few columns"}
        )
    if any(not cell.strip() for cell in header[:REQUIRED_COLUMNS]):
        raise ValidationError(
            "The first three header columns must not be blank.", {"header": "blank column"}
        )


def _optional(row: list[str], index: int) -> str | None:
    if index >= len(row):
        return None
    return row[index].strip() or None


def _parse_row(row: list[str]) -> PartCreate:
    if len(row) < REQUIRED_COLUMNS:
        raise ValidationError(f"Expected at least {REQUIRED_COLUMNS} columns, got {len(row)}.")

    part_number = row[0].strip()
    part_name = row[1].strip()
    price_text = row[2].strip()
    if not part_number:
        raise ValidationError("Part number is required.")
    if not part_name:
        raise ValidationError("Part name is required.")
    if not price_text:
        raise ValidationError("Price is required.")
    try:
        price = Decimal(price_text)
    except InvalidOperation as exc:
        raise ValidationError(f"Invalid price format: '{price_text}'.") from exc
    if not price.is_finite():
        raise ValidationError(f"Invalid price format: '{price_text}'.")

    # Same schema as POST /parts: length limits, price >= 0, two decimal places.
    try:
        return PartCreate.model_validate(
            {
                "part_number": part_number,
                "part_name": part_name,
                "price": price,
                "description": _optional(row, 3),
                "manufacturer": _optional(row, 4),
                "category_id": None,
            }
        )
    except PydanticValidationError as exc:
        raise ValidationError(_schema_error_message(exc)) from exc


def _schema_error_message(exc: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}" for error in exc.errors()
    )


async def _import_row(
    db: AsyncSession, row_number: int, row: list[str], outcome: ImportOutcome
) -> None:
    try:
        data = _parse_row(row)
        if await find_by_part_number(db, data.part_number) is not None:
            outcome.add_skipped(row_number, f"Part number '{data.part_number}' already exists.")
            return
        async with db.begin_nested():
            await register_part(db, data)
        outcome.add_success()
    except Exception as exc:
        logger.warning("CSV row %d rejected: %s", row_number, exc)
        outcome.add_error(row_number, str(exc) or exc.__class__.__name__)


async def import_parts_from_csv(
    db: AsyncSession, filename: str | None, content: bytes
) -> ImportOutcome:
    """Import parts row by row; file-level problems raise ValidationError."""
    logger.info("Importing parts from %s (%d bytes)", filename, len(content))
    _validate_upload(filename, content)

    rows = _read_rows(content)
    if not rows:
        raise ValidationError("The file contains no data.", {"file": "no rows"})
    _validate_header(rows[0])

    outcome = ImportOutcome()
    for row_number, row in enumerate(rows[1:], start=2):
        if not any(cell.strip() for cell in row):
            logger.warning("CSV row %d rejected: blank line", row_number)
            outcome.add_error(row_number, "Part number is required.")
            continue
        await _import_row(db, row_number, row, outcome)

    logger.info(
        "CSV import finished: %d succeeded, %d skipped, %d failed",
        outcome.success_count,
        outcome.skip_count,
        outcome.error_count,
    )
    return outcome
