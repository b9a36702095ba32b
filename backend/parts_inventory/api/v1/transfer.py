"""CSV export and import endpoints (admin only)."""

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from parts_inventory.api.v1.parts import criteria_from_query
from parts_inventory.core.config import settings
from parts_inventory.core.dependencies import get_current_user, get_db, require_role
from parts_inventory.models.user import User
from parts_inventory.schemas.search import SearchCriteria
from parts_inventory.schemas.transfer import ImportOutcomeResponse
from parts_inventory.services import csv_transfer

router = APIRouter()

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def _csv_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/export/csv")
async def export_csv(
    include_all: bool = Query(False, alias="all"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await require_role("admin", user)
    base = csv_transfer.EXPORT_ALL_BASENAME if include_all else csv_transfer.EXPORT_BASENAME
    content = await csv_transfer.export_all_parts(db)
    return _csv_response(content, csv_transfer.export_filename(base))


@router.get("/export/csv/search")
async def export_csv_search(
    criteria: SearchCriteria = Depends(criteria_from_query),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await require_role("admin", user)
    content = await csv_transfer.export_parts_by_criteria(db, criteria)
    return _csv_response(
        content, csv_transfer.export_filename(csv_transfer.EXPORT_SEARCH_BASENAME)
    )


@router.post("/import/csv", response_model=ImportOutcomeResponse)
async def import_csv(
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ImportOutcomeResponse:
    await require_role("admin", user)
    csv_transfer.check_upload_size(file.size)
    # At most limit + 1 bytes are buffered.
    content = await file.read(settings.CSV_MAX_UPLOAD_BYTES + 1)
    outcome = await csv_transfer.import_parts_from_csv(db, file.filename, content)
    return outcome.to_response()
