"""Comment export endpoint."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from cuesync.api.schemas import ExportRequest
from cuesync.export.comments import export_csv, export_text

router = APIRouter(prefix="/api/v1", tags=["export"])


@router.post("/export/csv", response_class=PlainTextResponse)
async def export_comments(req: ExportRequest) -> PlainTextResponse:
    if req.format == "text":
        return PlainTextResponse(export_text(req.comments))
    return PlainTextResponse(
        export_csv(req.comments),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="comments.csv"'},
    )
