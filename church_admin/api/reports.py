from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..database import get_db
from ..errors import db_failure
from ..models.report import Report
from ..services import report_export
from ..services.reporting import generate_report, main_table, normalize_period
from .schemas import ReportCreate
from .serializers import iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])

PERIOD_LABELS = {
    "1month": "Last Month",
    "3months": "Last 3 Months",
    "6months": "Last 6 Months",
    "1year": "Last Year",
}


def _serialize_report(r: Report) -> Dict[str, Any]:
    return {
        "id": r.id,
        "title": r.title,
        "type": r.report_type,
        "period": r.period,
        "format": report_export.export_format(r.file_path),
        "filePath": r.file_path,
        "createdAt": iso(r.created_at),
    }


@router.get("")
def get_report(
    *,
    db: Session = Depends(get_db),
    type: Optional[str] = Query("membership"),
    period: Optional[str] = Query("1month"),
) -> Dict[str, Any]:
    try:
        report_type, data = generate_report(db, type, period)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Error generating report data")
        raise db_failure(e, "Failed to generate report data")
    return {"success": True, report_type: data}


@router.post("")
def create_report(payload: ReportCreate, db: Session = Depends(get_db)) -> JSONResponse:
    try:
        report_type, data = generate_report(db, payload.type, payload.period)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Error generating report data")
        raise db_failure(e, "Failed to generate report data")

    period = normalize_period(payload.period)
    title = payload.title or f"{report_type.title()} Report - {PERIOD_LABELS[period]}"

    report = Report(title=title, report_type=report_type, period=period, data=data)
    report.file_path = report_export.report_file_path(title, report.id, payload.format)
    db.add(report)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to save report")
        raise db_failure(e, "Failed to save report")
    db.refresh(report)

    logger.info("Saved %s report %s (%s)", report_type, report.id, report.file_path)
    return JSONResponse(
        status_code=201,
        content={"success": True, "report": _serialize_report(report)},
    )


@router.get("/history")
def report_history(
    *,
    db: Session = Depends(get_db),
    limit: int = Query(50, ge=1, le=500),
) -> Dict[str, Any]:
    rows: List[Report] = db.exec(select(Report).order_by(Report.created_at.desc()).limit(limit)).all()
    items = [_serialize_report(r) for r in rows]
    return {"success": True, "reports": items, "total": len(items)}


@router.get("/download/{report_id}")
def download_report(report_id: str, db: Session = Depends(get_db)) -> Response:
    report = db.get(Report, report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")

    fmt = report_export.export_format(report.file_path)
    if fmt == "json":
        content = report_export.to_json(report.data)
        media_type = report_export.JSON_MEDIA_TYPE
    else:
        content = report_export.to_csv(main_table(report.report_type, report.data))
        media_type = report_export.CSV_MEDIA_TYPE

    filename = report_export.download_filename(report.title, fmt)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
