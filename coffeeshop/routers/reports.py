import logging
from datetime import datetime, date, timezone, timedelta

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from coffeeshop.config import settings
from coffeeshop.db import get_db
from coffeeshop.deps import require_admin
from coffeeshop.schemas.reports import ExportIn
from coffeeshop.services import analytics, reports

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["reports"])


def _range(start_date: date | None, end_date: date | None, default_days: int) -> tuple[date, date]:
    end = end_date or datetime.now(timezone.utc).date()
    start = start_date or end - timedelta(days=default_days)
    if start > end:
        raise HTTPException(400, detail="start_date must not be after end_date")
    return start, end


@router.get("/analytics")
def dashboard(
    start_date: date | None = None,
    end_date: date | None = None,
    period: str = "daily",
    db: Session = Depends(get_db),
    admin_id: int = Depends(require_admin),
):
    """Completed-order dashboard. Defaults to the last 30 days."""
    start, end = _range(start_date, end_date, 30)
    try:
        return analytics.dashboard(db, start, end, period=period, thresholds=settings.PROFIT_THRESHOLDS)
    except ValueError as e:
        raise HTTPException(400, detail=str(e))


@router.get("/reports")
def sales_report(
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
    admin_id: int = Depends(require_admin),
):
    start, end = _range(start_date, end_date, 7)
    return {
        **reports.sales_report(db, start, end),
        "date_range": {"start_date": start.isoformat(), "end_date": end.isoformat()},
    }


@router.post("/reports/export")
def export_report(body: ExportIn, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    if (body.format or "csv").lower() != "csv":
        raise HTTPException(400, detail="Only CSV format is supported")
    start, end = _range(body.start_date, body.end_date, 7)
    rows = reports.export_rows(db, start, end)
    logger.info("exporting %d rows for %s..%s", len(rows), start, end)
    filename = f"sales-report-{start.isoformat()}-to-{end.isoformat()}.csv"
    return Response(
        content=reports.to_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
