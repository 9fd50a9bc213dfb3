import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import AuthSession, get_current_session
from .db import get_db
from .exports import render_report_pdf, reports_to_csv
from .generation.engine import generate_report
from .generation.model_client import ReportModelClient
from .history import HistoryFilters, delete_report, get_report, list_reports
from .rate_limit import enforce_generation_rate_limit
from .schemas import (
    DeleteResponse,
    GenerateReportRequest,
    GenerateReportResponse,
    ReportOut,
)
from .settings import settings


logger = logging.getLogger("obdscribe")

router = APIRouter(tags=["reports"])

_model_client: Optional[ReportModelClient] = None


def get_model_client() -> ReportModelClient:
    """Return the process-wide Gemini client."""
    global _model_client
    if _model_client is None:
        _model_client = ReportModelClient(
            project_id=settings.project_id,
            location=settings.location,
            standard_model=settings.standard_model,
            premium_model=settings.premium_model,
            timeout=settings.model_timeout_seconds,
        )
    return _model_client


def history_filters(
    make: Optional[str] = None,
    model: Optional[str] = None,
    code: Optional[str] = None,
    q: Optional[str] = None,
    created_from: Optional[datetime] = Query(None, alias="from"),
    created_to: Optional[datetime] = Query(None, alias="to"),
) -> HistoryFilters:
    return HistoryFilters(
        make=make or None,
        model=model or None,
        code=code or None,
        q=q or None,
        created_from=created_from,
        created_to=created_to,
    )


async def _get_shop_report(db: AsyncSession, session: AuthSession, report_id: uuid.UUID):
    report = await get_report(db, session.shop_id, report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.post("/generate-report", response_model=GenerateReportResponse)
async def create_report(
    payload: GenerateReportRequest,
    session: AuthSession = Depends(get_current_session),
    _rate_limit: None = Depends(enforce_generation_rate_limit),
    db: AsyncSession = Depends(get_db),
    model_client: ReportModelClient = Depends(get_model_client),
) -> GenerateReportResponse:
    """Generate explanations for a vehicle's codes and store them as a report.

    Model or database failures are logged and answered with a generic 500;
    the upstream error text is never returned to the client.
    """
    try:
        result = await generate_report(
            db,
            payload,
            shop_id=session.shop_id,
            user_id=session.user_id,
            model_client=model_client,
        )
    except Exception as exc:
        logger.exception("Failed to generate report for shop %s: %s", session.shop_id, exc)
        await db.rollback()
        raise HTTPException(
            status_code=500, detail="Failed to generate report. Please try again."
        ) from exc
    return GenerateReportResponse(id=result.report.id, report=result.content)


@router.get("/reports", response_model=list[ReportOut])
async def list_history(
    filters: HistoryFilters = Depends(history_filters),
    session: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
) -> list[ReportOut]:
    """List the current user's most recent reports in their shop."""
    reports = await list_reports(db, session.shop_id, session.user_id, filters)
    return [ReportOut.model_validate(report) for report in reports]


@router.get("/reports/export")
async def export_history(
    filters: HistoryFilters = Depends(history_filters),
    session: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
) -> Response:
    reports = await list_reports(db, session.shop_id, session.user_id, filters)
    return Response(
        content=reports_to_csv(reports),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="obdscribe-history.csv"'},
    )


@router.get("/reports/{report_id}", response_model=ReportOut)
async def read_report(
    report_id: uuid.UUID,
    session: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
) -> ReportOut:
    report = await _get_shop_report(db, session, report_id)
    return ReportOut.model_validate(report)


@router.delete("/reports/{report_id}", response_model=DeleteResponse)
async def remove_report(
    report_id: uuid.UUID,
    session: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
) -> DeleteResponse:
    if not await delete_report(db, session.shop_id, report_id):
        raise HTTPException(status_code=404, detail="Report not found")
    return DeleteResponse(ok=True)


@router.get("/reports/{report_id}/pdf")
async def download_report_pdf(
    report_id: uuid.UUID,
    session: AuthSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
) -> Response:
    report = await _get_shop_report(db, session, report_id)
    return Response(
        content=render_report_pdf(report),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename=obdscribe-report-{report.id}.pdf"
        },
    )
