"""Report generation pipeline.

``generate_report`` normalizes the submitted codes, enriches them with
reference data, asks the model for a structured explanation and stores the
result as a ``Report``.  A malformed model response never fails the
request: it is replaced by a fixed fallback payload and the report is
marked degraded.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import (
    STATUS_COMPLETED,
    STATUS_DEGRADED,
    DtcCode,
    MaintenanceBand,
    Report,
    Shop,
)
from ..schemas import GeneratedContent, GenerateReportRequest
from .prompts import PROMPT_VERSION, USER_INSTRUCTIONS


logger = logging.getLogger("obdscribe")

UNKNOWN_CODE_MEANING = "Unknown code (provide a generic explanation)."

FALLBACK_TECH_VIEW = (
    "We were unable to generate a detailed structured explanation. "
    "Please re-run the report or adjust inputs."
)
FALLBACK_CUSTOMER_VIEW = (
    "We had trouble generating a detailed explanation this time. "
    "Please ask your service advisor to try again."
)


class ModelClient(Protocol):
    async def generate_json(self, *, mode: str, prompt: str) -> str: ...


@dataclass
class GenerationResult:
    report: Report
    content: GeneratedContent
    degraded: bool


def normalize_codes(codes: Iterable[str]) -> list[str]:
    """Trim and uppercase each code, dropping the ones left empty."""
    normalized = (code.strip().upper() for code in codes)
    return [code for code in normalized if code]


async def lookup_code_meanings(db: AsyncSession, codes: list[str]) -> dict[str, str]:
    if not codes:
        return {}
    result = await db.execute(select(DtcCode).where(DtcCode.code.in_(codes)))
    return {row.code: row.generic_meaning for row in result.scalars().all()}


async def find_maintenance_band(db: AsyncSession, mileage: Optional[int]) -> Optional[MaintenanceBand]:
    if mileage is None:
        return None
    result = await db.execute(
        select(MaintenanceBand)
        .where(MaintenanceBand.min_mileage <= mileage, MaintenanceBand.max_mileage >= mileage)
        .order_by(MaintenanceBand.min_mileage)
        .limit(1)
    )
    return result.scalars().first()


def build_context(
    payload: GenerateReportRequest,
    *,
    mode: str,
    codes: list[str],
    meanings: dict[str, str],
    band: Optional[MaintenanceBand],
    tone: str,
    include_maintenance: bool,
) -> dict[str, Any]:
    return {
        "prompt_version": PROMPT_VERSION,
        "mode": mode,
        "tone": tone,
        "include_maintenance": include_maintenance,
        "vehicle": {
            "year": payload.year,
            "make": payload.make,
            "model": payload.model,
            "trim": payload.trim,
            "mileage": payload.mileage,
        },
        "codes": [
            {"code": code, "meaning": meanings.get(code, UNKNOWN_CODE_MEANING)} for code in codes
        ],
        "complaint": payload.complaint,
        "notes": payload.notes or "",
        "mileage_band": (
            {
                "minMileage": band.min_mileage,
                "maxMileage": band.max_mileage,
                "label": band.label,
                "guidance": band.guidance,
            }
            if band is not None
            else None
        ),
    }


def build_prompt(context: dict[str, Any]) -> str:
    return f"{USER_INSTRUCTIONS}\n\n{json.dumps(context)}"


def fallback_content() -> GeneratedContent:
    return GeneratedContent(
        tech_view=FALLBACK_TECH_VIEW,
        customer_view=FALLBACK_CUSTOMER_VIEW,
        maintenance_suggestions=[],
    )


def parse_model_output(raw: Optional[str]) -> tuple[GeneratedContent, bool]:
    """Coerce the model's JSON into ``GeneratedContent``.

    Returns the content and whether the fallback payload had to be used.
    """
    try:
        parsed = json.loads(raw or "")
    except (TypeError, ValueError):
        return fallback_content(), True
    if not isinstance(parsed, dict):
        return fallback_content(), True

    tech_view = parsed.get("techView")
    customer_view = parsed.get("customerView")
    suggestions = parsed.get("maintenanceSuggestions")
    return (
        GeneratedContent(
            tech_view=tech_view if isinstance(tech_view, str) else "",
            customer_view=customer_view if isinstance(customer_view, str) else "",
            maintenance_suggestions=(
                [str(item) for item in suggestions if item is not None]
                if isinstance(suggestions, list)
                else []
            ),
        ),
        False,
    )


async def generate_report(
    db: AsyncSession,
    payload: GenerateReportRequest,
    *,
    shop_id: uuid.UUID,
    user_id: uuid.UUID,
    model_client: ModelClient,
) -> GenerationResult:
    shop = await db.get(Shop, shop_id)
    mode = payload.mode or (shop.default_report_mode if shop is not None else None) or "standard"
    tone = (shop.default_report_tone if shop is not None else None) or "plain_english"
    include_maintenance = shop.default_include_maint if shop is not None else True

    codes = normalize_codes(payload.codes)
    meanings = await lookup_code_meanings(db, codes)
    band = await find_maintenance_band(db, payload.mileage)

    context = build_context(
        payload,
        mode=mode,
        codes=codes,
        meanings=meanings,
        band=band,
        tone=tone,
        include_maintenance=include_maintenance,
    )
    raw = await model_client.generate_json(mode=mode, prompt=build_prompt(context))
    content, degraded = parse_model_output(raw)
    if degraded:
        logger.warning("Model returned unparseable output for shop %s; using fallback", shop_id)

    report = Report(
        shop_id=shop_id,
        user_id=user_id,
        vehicle_year=payload.year,
        vehicle_make=payload.make,
        vehicle_model=payload.model,
        vehicle_trim=payload.trim,
        mileage=payload.mileage,
        codes_raw=", ".join(codes),
        complaint=payload.complaint,
        notes=payload.notes or "",
        tech_view=content.tech_view,
        customer_view=content.customer_view,
        maintenance_suggestions=json.dumps(content.maintenance_suggestions),
        prompt_version=PROMPT_VERSION,
        mode=mode,
        status=STATUS_DEGRADED if degraded else STATUS_COMPLETED,
    )
    db.add(report)
    await db.commit()
    await db.refresh(report)
    logger.info(
        "Generated report %s for shop %s (mode=%s, degraded=%s)", report.id, shop_id, mode, degraded
    )
    return GenerationResult(report=report, content=content, degraded=degraded)
