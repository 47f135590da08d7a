"""
Tax Summary API routes.
Monthly revenue/expense rollups and the tax owed on them.
"""

from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from rentdesk.core.database import get_db
from rentdesk.modules.tax import services
from rentdesk.modules.tax.exceptions import (
    InvalidTaxRate,
    MalformedPeriodLabel,
    ReconciliationWriteFailure,
)

router = APIRouter()


class CalculateRequest(BaseModel):
    """Manual calculation request."""
    month: Union[int, str] = Field(description="Month name (e.g. 'January') or number 1-12")
    year: int = Field(ge=1, le=9999)
    tax_rate: Optional[Union[float, str]] = Field(
        default=None, description="Percentage, e.g. 25.0. Defaults to the configured rate."
    )


class UpdateSummaryRequest(BaseModel):
    """Recalculate an existing summary with a new rate."""
    tax_rate: Optional[Union[float, str]] = None


def _recalculation_response(recalculation: services.Recalculation) -> dict:
    return {
        "summary": services.serialize_summary(recalculation.summary),
        "skipped": services.serialize_skipped(recalculation.skipped),
    }


@router.get("/summaries")
async def list_summaries(
    year: Optional[int] = Query(default=None, description="Filter by year"),
    db: Session = Depends(get_db),
):
    """List monthly tax summaries, most recent period first."""
    summaries = services.list_summaries(db, year)
    return {
        "summaries": [services.serialize_summary(s) for s in summaries],
        "count": len(summaries),
    }


@router.get("/summaries/totals")
async def get_yearly_totals(
    year: Optional[int] = Query(default=None, description="Filter by year"),
    db: Session = Depends(get_db),
):
    """Yearly totals across monthly summaries."""
    return services.get_yearly_totals(db, year)


@router.post("/summaries/calculate")
def calculate_summary(request: CalculateRequest, db: Session = Depends(get_db)):
    """
    Calculate (or recalculate) the summary for one month.
    A month with no payments or expenses yields an all-zero summary.
    """
    try:
        recalculation = services.calculate_for_period(
            db, request.month, request.year, request.tax_rate
        )
    except (InvalidTaxRate, MalformedPeriodLabel) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ReconciliationWriteFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _recalculation_response(recalculation)


@router.put("/summaries/{summary_id}")
def update_summary(
    summary_id: int,
    request: UpdateSummaryRequest,
    db: Session = Depends(get_db),
):
    """Recalculate an existing summary from current facts, optionally with a new rate."""
    try:
        recalculation = services.update_summary(db, summary_id, request.tax_rate)
    except InvalidTaxRate as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ReconciliationWriteFailure as e:
        raise HTTPException(status_code=503, detail=str(e))

    if recalculation is None:
        raise HTTPException(status_code=404, detail="Tax summary not found")
    return _recalculation_response(recalculation)


@router.get("/summaries/{summary_id}")
async def get_summary(summary_id: int, db: Session = Depends(get_db)):
    """Get one tax summary."""
    summary = services.get_summary(db, summary_id)
    if not summary:
        raise HTTPException(status_code=404, detail="Tax summary not found")
    return services.serialize_summary(summary)


@router.get("/recompute-failures")
async def list_recompute_failures(
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """Operator report of reactive recomputes that failed (stale summaries)."""
    failures = services.list_recompute_failures(db, limit)
    return {
        "failures": [services.serialize_failure(f) for f in failures],
        "count": len(failures),
    }
