from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict, TypeAdapter

from api.services.business_settings import BusinessSettings
from api.services.config import get_settings
from api.services.job_engine import build_job, derive_job, normalize_field_name
from api.services.job_models import Job, JobPayment, Subcontractor, TeamMember
from api.services.payments import (
    PaymentNotFoundError,
    default_payments,
    ledger_for,
    summarize_payments,
    toggle_payment,
)

router = APIRouter(prefix="/api/jobs", tags=["jobs"])

_ledger_adapter = TypeAdapter(tuple[JobPayment, ...])


class CreateJobRequest(BaseModel):
    # Address, dates and other unmodelled job details ride along into job.extra.
    model_config = ConfigDict(extra="allow")

    job_value: Decimal = Decimal("0")
    job_number: Optional[str] = None
    client_name: str = ""
    status: str = "lead"
    notes: Optional[str] = None
    sales_rep_id: Optional[str] = None
    project_manager_id: Optional[str] = None
    subcontractor_id: Optional[str] = None
    sales_commission_pct: Optional[Decimal] = None
    pm_commission_pct: Optional[Decimal] = None
    deposit_paid: bool = False
    job_paid: bool = False
    team_members: list[TeamMember] = []
    subcontractors: list[Subcontractor] = []


class DeriveRequest(BaseModel):
    job: Job
    field: str
    value: Any = None
    team_members: list[TeamMember] = []
    subcontractors: list[Subcontractor] = []


class LedgerRequest(BaseModel):
    job: Job


class ToggleRequest(BaseModel):
    job: Job
    today: Optional[date] = None


def _business_settings() -> BusinessSettings:
    return get_settings().business_settings()


@router.post("", status_code=201)
async def create_job(body: CreateJobRequest) -> dict[str, Any]:
    job = build_job(
        body.job_value,
        team_members=body.team_members,
        subcontractors=body.subcontractors,
        settings=_business_settings(),
        sales_rep_id=body.sales_rep_id,
        project_manager_id=body.project_manager_id,
        subcontractor_id=body.subcontractor_id,
        sales_commission_pct=body.sales_commission_pct,
        pm_commission_pct=body.pm_commission_pct,
        job_number=body.job_number,
        client_name=body.client_name,
        status=body.status,
        notes=body.notes,
        deposit_paid=body.deposit_paid,
        job_paid=body.job_paid,
        **(body.model_extra or {}),
    )
    return jsonable_encoder(job)


@router.post("/derive")
async def derive(body: DeriveRequest) -> dict[str, Any]:
    value = body.value
    if normalize_field_name(body.field) == "payments" and value is not None:
        value = _ledger_adapter.validate_python(value)

    job = derive_job(
        body.job,
        body.field,
        value,
        team_members=body.team_members,
        subcontractors=body.subcontractors,
        settings=_business_settings(),
    )
    return jsonable_encoder(job)


@router.post("/payments/defaults")
async def payment_defaults(body: LedgerRequest) -> dict[str, Any]:
    ledger = default_payments(body.job)
    return {
        "payments": jsonable_encoder(ledger),
        "summary": jsonable_encoder(summarize_payments(ledger)),
    }


@router.post("/payments/{payment_id}/toggle")
async def toggle(payment_id: str, body: ToggleRequest) -> dict[str, Any]:
    try:
        ledger = toggle_payment(ledger_for(body.job), payment_id, body.today)
    except PaymentNotFoundError:
        raise HTTPException(status_code=404, detail="Payment not found") from None

    job = derive_job(body.job, "payments", ledger, settings=_business_settings())
    return {
        "job": jsonable_encoder(job),
        "summary": jsonable_encoder(summarize_payments(ledger)),
    }
