from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional
from uuid import uuid4

from api.services.job_models import (
    ZERO,
    Job,
    JobPayment,
    PaymentCategory,
    PaymentStatus,
    PaymentType,
)


class PaymentNotFoundError(KeyError):
    pass


@dataclass(frozen=True)
class PaymentSummary:
    total_received: Decimal
    total_pending: Decimal
    total_expenses_paid: Decimal
    total_expenses_pending: Decimal


def payment_category(payment_type: PaymentType) -> PaymentCategory:
    if payment_type.value.startswith("client_"):
        return PaymentCategory.INCOME
    return PaymentCategory.EXPENSE


def _status(paid: bool) -> PaymentStatus:
    return PaymentStatus.PAID if paid else PaymentStatus.PENDING


def _pct_label(pct: Decimal) -> str:
    return f"{pct.normalize():f}%"


def default_payments(
    job: Job,
    now: Optional[datetime] = None,
    id_factory: Callable[[], str] = lambda: str(uuid4()),
) -> tuple[JobPayment, ...]:
    """Seed a ledger from the job's own amounts and paid flags.

    Client deposit and final payment are always present; commissions and the
    subcontractor payout only appear when their amount is positive.
    """
    created_at = (now or datetime.utcnow()).replace(microsecond=0).isoformat() + "Z"
    deposit_pct = job.deposit_required / job.job_value * 100 if job.job_value > 0 else ZERO

    ledger = [
        JobPayment(
            id=id_factory(),
            type=PaymentType.CLIENT_DEPOSIT,
            category=PaymentCategory.INCOME,
            description=f"Deposit ({_pct_label(deposit_pct)})",
            amount=job.deposit_required,
            status=_status(job.deposit_paid),
            paid_date=job.deposit_payment_date,
            method=job.deposit_payment_method,
            created_at=created_at,
        ),
        JobPayment(
            id=id_factory(),
            type=PaymentType.CLIENT_FINAL,
            category=PaymentCategory.INCOME,
            description="Final payment",
            amount=job.job_value - job.deposit_required,
            status=_status(job.job_paid),
            paid_date=job.job_payment_date,
            method=job.job_payment_method,
            created_at=created_at,
        ),
    ]

    if job.sales_commission_amount > 0:
        ledger.append(
            JobPayment(
                id=id_factory(),
                type=PaymentType.SALES_COMMISSION,
                category=PaymentCategory.EXPENSE,
                description=f"Sales commission ({_pct_label(job.sales_commission_pct)})",
                amount=job.sales_commission_amount,
                status=_status(job.sales_commission_paid),
                recipient_name=job.sales_rep.name if job.sales_rep else None,
                created_at=created_at,
            )
        )

    if job.pm_commission_amount > 0:
        ledger.append(
            JobPayment(
                id=id_factory(),
                type=PaymentType.PM_COMMISSION,
                category=PaymentCategory.EXPENSE,
                description=f"PM commission ({_pct_label(job.pm_commission_pct)})",
                amount=job.pm_commission_amount,
                status=_status(job.pm_commission_paid),
                recipient_name=job.project_manager.name if job.project_manager else None,
                created_at=created_at,
            )
        )

    if job.subcontractor_price > 0:
        ledger.append(
            JobPayment(
                id=id_factory(),
                type=PaymentType.SUBCONTRACTOR,
                category=PaymentCategory.EXPENSE,
                description="Subcontractor payout",
                amount=job.subcontractor_price,
                status=_status(job.subcontractor_paid),
                recipient_name=job.subcontractor.name if job.subcontractor else None,
                created_at=created_at,
            )
        )

    return tuple(ledger)


def ledger_for(job: Job) -> tuple[JobPayment, ...]:
    return job.payments if job.payments is not None else default_payments(job)


def toggle_payment(
    payments: Iterable[JobPayment],
    payment_id: str,
    today: Optional[date] = None,
) -> tuple[JobPayment, ...]:
    payments = tuple(payments)
    if not any(p.id == payment_id for p in payments):
        raise PaymentNotFoundError(payment_id)

    stamp = (today or date.today()).isoformat()
    toggled = []
    for p in payments:
        if p.id != payment_id:
            toggled.append(p)
        elif p.status == PaymentStatus.PAID:
            toggled.append(replace(p, status=PaymentStatus.PENDING, paid_date=None))
        else:
            toggled.append(replace(p, status=PaymentStatus.PAID, paid_date=stamp))
    return tuple(toggled)


def upsert_payment(payments: Iterable[JobPayment], payment: JobPayment) -> tuple[JobPayment, ...]:
    payment = replace(payment, category=payment_category(payment.type))
    payments = tuple(payments)
    if any(p.id == payment.id for p in payments):
        return tuple(payment if p.id == payment.id else p for p in payments)
    return payments + (payment,)


def remove_payment(payments: Iterable[JobPayment], payment_id: str) -> tuple[JobPayment, ...]:
    return tuple(p for p in payments if p.id != payment_id)


def summarize_payments(payments: Iterable[JobPayment]) -> PaymentSummary:
    totals = {
        (PaymentCategory.INCOME, PaymentStatus.PAID): ZERO,
        (PaymentCategory.INCOME, PaymentStatus.PENDING): ZERO,
        (PaymentCategory.EXPENSE, PaymentStatus.PAID): ZERO,
        (PaymentCategory.EXPENSE, PaymentStatus.PENDING): ZERO,
    }
    for p in payments:
        totals[(p.category, p.status)] += p.amount
    return PaymentSummary(
        total_received=totals[(PaymentCategory.INCOME, PaymentStatus.PAID)],
        total_pending=totals[(PaymentCategory.INCOME, PaymentStatus.PENDING)],
        total_expenses_paid=totals[(PaymentCategory.EXPENSE, PaymentStatus.PAID)],
        total_expenses_pending=totals[(PaymentCategory.EXPENSE, PaymentStatus.PENDING)],
    )
