from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

ZERO = Decimal("0")


class ProfitFlag(str, Enum):
    OK = "OK"
    RAISE_PRICE = "RAISE PRICE"
    FIX_SCOPE = "FIX SCOPE"


class PaymentType(str, Enum):
    CLIENT_DEPOSIT = "client_deposit"
    CLIENT_PARTIAL = "client_partial"
    CLIENT_FINAL = "client_final"
    SALES_COMMISSION = "sales_commission"
    PM_COMMISSION = "pm_commission"
    SUBCONTRACTOR = "subcontractor"


class PaymentCategory(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


@dataclass(frozen=True)
class TeamMember:
    id: str
    name: str
    role: str = "sales"  # sales | pm | both
    default_commission_pct: Decimal = ZERO
    email: str = ""
    is_active: bool = True


@dataclass(frozen=True)
class Subcontractor:
    id: str
    name: str
    default_payout_pct: Decimal = Decimal("60")
    company_name: Optional[str] = None
    specialty: str = "both"  # interior | exterior | both
    is_active: bool = True


@dataclass(frozen=True)
class JobPayment:
    id: str
    type: PaymentType
    category: PaymentCategory
    description: str
    amount: Decimal
    status: PaymentStatus = PaymentStatus.PENDING
    due_date: Optional[str] = None
    paid_date: Optional[str] = None
    method: Optional[str] = None
    recipient_name: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None


@dataclass(frozen=True)
class Job:
    """A job record as the editor holds it.

    ``job_value`` is the root input; the cost split, deposit, balance,
    commission amounts, subcontractor price and profit flags are derived from
    it. ``extra`` carries record fields this module does not model (address,
    dates, photos...) so they survive a round trip untouched.
    """

    job_value: Decimal = ZERO
    id: Optional[str] = None
    job_number: Optional[str] = None
    client_name: str = ""
    status: str = "lead"

    sub_materials: Decimal = ZERO
    sub_labor: Decimal = ZERO
    sub_total: Decimal = ZERO
    gross_profit: Decimal = ZERO
    gross_margin_pct: Decimal = ZERO

    sales_rep_id: Optional[str] = None
    sales_rep: Optional[TeamMember] = None
    project_manager_id: Optional[str] = None
    project_manager: Optional[TeamMember] = None
    subcontractor_id: Optional[str] = None
    subcontractor: Optional[Subcontractor] = None

    deposit_required: Decimal = ZERO
    deposit_paid: bool = False
    deposit_payment_method: Optional[str] = None
    deposit_payment_date: Optional[str] = None
    job_paid: bool = False
    job_payment_method: Optional[str] = None
    job_payment_date: Optional[str] = None
    balance_due: Decimal = ZERO

    sales_commission_pct: Decimal = ZERO
    sales_commission_amount: Decimal = ZERO
    sales_commission_paid: bool = False
    pm_commission_pct: Decimal = ZERO
    pm_commission_amount: Decimal = ZERO
    pm_commission_paid: bool = False

    subcontractor_price: Decimal = ZERO
    subcontractor_paid: bool = False

    meets_min_gp: bool = False
    meets_target_gm: bool = False
    profit_flag: ProfitFlag = ProfitFlag.OK

    payments: Optional[tuple[JobPayment, ...]] = None
    notes: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)


JOB_FIELDS = frozenset(f.name for f in fields(Job)) - {"extra"}
