from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional

from pydantic.alias_generators import to_snake

from api.services.business_settings import DEFAULT_BUSINESS_SETTINGS, BusinessSettings
from api.services.job_models import JOB_FIELDS, ZERO, Job, ProfitFlag, Subcontractor, TeamMember
from api.services.validation import HUNDRED, require_amount, require_flag, require_id, require_percent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DerivationContext:
    team_members: Mapping[str, TeamMember] = field(default_factory=dict)
    subcontractors: Mapping[str, Subcontractor] = field(default_factory=dict)
    settings: BusinessSettings = DEFAULT_BUSINESS_SETTINGS


Rule = Callable[[Job, Any, DerivationContext], dict[str, Any]]


def portion(value: Decimal, pct: Decimal) -> Decimal:
    return value * pct / HUNDRED


def balance_due(job_value: Decimal, deposit_required: Decimal, deposit_paid: bool, job_paid: bool) -> Decimal:
    # Full payment wins over a paid deposit.
    if job_paid:
        return ZERO
    return job_value - (deposit_required if deposit_paid else ZERO)


def _on_job_value(job: Job, value: Any, ctx: DerivationContext) -> dict[str, Any]:
    job_value = require_amount("job_value", value)
    s = ctx.settings
    gross_profit = portion(job_value, s.assumed_gross_margin_pct)
    deposit_required = portion(job_value, s.deposit_pct)
    meets_min_gp = gross_profit >= s.min_gross_profit
    return {
        "job_value": job_value,
        "sub_materials": portion(job_value, s.sub_materials_pct),
        "sub_labor": portion(job_value, s.sub_labor_pct),
        "sub_total": portion(job_value, s.sub_total_pct),
        "gross_profit": gross_profit,
        "gross_margin_pct": s.assumed_gross_margin_pct,
        "deposit_required": deposit_required,
        "sales_commission_amount": portion(job_value, job.sales_commission_pct),
        "pm_commission_amount": portion(job_value, job.pm_commission_pct),
        # Configured payout, not the assigned subcontractor's own rate.
        "subcontractor_price": portion(job_value, s.sub_payout_pct),
        "balance_due": balance_due(job_value, deposit_required, job.deposit_paid, job.job_paid),
        "meets_min_gp": meets_min_gp,
        "profit_flag": ProfitFlag.OK if meets_min_gp else ProfitFlag.RAISE_PRICE,
    }


def _on_sales_commission_pct(job: Job, value: Any, ctx: DerivationContext) -> dict[str, Any]:
    pct = require_percent("sales_commission_pct", value)
    return {
        "sales_commission_pct": pct,
        "sales_commission_amount": portion(job.job_value, pct),
    }


def _on_pm_commission_pct(job: Job, value: Any, ctx: DerivationContext) -> dict[str, Any]:
    pct = require_percent("pm_commission_pct", value)
    return {
        "pm_commission_pct": pct,
        "pm_commission_amount": portion(job.job_value, pct),
    }


def _on_deposit_paid(job: Job, value: Any, ctx: DerivationContext) -> dict[str, Any]:
    deposit_paid = require_flag("deposit_paid", value)
    return {
        "deposit_paid": deposit_paid,
        "balance_due": balance_due(job.job_value, job.deposit_required, deposit_paid, job.job_paid),
    }


def _on_job_paid(job: Job, value: Any, ctx: DerivationContext) -> dict[str, Any]:
    job_paid = require_flag("job_paid", value)
    return {
        "job_paid": job_paid,
        "balance_due": balance_due(job.job_value, job.deposit_required, job.deposit_paid, job_paid),
    }


def _on_sales_rep_id(job: Job, value: Any, ctx: DerivationContext) -> dict[str, Any]:
    value = require_id("sales_rep_id", value)
    member = ctx.team_members.get(value) if value else None
    updates: dict[str, Any] = {"sales_rep_id": value, "sales_rep": member}
    if member is None:
        logger.info("No team member %r; sales commission left unchanged", value)
        return updates
    pct = member.default_commission_pct
    updates["sales_commission_pct"] = pct
    updates["sales_commission_amount"] = portion(job.job_value, pct)
    return updates


def _on_project_manager_id(job: Job, value: Any, ctx: DerivationContext) -> dict[str, Any]:
    value = require_id("project_manager_id", value)
    member = ctx.team_members.get(value) if value else None
    updates: dict[str, Any] = {"project_manager_id": value, "project_manager": member}
    if member is None:
        logger.info("No team member %r; PM commission left unchanged", value)
        return updates
    pct = member.default_commission_pct
    updates["pm_commission_pct"] = pct
    updates["pm_commission_amount"] = portion(job.job_value, pct)
    return updates


def _on_subcontractor_id(job: Job, value: Any, ctx: DerivationContext) -> dict[str, Any]:
    value = require_id("subcontractor_id", value)
    sub = ctx.subcontractors.get(value) if value else None
    updates: dict[str, Any] = {"subcontractor_id": value, "subcontractor": sub}
    if sub is None:
        logger.info("No subcontractor %r; subcontractor price left unchanged", value)
        return updates
    updates["subcontractor_price"] = portion(job.job_value, sub.default_payout_pct)
    return updates


JOB_RULES: dict[str, Rule] = {
    "job_value": _on_job_value,
    "sales_commission_pct": _on_sales_commission_pct,
    "pm_commission_pct": _on_pm_commission_pct,
    "deposit_paid": _on_deposit_paid,
    "job_paid": _on_job_paid,
    "sales_rep_id": _on_sales_rep_id,
    "project_manager_id": _on_project_manager_id,
    "subcontractor_id": _on_subcontractor_id,
}


def normalize_field_name(name: str) -> str:
    """Accept both ``jobValue`` and ``job_value`` spellings."""
    return to_snake(name)


def make_context(
    team_members: Iterable[TeamMember] = (),
    subcontractors: Iterable[Subcontractor] = (),
    settings: Optional[BusinessSettings] = None,
) -> DerivationContext:
    return DerivationContext(
        team_members={m.id: m for m in team_members},
        subcontractors={s.id: s for s in subcontractors},
        settings=settings or DEFAULT_BUSINESS_SETTINGS,
    )


def derive_job(
    job: Job,
    changed_field: str,
    new_value: Any,
    team_members: Iterable[TeamMember] = (),
    subcontractors: Iterable[Subcontractor] = (),
    settings: Optional[BusinessSettings] = None,
) -> Job:
    """Apply one field change and recompute the fields that depend on it.

    Only the fields tied to ``changed_field`` are touched; everything else is
    carried over as-is. Fields without a rule are plain assignments, and names
    that are not job attributes land in ``job.extra``.
    """
    name = normalize_field_name(changed_field)
    ctx = make_context(team_members, subcontractors, settings)

    rule = JOB_RULES.get(name)
    if rule is not None:
        updates = rule(job, new_value, ctx)
        logger.debug("Applied %s rule: %s", name, sorted(updates))
        return replace(job, **updates)

    if name in JOB_FIELDS:
        if name == "payments" and new_value is not None:
            new_value = tuple(new_value)
        return replace(job, **{name: new_value})

    extra = dict(job.extra)
    extra[changed_field] = new_value
    return replace(job, extra=extra)


def _effective_commission_pct(
    member_id: Optional[str],
    explicit_pct: Optional[Any],
    field_name: str,
    ctx: DerivationContext,
) -> Decimal:
    if explicit_pct is not None:
        return require_percent(field_name, explicit_pct)
    if not member_id:
        return ZERO
    member = ctx.team_members.get(member_id)
    if member is not None:
        return member.default_commission_pct
    return ctx.settings.fallback_commission_pct


def build_job(
    job_value: Any,
    *,
    team_members: Iterable[TeamMember] = (),
    subcontractors: Iterable[Subcontractor] = (),
    settings: Optional[BusinessSettings] = None,
    sales_rep_id: Optional[str] = None,
    project_manager_id: Optional[str] = None,
    subcontractor_id: Optional[str] = None,
    sales_commission_pct: Optional[Any] = None,
    pm_commission_pct: Optional[Any] = None,
    **fields: Any,
) -> Job:
    """Derive the full financial set for a new job.

    Unlike the edit path, gross profit here is what is left after the
    subcontractor cost split, and the target-margin check may flag the job
    as ``FIX SCOPE``.
    """
    ctx = make_context(team_members, subcontractors, settings)
    s = ctx.settings
    value = require_amount("job_value", job_value)
    sales_rep_id = require_id("sales_rep_id", sales_rep_id)
    project_manager_id = require_id("project_manager_id", project_manager_id)
    subcontractor_id = require_id("subcontractor_id", subcontractor_id)

    sub_materials = portion(value, s.sub_materials_pct)
    sub_labor = portion(value, s.sub_labor_pct)
    sub_total = sub_materials + sub_labor
    gross_profit = value - sub_total
    gross_margin_pct = gross_profit / value * HUNDRED if value > 0 else ZERO
    deposit_required = portion(value, s.deposit_pct)

    meets_min_gp = gross_profit >= s.min_gross_profit
    meets_target_gm = gross_margin_pct >= s.target_gross_margin_pct
    if not meets_min_gp:
        flag = ProfitFlag.RAISE_PRICE
    elif not meets_target_gm:
        flag = ProfitFlag.FIX_SCOPE
    else:
        flag = ProfitFlag.OK

    sales_pct = _effective_commission_pct(sales_rep_id, sales_commission_pct, "sales_commission_pct", ctx)
    pm_pct = _effective_commission_pct(project_manager_id, pm_commission_pct, "pm_commission_pct", ctx)

    known = {k: v for k, v in fields.items() if k in JOB_FIELDS}
    extra = {k: v for k, v in fields.items() if k not in JOB_FIELDS}
    deposit_paid = require_flag("deposit_paid", known.pop("deposit_paid", False))
    job_paid = require_flag("job_paid", known.pop("job_paid", False))

    derived = dict(
        job_value=value,
        sub_materials=sub_materials,
        sub_labor=sub_labor,
        sub_total=sub_total,
        gross_profit=gross_profit,
        gross_margin_pct=gross_margin_pct,
        deposit_required=deposit_required,
        deposit_paid=deposit_paid,
        job_paid=job_paid,
        balance_due=balance_due(value, deposit_required, deposit_paid, job_paid),
        sales_rep_id=sales_rep_id,
        sales_rep=ctx.team_members.get(sales_rep_id) if sales_rep_id else None,
        project_manager_id=project_manager_id,
        project_manager=ctx.team_members.get(project_manager_id) if project_manager_id else None,
        subcontractor_id=subcontractor_id,
        subcontractor=ctx.subcontractors.get(subcontractor_id) if subcontractor_id else None,
        sales_commission_pct=sales_pct,
        sales_commission_amount=portion(value, sales_pct) if sales_rep_id else ZERO,
        pm_commission_pct=pm_pct,
        pm_commission_amount=portion(value, pm_pct) if project_manager_id else ZERO,
        subcontractor_price=portion(value, s.sub_payout_pct),
        meets_min_gp=meets_min_gp,
        meets_target_gm=meets_target_gm,
        profit_flag=flag,
    )
    job = Job(**{**known, **derived}, extra=extra)
    logger.debug("Built job %s at %s (%s)", job.job_number or "<new>", value, flag.value)
    return job
