from __future__ import annotations

from decimal import Decimal

import pytest

from api.services.business_settings import BusinessSettings
from api.services.job_engine import build_job, derive_job
from api.services.job_models import Job, ProfitFlag, Subcontractor, TeamMember
from api.services.validation import InputValidationError

ANA = TeamMember(id="m1", name="Ana", role="sales", default_commission_pct=Decimal("8"))
PAULO = TeamMember(id="m2", name="Paulo", role="pm", default_commission_pct=Decimal("3"))
CREW = Subcontractor(id="s1", name="Crew One", default_payout_pct=Decimal("55"))


def priced(value: int | str) -> Job:
    return derive_job(Job(), "jobValue", value)


def test_job_value_recomputes_cost_split() -> None:
    job = priced(1000)

    assert job.sub_materials == Decimal("150")
    assert job.sub_labor == Decimal("450")
    assert job.sub_total == Decimal("600")
    assert job.gross_profit == Decimal("400")
    assert job.gross_margin_pct == 40
    assert job.deposit_required == Decimal("300")
    assert job.subcontractor_price == Decimal("600")
    assert job.balance_due == Decimal("1000")


@pytest.mark.parametrize("value", ["0", "1", "999.99", "1234.567", "87000.13"])
def test_split_invariants_hold(value: str) -> None:
    job = priced(value)

    assert job.sub_materials + job.sub_labor == job.sub_total
    assert job.sub_total + job.gross_profit == job.job_value
    assert job.deposit_required == job.job_value * Decimal("0.30")


def test_min_gross_profit_flag() -> None:
    assert priced(1000).profit_flag == ProfitFlag.RAISE_PRICE
    assert priced(1000).meets_min_gp is False

    ok = priced(2250)
    assert ok.gross_profit == Decimal("900")
    assert ok.meets_min_gp is True
    assert ok.profit_flag == ProfitFlag.OK


def test_balance_due_precedence() -> None:
    job = priced(1000)

    deposit = derive_job(job, "depositPaid", True)
    assert deposit.balance_due == Decimal("700")

    paid = derive_job(deposit, "jobPaid", True)
    assert paid.balance_due == 0

    # Deposit flag changes while fully paid never reopen the balance.
    assert derive_job(paid, "depositPaid", False).balance_due == 0

    unpaid = derive_job(paid, "jobPaid", False)
    assert unpaid.balance_due == Decimal("700")
    assert derive_job(unpaid, "depositPaid", False).balance_due == Decimal("1000")


def test_job_value_change_respects_paid_flags() -> None:
    job = derive_job(derive_job(priced(1000), "deposit_paid", True), "job_paid", True)
    assert derive_job(job, "jobValue", 2000).balance_due == 0


def test_commission_percentages_only_touch_their_own_amount() -> None:
    job = derive_job(priced(5000), "salesCommissionPct", 10)
    assert job.sales_commission_amount == Decimal("500")

    job = derive_job(job, "pmCommissionPct", 3)
    assert job.pm_commission_amount == Decimal("150")
    assert job.sales_commission_amount == Decimal("500")


def test_job_value_change_carries_commission_percentages() -> None:
    job = derive_job(derive_job(priced(5000), "salesCommissionPct", 10), "pmCommissionPct", 2)
    job = derive_job(job, "jobValue", 8000)

    assert job.sales_commission_amount == Decimal("800")
    assert job.pm_commission_amount == Decimal("160")


def test_derive_is_idempotent() -> None:
    job = priced(4321)
    once = derive_job(job, "salesCommissionPct", 7)
    twice = derive_job(once, "salesCommissionPct", 7)
    assert once == twice

    assert derive_job(job, "jobValue", 4321) == job


def test_selecting_team_members_copies_default_commission() -> None:
    job = derive_job(priced(5000), "salesRepId", "m1", team_members=[ANA, PAULO])
    assert job.sales_rep == ANA
    assert job.sales_commission_pct == Decimal("8")
    assert job.sales_commission_amount == Decimal("400")

    job = derive_job(job, "projectManagerId", "m2", team_members=[ANA, PAULO])
    assert job.project_manager == PAULO
    assert job.pm_commission_amount == Decimal("150")
    assert job.sales_commission_amount == Decimal("400")


def test_missing_team_member_leaves_commission_unchanged() -> None:
    job = derive_job(priced(5000), "salesCommissionPct", 10)
    job = derive_job(job, "salesRepId", "ghost", team_members=[ANA])

    assert job.sales_rep_id == "ghost"
    assert job.sales_rep is None
    assert job.sales_commission_pct == Decimal("10")
    assert job.sales_commission_amount == Decimal("500")


def test_subcontractor_selection_uses_its_payout_but_job_value_uses_configured() -> None:
    job = derive_job(priced(5000), "subcontractorId", "s1", subcontractors=[CREW])
    assert job.subcontractor == CREW
    assert job.subcontractor_price == Decimal("2750")

    repriced = derive_job(job, "jobValue", 5000, subcontractors=[CREW])
    assert repriced.subcontractor_price == Decimal("3000")


def test_missing_subcontractor_is_a_no_op() -> None:
    job = priced(5000)
    updated = derive_job(job, "subcontractorId", "nobody", subcontractors=[CREW])
    assert updated.subcontractor_price == job.subcontractor_price
    assert updated.subcontractor is None


def test_unlisted_fields_are_plain_assignments() -> None:
    job = priced(5000)

    renamed = derive_job(job, "clientName", "Casa Azul")
    assert renamed.client_name == "Casa Azul"
    assert renamed.gross_profit == job.gross_profit

    # Even derived fields can be overwritten directly; nothing else moves.
    forced = derive_job(job, "grossProfit", Decimal("1"))
    assert forced.gross_profit == Decimal("1")
    assert forced.sub_total == job.sub_total

    moved = derive_job(job, "address", "12 Rua Verde")
    assert moved.extra == {"address": "12 Rua Verde"}
    assert job.extra == {}


def test_injected_settings_override_ratios() -> None:
    settings = BusinessSettings(deposit_pct=Decimal("50"), min_gross_profit=Decimal("100"))
    job = derive_job(Job(), "jobValue", 1000, settings=settings)

    assert job.deposit_required == Decimal("500")
    assert job.profit_flag == ProfitFlag.OK


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("jobValue", "abc"),
        ("jobValue", -5),
        ("jobValue", float("nan")),
        ("jobValue", float("inf")),
        ("jobValue", None),
        ("jobValue", "1e1000000"),
        ("jobValue", Decimal("1e16")),
        ("salesCommissionPct", 150),
        ("pmCommissionPct", -1),
        ("depositPaid", "yes"),
        ("jobPaid", 1),
        ("salesRepId", {"a": 1}),
        ("projectManagerId", ["m2"]),
        ("subcontractorId", 7),
    ],
)
def test_malformed_input_is_rejected(field: str, value: object) -> None:
    with pytest.raises(InputValidationError):
        derive_job(priced(1000), field, value)


def test_settings_must_split_job_value_fully() -> None:
    with pytest.raises(InputValidationError) as exc_info:
        BusinessSettings(sub_labor_pct=Decimal("50"))
    assert exc_info.value.field == "assumed_gross_margin_pct"

    with pytest.raises(InputValidationError):
        BusinessSettings(deposit_pct=Decimal("120"))

    rebalanced = BusinessSettings(sub_labor_pct=Decimal("50"), assumed_gross_margin_pct=Decimal("35"))
    job = derive_job(Job(), "jobValue", 1000, settings=rebalanced)
    assert job.sub_total + job.gross_profit == job.job_value


def test_build_job_derives_from_settings() -> None:
    job = build_job(1000, job_number="JOB-1001", client_name="Rita")

    assert job.job_number == "JOB-1001"
    assert job.sub_total == Decimal("600")
    assert job.gross_profit == Decimal("400")
    assert job.gross_margin_pct == 40
    assert job.meets_target_gm is True
    assert job.meets_min_gp is False
    assert job.profit_flag == ProfitFlag.RAISE_PRICE
    assert job.balance_due == Decimal("1000")


def test_build_job_flags_low_margin_as_fix_scope() -> None:
    settings = BusinessSettings(target_gross_margin_pct=Decimal("45"))
    assert build_job(5000, settings=settings).profit_flag == ProfitFlag.FIX_SCOPE
    assert build_job(5000).profit_flag == ProfitFlag.OK


def test_build_job_commission_fallbacks() -> None:
    by_default = build_job(5000, sales_rep_id="m1", team_members=[ANA])
    assert by_default.sales_commission_pct == Decimal("8")
    assert by_default.sales_commission_amount == Decimal("400")
    assert by_default.sales_rep == ANA

    unknown = build_job(5000, sales_rep_id="ghost", team_members=[ANA])
    assert unknown.sales_commission_amount == Decimal("250")

    explicit = build_job(5000, project_manager_id="m2", pm_commission_pct=4, team_members=[PAULO])
    assert explicit.pm_commission_amount == Decimal("200")

    unassigned = build_job(5000, sales_commission_pct=12)
    assert unassigned.sales_commission_pct == Decimal("12")
    assert unassigned.sales_commission_amount == 0


def test_build_job_keeps_unmodelled_fields() -> None:
    job = build_job(3000, address="5 Oak St", city="Tampa")
    assert job.extra == {"address": "5 Oak St", "city": "Tampa"}


def test_build_job_rejects_non_string_ids() -> None:
    with pytest.raises(InputValidationError) as exc_info:
        build_job(3000, sales_rep_id={"a": 1}, team_members=[ANA])
    assert exc_info.value.field == "sales_rep_id"
