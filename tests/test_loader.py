import uuid
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError

from finpulse.metrics.loader import PeriodFactLoader
from finpulse.metrics.periods import Period
from finpulse.models import (
    BankBalanceSnapshot,
    Client,
    Collection,
    Expense,
    FixedExpense,
    FixedExpenseDraft,
    Invoice,
    Opportunity,
    Project,
    TimeEntry,
)

TODAY = date(2026, 3, 15)
NOW = datetime(2026, 3, 15, 12, tzinfo=timezone.utc)


async def test_sums_are_scoped_to_the_period(session_factory, workspace_id, add):
    other_workspace = uuid.uuid4()
    await add(
        Collection(workspace_id=workspace_id, collected_on=date(2026, 3, 1), amount=100),
        Collection(workspace_id=workspace_id, collected_on=date(2026, 3, 31), amount=200),
        Collection(workspace_id=workspace_id, collected_on=date(2026, 4, 1), amount=1_000),
        Collection(workspace_id=workspace_id, collected_on=date(2026, 2, 28), amount=50),
        Collection(workspace_id=other_workspace, collected_on=date(2026, 3, 5), amount=9_999),
        Expense(workspace_id=workspace_id, spent_on=date(2026, 3, 2), amount=80),
        Expense(workspace_id=workspace_id, spent_on=date(2026, 2, 2), amount=40),
        Invoice(workspace_id=workspace_id, issued_on=date(2026, 3, 3), amount=700),
    )

    facts = await PeriodFactLoader(session_factory).load(workspace_id, Period(2026, 3), TODAY, NOW)

    assert facts.errors == []
    assert facts.collections == 300
    assert facts.previous_collections == 50
    assert facts.expenses == 80
    assert facts.previous_expenses == 40
    assert facts.sales == 700
    assert facts.total_collected == 1_350


async def test_receivables_facts(session_factory, workspace_id, add):
    invoice = Invoice(workspace_id=workspace_id, issued_on=date(2026, 1, 5), amount=1_000)
    await add(invoice)
    await add(
        Invoice(workspace_id=workspace_id, issued_on=date(2026, 3, 5), amount=500),
        Collection(workspace_id=workspace_id, collected_on=date(2026, 2, 1), amount=300, invoice_id=invoice.id),
        Collection(workspace_id=workspace_id, collected_on=date(2026, 2, 9), amount=100, invoice_id=invoice.id),
        Collection(workspace_id=workspace_id, collected_on=date(2026, 2, 9), amount=20),
    )

    facts = await PeriodFactLoader(session_factory).load(workspace_id, Period(2026, 3), TODAY, NOW)

    assert facts.total_invoiced == 1_500
    assert facts.total_collected == 420
    assert len(facts.invoices) == 2
    assert facts.collected_by_invoice == {invoice.id: 400}


async def test_expense_window_covers_three_months_with_data(session_factory, workspace_id, add):
    await add(
        Expense(workspace_id=workspace_id, spent_on=date(2025, 12, 20), amount=999),
        Expense(workspace_id=workspace_id, spent_on=date(2026, 1, 10), amount=300),
        Expense(workspace_id=workspace_id, spent_on=date(2026, 1, 20), amount=100),
        Expense(workspace_id=workspace_id, spent_on=date(2026, 3, 1), amount=600),
    )

    facts = await PeriodFactLoader(session_factory).load(workspace_id, Period(2026, 3), TODAY, NOW)

    assert facts.monthly_expenses == {"2026-01": 400, "2026-03": 600}


async def test_movements_after_snapshot_exclude_its_own_day(session_factory, workspace_id, add):
    await add(
        BankBalanceSnapshot(
            workspace_id=workspace_id,
            recorded_at=datetime(2026, 3, 10, 18, tzinfo=timezone.utc),
            real_balance=1_000,
            theoretical_balance=1_000,
            difference=0,
        ),
        Collection(workspace_id=workspace_id, collected_on=date(2026, 3, 10), amount=111),
        Collection(workspace_id=workspace_id, collected_on=date(2026, 3, 11), amount=222),
        Expense(workspace_id=workspace_id, spent_on=date(2026, 3, 12), amount=33),
    )

    facts = await PeriodFactLoader(session_factory).load(workspace_id, Period(2026, 3), TODAY, NOW)

    assert facts.latest_snapshot.real_balance == 1_000
    assert facts.collections_since_snapshot == 222
    assert facts.expenses_since_snapshot == 33


async def test_without_snapshot_movements_are_all_time(session_factory, workspace_id, add):
    await add(
        Collection(workspace_id=workspace_id, collected_on=date(2024, 5, 1), amount=500),
        Expense(workspace_id=workspace_id, spent_on=date(2025, 5, 1), amount=120),
    )

    facts = await PeriodFactLoader(session_factory).load(workspace_id, Period(2026, 3), TODAY, NOW)

    assert facts.latest_snapshot is None
    assert facts.collections_since_snapshot == 500
    assert facts.expenses_since_snapshot == 120


async def test_completeness_counts(session_factory, workspace_id, add):
    await add(
        FixedExpense(workspace_id=workspace_id, name="Rent", reference_amount=1_000),
        FixedExpense(workspace_id=workspace_id, name="Payroll", reference_amount=4_000),
        FixedExpense(workspace_id=workspace_id, name="Old", reference_amount=700, is_active=False),
        Client(workspace_id=workspace_id, name="Acme", document_number="900", tax_regime="common"),
        Client(workspace_id=workspace_id, name="Beta", document_number="901"),
        Opportunity(workspace_id=workspace_id, stage="proposal", updated_at=NOW - timedelta(days=2)),
        Opportunity(workspace_id=workspace_id, stage="negotiation", updated_at=NOW - timedelta(days=20)),
        Opportunity(workspace_id=workspace_id, stage="won", updated_at=NOW - timedelta(days=1)),
        FixedExpenseDraft(workspace_id=workspace_id, period_start=date(2026, 3, 1), is_confirmed=True),
        FixedExpenseDraft(workspace_id=workspace_id, period_start=date(2026, 3, 1)),
        FixedExpenseDraft(workspace_id=workspace_id, period_start=date(2026, 2, 1)),
        TimeEntry(workspace_id=workspace_id, entry_date=date(2026, 2, 1), hours=4),
        Project(workspace_id=workspace_id, name="Done", status="closed", total_budget=1_000, accumulated_cost=400),
        Project(workspace_id=workspace_id, name="Running", status="active", total_budget=1_000, accumulated_cost=100),
    )

    facts = await PeriodFactLoader(session_factory).load(workspace_id, Period(2026, 3), TODAY, NOW)
    completeness = facts.completeness

    assert completeness.fixed_expense_count == 2
    assert facts.fixed_expenses_total == 5_000
    assert (completeness.clients_total, completeness.clients_fiscally_complete) == (2, 1)
    assert (completeness.active_opportunities, completeness.fresh_opportunities) == (2, 1)
    assert (completeness.drafts_total, completeness.drafts_confirmed) == (2, 1)
    assert completeness.has_recent_hours is False
    assert facts.closed_projects == [(1_000, 400)]


class ClientsUnavailableLoader(PeriodFactLoader):
    async def _clients(self, session, workspace_id):
        raise OperationalError("SELECT clients", None, Exception("connection reset"))


async def test_failed_query_degrades_to_default(session_factory, workspace_id, add):
    await add(
        Client(workspace_id=workspace_id, name="Acme", document_number="900", tax_regime="common"),
        Collection(workspace_id=workspace_id, collected_on=date(2026, 3, 3), amount=250),
    )

    facts = await ClientsUnavailableLoader(session_factory).load(workspace_id, Period(2026, 3), TODAY, NOW)

    assert facts.errors == ["Clients: OperationalError"]
    assert facts.completeness.clients_total == 0
    assert facts.collections == 250
