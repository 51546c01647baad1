from datetime import date

import pytest

from finpulse.metrics.periods import Period
from finpulse.metrics.targets import (
    ExactPeriodResolver,
    LegacyTableResolver,
    MonthlyTargetRepository,
    PriorPeriodResolver,
    TargetInput,
    TargetResolverChain,
)
from finpulse.models import LegacyMonthlyTarget, MonthlyTarget


async def test_saved_month_reads_back_unmodified(session, workspace_id):
    repo = MonthlyTargetRepository(session)
    await repo.save(workspace_id, Period(2026, 3), 4_000_000, 3_500_000)
    await session.commit()

    target = await TargetResolverChain().resolve(session, workspace_id, Period(2026, 3))

    assert target.source == "exact"
    assert target.sales_target == 4_000_000
    assert target.collection_target == 3_500_000


async def test_zero_collection_target_reads_back_as_zero(session, workspace_id):
    await MonthlyTargetRepository(session).save(workspace_id, Period(2026, 3), 1_000, 0)
    await session.commit()

    target = await TargetResolverChain().resolve(session, workspace_id, Period(2026, 3))

    assert target.sales_target == 1_000
    assert target.collection_target == 0.0


async def test_collection_target_defaults_to_80_percent(session, workspace_id):
    row = await MonthlyTargetRepository(session).save(workspace_id, Period(2026, 3), 5_000_000)
    assert float(row.collection_target) == 4_000_000


async def test_save_updates_the_existing_row(session, workspace_id):
    repo = MonthlyTargetRepository(session)
    await repo.save(workspace_id, Period(2026, 3), 1_000_000)
    await repo.save(workspace_id, Period(2026, 3), 2_000_000)
    await session.commit()

    rows = await repo.list_latest(workspace_id)
    assert len(rows) == 1
    assert float(rows[0].sales_target) == 2_000_000


async def test_missing_month_inherits_the_latest_earlier_target(session, workspace_id):
    repo = MonthlyTargetRepository(session)
    chain = TargetResolverChain()
    await repo.save(workspace_id, Period(2025, 11), 3_000_000)
    await repo.save(workspace_id, Period(2026, 1), 5_000_000, 4_500_000)
    await session.commit()

    inherited = await chain.resolve(session, workspace_id, Period(2026, 3))
    assert inherited.source == "inherited"
    assert inherited.source_period == "2026-01"
    assert (inherited.sales_target, inherited.collection_target) == (5_000_000, 4_500_000)

    # Inheritance does not write
    assert await repo.get(workspace_id, Period(2026, 3)) is None

    await repo.save(workspace_id, Period(2026, 3), 7_000_000)
    await session.commit()

    explicit = await chain.resolve(session, workspace_id, Period(2026, 3))
    assert explicit.source == "exact"
    assert explicit.sales_target == 7_000_000


async def test_zero_target_is_treated_as_missing(session, workspace_id):
    repo = MonthlyTargetRepository(session)
    await repo.save(workspace_id, Period(2026, 1), 2_000_000)
    await repo.save(workspace_id, Period(2026, 2), 0)
    await session.commit()

    target = await TargetResolverChain().resolve(session, workspace_id, Period(2026, 2))
    assert target.source == "inherited"
    assert target.source_period == "2026-01"


async def test_inheritance_ignores_later_months(session, workspace_id):
    await MonthlyTargetRepository(session).save(workspace_id, Period(2026, 6), 2_000_000)
    await session.commit()

    assert await PriorPeriodResolver().resolve(session, workspace_id, Period(2026, 3)) is None


async def test_legacy_table_is_the_last_fallback(session, workspace_id, add):
    await add(LegacyMonthlyTarget(
        workspace_id=workspace_id, year=2026, month=3, sales_target=900_000, collection_target=700_000
    ))

    target = await TargetResolverChain().resolve(session, workspace_id, Period(2026, 3))

    assert target.source == "legacy"
    assert target.sales_target == 900_000
    assert await LegacyTableResolver().resolve(session, workspace_id, Period(2026, 4)) is None


async def test_chain_returns_none_without_any_target(session, workspace_id):
    assert await TargetResolverChain().resolve(session, workspace_id, Period(2026, 3)) is None


async def test_chain_order_is_configurable(session, workspace_id, add):
    await add(
        MonthlyTarget(workspace_id=workspace_id, period_start=date(2026, 3, 1), sales_target=1_000),
        LegacyMonthlyTarget(workspace_id=workspace_id, year=2026, month=3, sales_target=2_000),
    )

    chain = TargetResolverChain([LegacyTableResolver(), ExactPeriodResolver()])
    target = await chain.resolve(session, workspace_id, Period(2026, 3))

    assert target.source == "legacy"


async def test_bulk_save_writes_each_month(session, workspace_id):
    repo = MonthlyTargetRepository(session)
    rows = await repo.bulk_save(
        workspace_id,
        2026,
        [TargetInput(month, 1_000_000 * month) for month in range(1, 13)],
    )
    await session.commit()

    assert len(rows) == 12
    latest = await repo.list_latest(workspace_id, limit=3)
    assert [row.to_dict()["period"] for row in latest] == ["2026-12", "2026-11", "2026-10"]


async def test_bulk_save_rejects_invalid_months(session, workspace_id):
    with pytest.raises(ValueError):
        await MonthlyTargetRepository(session).bulk_save(workspace_id, 2026, [TargetInput(13, 1_000)])
