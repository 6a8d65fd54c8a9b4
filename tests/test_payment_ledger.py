"""
Unit tests for PaymentLedger status transitions and order uniqueness
"""
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from crud.payment import PaymentLedger
from crud.user import UserRepository
from database import Base
from database_models import utcnow
from services.errors import DuplicateOrderError, InvalidTransitionError, NotFoundError


async def _pending(ledger, user, order_id="order_abc123"):
    return await ledger.create_pending_payment(
        user_id=user.id,
        order_id=order_id,
        amount=1000,
        currency="INR",
        plan_type="bronze",
        plan_duration_days=30,
        allowed_watch_duration=420,
    )


@pytest.mark.asyncio
async def test_create_pending_payment(test_db, user):
    ledger = PaymentLedger(test_db)

    payment = await _pending(ledger, user)

    assert payment.id is not None
    assert payment.status == "pending"
    assert payment.payment_id is None
    assert payment.signature is None
    assert payment.expiry_date is None


@pytest.mark.asyncio
async def test_duplicate_order_rejected_and_first_stays_pending(test_db, user):
    ledger = PaymentLedger(test_db)
    await _pending(ledger, user)

    with pytest.raises(DuplicateOrderError):
        await _pending(ledger, user)

    first = await ledger.find_by_order_id("order_abc123")
    assert first.status == "pending"
    assert len(await ledger.list_for_user(user.id)) == 1


@pytest.mark.asyncio
async def test_mark_completed_sets_payment_fields(test_db, user):
    ledger = PaymentLedger(test_db)
    await _pending(ledger, user)
    expiry = utcnow() + timedelta(days=30)

    payment = await ledger.mark_completed("order_abc123", "pay_xyz", "sig", expiry)

    assert payment.status == "completed"
    assert payment.payment_id == "pay_xyz"
    assert payment.signature == "sig"
    assert payment.expiry_date == expiry
    assert payment.payment_date is not None


@pytest.mark.asyncio
async def test_mark_completed_is_one_shot(test_db, user):
    ledger = PaymentLedger(test_db)
    await _pending(ledger, user)
    expiry = utcnow() + timedelta(days=30)
    await ledger.mark_completed("order_abc123", "pay_xyz", "sig", expiry)

    with pytest.raises(InvalidTransitionError) as exc:
        await ledger.mark_completed("order_abc123", "pay_other", "sig2", expiry)

    assert exc.value.current_status == "completed"
    payment = await ledger.find_by_order_id("order_abc123")
    assert payment.payment_id == "pay_xyz"


@pytest.mark.asyncio
async def test_failed_payment_cannot_complete(test_db, user):
    ledger = PaymentLedger(test_db)
    await _pending(ledger, user)

    await ledger.mark_failed("order_abc123", notes="declined")

    with pytest.raises(InvalidTransitionError):
        await ledger.mark_completed("order_abc123", "pay_xyz", "sig", utcnow())
    with pytest.raises(InvalidTransitionError):
        await ledger.mark_failed("order_abc123")

    payment = await ledger.find_by_order_id("order_abc123")
    await test_db.refresh(payment)
    assert payment.status == "failed"
    assert payment.notes == "declined"


@pytest.mark.asyncio
async def test_unknown_order_not_found(test_db):
    ledger = PaymentLedger(test_db)

    with pytest.raises(NotFoundError):
        await ledger.find_by_order_id("order_missing")
    with pytest.raises(NotFoundError):
        await ledger.mark_completed("order_missing", "pay", "sig", utcnow())
    with pytest.raises(NotFoundError):
        await ledger.mark_failed("order_missing")


@pytest.mark.asyncio
async def test_list_for_user_filters_by_status(test_db, user, other_user):
    ledger = PaymentLedger(test_db)
    await _pending(ledger, user, "order_1")
    await _pending(ledger, user, "order_2")
    await _pending(ledger, other_user, "order_3")
    await ledger.mark_failed("order_1")

    pending = await ledger.list_for_user(user.id, status="pending")
    everything = await ledger.list_for_user(user.id)

    assert [p.order_id for p in pending] == ["order_2"]
    assert {p.order_id for p in everything} == {"order_1", "order_2"}


@pytest.fixture
async def file_sessions(tmp_path):
    """Session factory over a file-backed database, so separate sessions get separate connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", future=True)
    async with engine.begin() as conn:
        import database_models  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest.mark.asyncio
async def test_duplicate_order_lost_race_hits_unique_index(file_sessions):
    async with file_sessions() as setup:
        user = await UserRepository(setup).create_user({"email": "racer@example.com"})
        await setup.commit()

    async with file_sessions() as racer, file_sessions() as rival:
        ledger = PaymentLedger(racer)
        precheck = ledger._get

        async def precheck_then_lose_race(order_id):
            found = await precheck(order_id)
            # another request records the same order after our pre-check saw nothing
            await _pending(PaymentLedger(rival), user, order_id)
            await rival.commit()
            return found

        ledger._get = precheck_then_lose_race

        with pytest.raises(DuplicateOrderError):
            await _pending(ledger, user)

        # the failed insert only rolled back its savepoint
        winner = await ledger.find_by_order_id("order_abc123")
        assert winner.status == "pending"
        assert len(await ledger.list_for_user(user.id)) == 1
        await racer.commit()
