from datetime import timedelta

import pytest
from sqlalchemy import select

from conftest import OFFICE_LAT, OFFICE_LNG, T0, BrokenCache, north_of
from vcheck.exceptions import (
    AccountInactive,
    AlreadyCheckedInToday,
    AlreadyCheckedOut,
    Forbidden,
    NoCheckinFound,
    NoOfficeAssigned,
    NotAMember,
    NotFound,
    OfficeInactive,
    OfficeNotFound,
)
from vcheck.models import Attendance, Facet, Office, Validity
from vcheck.redis_config import NullCache
from vcheck.schemas.common import Coordinate
from vcheck.services.attendance import AttendanceLedger
from vcheck.services.office import OfficeDirectory
from vcheck.utils.geo import distance_meters


def at(meters: float) -> Coordinate:
    return Coordinate(lat=north_of(OFFICE_LAT, meters), lng=OFFICE_LNG)


@pytest.fixture
def ledger(db, cache, events):
    return AttendanceLedger(db, cache, events)


async def test_checkin_within_radius_is_valid_and_pending(ledger, world):
    result = await ledger.check_in(world.officer_id, world.office_id, at(30), now=T0)

    record = result.record
    assert record.status == Validity.VALID.value
    assert record.checkin_status == "pending"
    assert record.distance == pytest.approx(30.0, abs=0.01)
    assert result.needs_reason is False
    assert result.max_distance == 50.0
    assert record.officer_name == "Officer A"
    assert record.office_name == "District 1 Station"
    assert record.checkout_time is None
    assert record.checkout_status is None


async def test_checkin_outside_radius_is_stored_as_invalid(ledger, world):
    result = await ledger.check_in(world.officer_id, world.office_id, at(120), now=T0)

    assert result.record.id is not None
    assert result.record.status == Validity.INVALID.value
    assert result.record.checkin_status == "pending"
    assert result.needs_reason is True
    assert "reason" in result.message


async def test_checkin_exactly_on_the_fence_is_valid(db, ledger, world):
    point = at(37)
    office = await db.get(Office, world.office_id)
    office.radius = distance_meters(point.lat, point.lng, OFFICE_LAT, OFFICE_LNG)
    await db.commit()

    result = await ledger.check_in(world.officer_id, world.office_id, point, now=T0)

    assert result.distance == office.radius
    assert result.record.status == Validity.VALID.value


async def test_checkin_preconditions_are_checked_in_order(db, ledger, world, make_user, make_office):
    inactive = await make_user("inactive_officer", office_id=world.office_id, is_active=False)
    with pytest.raises(AccountInactive):
        await ledger.check_in(inactive, 9999, at(0), now=T0)

    unassigned = await make_user("unassigned_officer")
    with pytest.raises(NoOfficeAssigned):
        await ledger.check_in(unassigned, 9999, at(0), now=T0)

    with pytest.raises(OfficeNotFound):
        await ledger.check_in(world.officer_id, 9999, at(0), now=T0)

    closed = await make_office(name="Closed Station", is_active=False)
    with pytest.raises(OfficeInactive):
        await ledger.check_in(world.officer_id, closed, at(0), now=T0)

    with pytest.raises(NotAMember):
        await ledger.check_in(world.officer_id, world.other_office_id, at(0), now=T0)

    count = await db.scalar(select(Attendance.id).limit(1))
    assert count is None


async def test_second_checkin_same_day_is_rejected(ledger, world, cache):
    await ledger.check_in(world.officer_id, world.office_id, at(10), now=T0)

    with pytest.raises(AlreadyCheckedInToday):
        await ledger.check_in(
            world.officer_id, world.office_id, at(10), now=T0 + timedelta(hours=3)
        )
    assert cache.store == {f"attendance:{world.officer_id}:2026-03-02": "checked_in"}


async def test_unique_index_rejects_duplicate_when_cache_is_cold(db, world):
    ledger = AttendanceLedger(db, NullCache())
    await ledger.check_in(world.officer_id, world.office_id, at(10), now=T0)

    with pytest.raises(AlreadyCheckedInToday):
        await ledger.check_in(
            world.officer_id, world.office_id, at(10), now=T0 + timedelta(minutes=1)
        )

    rows = (await db.execute(select(Attendance))).scalars().all()
    assert len(rows) == 1


async def test_one_checkin_per_day_regardless_of_office(db, ledger, world):
    await ledger.check_in(world.officer_id, world.office_id, at(10), now=T0)

    # Officer is moved to another office later the same day.
    admin = await OfficeDirectory(db).get_user(world.admin_id)
    await OfficeDirectory(db).add_member(admin, world.other_office_id, world.officer_id)

    with pytest.raises(AlreadyCheckedInToday):
        await ledger.check_in(
            world.officer_id,
            world.other_office_id,
            Coordinate(lat=10.7830, lng=106.6870),
            now=T0 + timedelta(hours=1),
        )


async def test_checkin_next_day_is_allowed(ledger, world):
    await ledger.check_in(world.officer_id, world.office_id, at(10), now=T0)
    result = await ledger.check_in(
        world.officer_id, world.office_id, at(10), now=T0 + timedelta(days=1)
    )
    assert str(result.record.checkin_date) == "2026-03-03"


async def test_checkout_without_checkin_fails(ledger, world):
    with pytest.raises(NoCheckinFound):
        await ledger.check_out(world.officer_id, world.office_id, at(10), now=T0)


async def test_checkout_at_a_different_office_finds_no_checkin(ledger, world):
    await ledger.check_in(world.officer_id, world.office_id, at(10), now=T0)
    with pytest.raises(NoCheckinFound):
        await ledger.check_out(
            world.officer_id, world.other_office_id, at(10), now=T0 + timedelta(hours=1)
        )


async def test_checkout_computes_total_hours(ledger, world):
    await ledger.check_in(world.officer_id, world.office_id, at(10), now=T0)

    result = await ledger.check_out(
        world.officer_id, world.office_id, at(20), now=T0 + timedelta(hours=2, minutes=30)
    )

    record = result.record
    assert record.total_hours == 2.5
    assert record.checkout_status == "pending"
    assert record.checkout_distance == pytest.approx(20.0, abs=0.01)
    assert record.checkin_status == "pending"
    assert result.needs_reason is False


async def test_checkout_out_of_range_needs_reason(ledger, world):
    await ledger.check_in(world.officer_id, world.office_id, at(10), now=T0)
    result = await ledger.check_out(
        world.officer_id, world.office_id, at(500), now=T0 + timedelta(hours=8)
    )
    assert result.needs_reason is True
    assert result.record.status == Validity.VALID.value


async def test_second_checkout_is_rejected(ledger, world):
    await ledger.check_in(world.officer_id, world.office_id, at(10), now=T0)
    first = await ledger.check_out(
        world.officer_id, world.office_id, at(10), now=T0 + timedelta(hours=4)
    )
    first_checkout = first.record.checkout_time

    with pytest.raises(AlreadyCheckedOut):
        await ledger.check_out(
            world.officer_id, world.office_id, at(10), now=T0 + timedelta(hours=5)
        )
    assert first.record.checkout_time == first_checkout
    assert first.record.total_hours == 4.0


async def test_checkout_rejects_inactive_account(db, ledger, world, make_user):
    ghost = await make_user("ghost_officer", office_id=world.office_id, is_active=False)
    with pytest.raises(AccountInactive):
        await ledger.check_out(ghost, world.office_id, at(10), now=T0)


async def test_attach_reason_to_own_record(ledger, world):
    result = await ledger.check_in(world.officer_id, world.office_id, at(120), now=T0)

    record = await ledger.attach_reason(
        result.record.id, world.officer_id, Facet.CHECKIN, "GPS drift", "data:image/png;base64,AAA"
    )

    assert record.checkin_reason == "GPS drift"
    assert record.checkin_reason_photo == "data:image/png;base64,AAA"
    assert record.checkin_status == "pending"
    assert record.checkout_reason is None


async def test_attach_reason_to_someone_elses_record_is_forbidden(ledger, world, make_user):
    result = await ledger.check_in(world.officer_id, world.office_id, at(120), now=T0)
    intruder = await make_user("intruder", office_id=world.office_id)

    with pytest.raises(Forbidden):
        await ledger.attach_reason(result.record.id, intruder, Facet.CHECKIN, "mine now")


async def test_attach_reason_to_missing_record(ledger, world):
    with pytest.raises(NotFound):
        await ledger.attach_reason(424242, world.officer_id, Facet.CHECKOUT, "late bus")


async def test_history_is_scoped_for_supervisors(db, ledger, world, make_user):
    await ledger.check_in(world.officer_id, world.office_id, at(10), now=T0)
    other_officer = await make_user("officer_e", office_id=world.other_office_id)
    await ledger.check_in(
        other_officer, world.other_office_id, Coordinate(lat=10.7830, lng=106.6870), now=T0
    )

    records, total = await ledger.list_records(world.supervisor_id)
    assert total == 1
    assert records[0].user_id == world.officer_id

    records, total = await ledger.list_records(world.admin_id, validity=Validity.VALID)
    assert total == 2

    with pytest.raises(Forbidden):
        await ledger.list_records(world.officer_id)


async def test_history_filters_by_date_range(ledger, world):
    for day in range(3):
        await ledger.check_in(
            world.officer_id, world.office_id, at(10), now=T0 + timedelta(days=day)
        )

    records, total = await ledger.list_records(
        world.admin_id,
        start_date=(T0 + timedelta(days=1)).date(),
        end_date=(T0 + timedelta(days=2)).date(),
        page=1,
        limit=1,
    )
    assert total == 2
    assert len(records) == 1
    assert str(records[0].checkin_date) == "2026-03-04"

    mine = await ledger.list_mine(world.officer_id)
    assert [str(r.checkin_date) for r in mine] == ["2026-03-04", "2026-03-03", "2026-03-02"]


async def test_checkin_survives_cache_outage(db, world):
    ledger = AttendanceLedger(db, BrokenCache())

    result = await ledger.check_in(world.officer_id, world.office_id, at(10), now=T0)
    assert result.record.id is not None

    with pytest.raises(AlreadyCheckedInToday):
        await ledger.check_in(
            world.officer_id, world.office_id, at(10), now=T0 + timedelta(minutes=5)
        )

    rows = (await db.execute(select(Attendance))).scalars().all()
    assert len(rows) == 1


async def test_concurrent_checkout_loses_on_conditional_update(
    db, session_factory, ledger, world
):
    checkin = await ledger.check_in(world.officer_id, world.office_id, at(10), now=T0)
    record_id = checkin.record.id

    async with session_factory() as stale:
        # Loaded before the other checkout commits, so the read-side check passes.
        await stale.get(Attendance, record_id)
        winner = await ledger.check_out(
            world.officer_id, world.office_id, at(10), now=T0 + timedelta(hours=4)
        )

        with pytest.raises(AlreadyCheckedOut):
            await AttendanceLedger(stale, NullCache()).check_out(
                world.officer_id, world.office_id, at(40), now=T0 + timedelta(hours=6)
            )

    record = await db.get(Attendance, record_id)
    await db.refresh(record)
    assert record.total_hours == winner.record.total_hours == 4.0
    assert record.checkout_distance == pytest.approx(10.0, abs=0.01)
