import pytest

from vcheck.exceptions import (
    AlreadyExists,
    AlreadyMember,
    Forbidden,
    NotAMember,
    NotFound,
    OfficeInactive,
    UserNotFound,
    WrongJurisdiction,
)
from vcheck.models import UserRole
from vcheck.schemas.common import Coordinate
from vcheck.schemas.office import OfficeCreate, OfficeUpdate
from vcheck.services.office import OfficeDirectory


@pytest.fixture
def directory(db):
    return OfficeDirectory(db)


def new_office(name="District 7 Station", radius=75.0):
    return OfficeCreate(
        name=name,
        address="12 Nguyen Van Linh",
        location=Coordinate(lat=10.7290, lng=106.7190),
        radius=radius,
    )


async def test_admin_creates_office(directory, world):
    admin = await directory.get_user(world.admin_id)

    office = await directory.create_office(admin, new_office())

    assert office.id is not None
    assert office.radius == 75.0
    assert office.is_active is True
    assert office.lat == 10.7290


async def test_default_radius_is_fifty_meters():
    office_in = OfficeCreate(
        name="Harbor Post", address="Pier 3", location=Coordinate(lat=0, lng=0)
    )
    assert office_in.radius == 50.0


async def test_duplicate_office_name_is_rejected(directory, world):
    admin = await directory.get_user(world.admin_id)

    with pytest.raises(AlreadyExists):
        await directory.create_office(admin, new_office(name="District 1 Station"))


async def test_only_admins_manage_offices(directory, world):
    supervisor = await directory.get_user(world.supervisor_id)

    with pytest.raises(Forbidden):
        await directory.create_office(supervisor, new_office())
    with pytest.raises(Forbidden):
        await directory.deactivate_office(supervisor, world.office_id)


async def test_update_moves_the_geofence(directory, world):
    admin = await directory.get_user(world.admin_id)

    office = await directory.update_office(
        admin,
        world.office_id,
        OfficeUpdate(location=Coordinate(lat=10.8, lng=106.65), radius=120),
    )

    assert (office.lat, office.lng, office.radius) == (10.8, 106.65, 120)
    assert office.name == "District 1 Station"


async def test_deactivated_office_is_kept_but_inactive(directory, world):
    admin = await directory.get_user(world.admin_id)

    await directory.deactivate_office(admin, world.office_id)

    office = await directory.get_office(world.office_id)
    assert office.is_active is False
    with pytest.raises(OfficeInactive):
        await directory.get_active_office(world.office_id)
    active = await directory.list_offices(is_active=True)
    assert [o.name for o in active] == ["District 3 Station"]


async def test_add_member_updates_both_sides(directory, world, make_user):
    admin = await directory.get_user(world.admin_id)
    recruit = await make_user("recruit")

    user = await directory.add_member(admin, world.office_id, recruit)

    assert user.office_id == world.office_id
    assert await directory.is_member(world.office_id, recruit)
    members = await directory.list_members(world.office_id)
    assert [m.username for m in members][-1] == "recruit"


async def test_adding_an_existing_member_fails(directory, world):
    supervisor = await directory.get_user(world.supervisor_id)

    with pytest.raises(AlreadyMember):
        await directory.add_member(supervisor, world.office_id, world.officer_id)


async def test_add_member_moves_user_between_offices(directory, world):
    admin = await directory.get_user(world.admin_id)

    user = await directory.add_member(admin, world.other_office_id, world.officer_id)

    assert user.office_id == world.other_office_id
    assert await directory.is_member(world.other_office_id, world.officer_id)
    assert not await directory.is_member(world.office_id, world.officer_id)


async def test_remove_member_clears_assignment(directory, world):
    supervisor = await directory.get_user(world.supervisor_id)

    user = await directory.remove_member(supervisor, world.office_id, world.officer_id)

    assert user.office_id is None
    assert not await directory.is_member(world.office_id, world.officer_id)
    with pytest.raises(NotAMember):
        await directory.remove_member(supervisor, world.office_id, world.officer_id)


async def test_membership_is_limited_to_own_office(directory, world, make_user):
    supervisor = await directory.get_user(world.supervisor_id)
    officer = await directory.get_user(world.officer_id)
    recruit = await make_user("recruit")

    with pytest.raises(WrongJurisdiction):
        await directory.add_member(supervisor, world.other_office_id, recruit)
    with pytest.raises(Forbidden):
        await directory.add_member(officer, world.office_id, recruit)


async def test_add_unknown_user(directory, world):
    admin = await directory.get_user(world.admin_id)
    with pytest.raises(UserNotFound):
        await directory.add_member(admin, world.office_id, 31337)


async def test_supervisor_lookup(directory, world, make_office):
    supervisor = await directory.supervisor_for(world.office_id)
    assert supervisor.id == world.supervisor_id

    empty = await make_office(name="Empty Post")
    with pytest.raises(NotFound):
        await directory.supervisor_for(empty)


async def test_supervisor_lookup_prefers_lowest_id(directory, world, make_user):
    await make_user("deputy_supervisor", UserRole.SUPERVISOR, world.office_id, member=False)

    supervisor = await directory.supervisor_for(world.office_id)
    assert supervisor.id == world.supervisor_id
