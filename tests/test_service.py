"""Tests for EmployeeService against an in-memory SQLite database."""

import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from employee_api.api.schemas import EmployeeDto, EmployeePatch
from employee_api.cache.redis_client import EMPLOYEE_COUNT_KEY, employee_key
from employee_api.exceptions import EmployeeValidationError
from employee_api.security.sanitizer import InvalidInput
from employee_api.services.employee_service import EmployeeService, is_descending


def dto(name: str, role: str) -> EmployeeDto:
    return EmployeeDto(name=name, role=role)


@pytest.fixture
def service(db_session, disabled_cache):
    return EmployeeService(db_session, disabled_cache)


@pytest.fixture
async def seeded(service):
    """Five employees, created in this order."""
    people = [
        ("Charlie Brown", "Engineer"),
        ("Ada Lovelace", "engineer"),
        ("Bob Marley", "Musician"),
        ("Eve Online", "Manager"),
        ("Dan Brown", "ENGINEER"),
    ]
    return [await service.create(dto(name, role)) for name, role in people]


class TestIsDescending:
    @pytest.mark.parametrize("value", ["desc", "DESC", " Desc ", "de\u0007sc"])
    def test_desc_in_any_case(self, value):
        assert is_descending(value)

    @pytest.mark.parametrize("value", ["asc", "", None, "descending", "down"])
    def test_everything_else_is_ascending(self, value):
        assert not is_descending(value)


class TestFindAll:
    async def test_default_paging_orders_by_id(self, service, seeded):
        employees, total = await service.find_all()
        assert total == 5
        assert [e.id for e in employees] == sorted(e.id for e in seeded)

    async def test_sort_by_name_descending(self, service, seeded):
        employees, _ = await service.find_all(sort_by="name", sort_dir="DESC")
        assert [e.name for e in employees] == [
            "Eve Online",
            "Dan Brown",
            "Charlie Brown",
            "Bob Marley",
            "Ada Lovelace",
        ]

    async def test_second_page(self, service, seeded):
        employees, total = await service.find_all(page=1, size=2)
        assert total == 5
        assert [e.id for e in employees] == [seeded[2].id, seeded[3].id]

    async def test_page_past_the_end_is_empty(self, service, seeded):
        employees, total = await service.find_all(page=10, size=10)
        assert employees == []
        assert total == 5

    @pytest.mark.parametrize("sort_by", ["", "   ", "\x01", "\x01\x1f", " \t"])
    async def test_blank_sort_field_orders_by_id(self, service, seeded, sort_by):
        employees, _ = await service.find_all(sort_by=sort_by, sort_dir="desc")
        assert [e.id for e in employees] == sorted((e.id for e in seeded), reverse=True)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"page": -1},
            {"size": 0},
            {"size": 1001},
            {"page": 10_000_000_000_000_000_000},
            {"sort_by": "password"},
            {"sort_by": "name; DROP TABLE employees"},
        ],
    )
    async def test_rejects_invalid_parameters(self, service, kwargs):
        with pytest.raises(InvalidInput):
            await service.find_all(**kwargs)


class TestReads:
    async def test_find_by_id(self, service, seeded):
        found = await service.find_by_id(seeded[1].id)
        assert found.name == "Ada Lovelace"

    async def test_find_by_id_missing(self, service):
        assert await service.find_by_id(12345) is None

    async def test_exists_by_id(self, service, seeded):
        assert await service.exists_by_id(seeded[0].id)
        assert not await service.exists_by_id(12345)

    async def test_search_by_name_is_case_insensitive_containment(self, service, seeded):
        results = await service.search("BROWN")
        assert sorted(e.name for e in results) == ["Charlie Brown", "Dan Brown"]

    async def test_search_narrowed_by_role(self, service, seeded):
        results = await service.search("brown", role="engineer")
        assert sorted(e.name for e in results) == ["Charlie Brown", "Dan Brown"]
        assert await service.search("brown", role="Musician") == []

    async def test_search_treats_wildcards_literally(self, service, seeded):
        assert await service.search("%") == []
        assert await service.search("_") == []

    async def test_find_by_role_ignores_case(self, service, seeded):
        results = await service.find_by_role("Engineer")
        assert sorted(e.name for e in results) == ["Ada Lovelace", "Charlie Brown", "Dan Brown"]

    async def test_role_match_folds_ascii_around_accented_letters(self, service):
        created = await service.create(dto("Amélie Poulain", "Ingénieur"))
        results = await service.find_by_role("INGéNIEUR")
        assert [e.id for e in results] == [created.id]
        assert await service.count(role="ingénieur") == 1

    async def test_count(self, service, seeded):
        assert await service.count() == 5
        assert await service.count(role="engineer") == 3
        assert await service.count(role="Nobody") == 0


class TestWrites:
    async def test_create_ignores_client_id(self, service):
        created = await service.create(EmployeeDto(id=999, name="Ada Lovelace", role="Engineer"))
        assert created.id != 999

    async def test_create_rejects_invalid_name(self, service):
        with pytest.raises(InvalidInput):
            await service.create(dto("Ada <script>", "Engineer"))
        assert await service.count() == 0

    async def test_create_rejects_short_sanitized_name(self, service):
        # Passes the 2-character schema check, but is a single letter once
        # the control character is stripped.
        with pytest.raises(EmployeeValidationError):
            await service.create(dto("A\u0007", "Engineer"))

    async def test_update_existing(self, service, seeded):
        saved, created = await service.update(seeded[0].id, dto("Charles Brown", "Architect"))
        assert not created
        assert saved.id == seeded[0].id
        assert (saved.name, saved.role) == ("Charles Brown", "Architect")

    async def test_update_missing_creates_with_new_id(self, service, seeded):
        saved, created = await service.update(5000, dto("New Person", "Intern"))
        assert created
        assert saved.id != 5000
        assert await service.exists_by_id(saved.id)
        assert await service.count() == 6

    async def test_update_invalid_leaves_record_unchanged(self, service, seeded):
        with pytest.raises(InvalidInput):
            await service.update(seeded[0].id, dto("Charles Brown", "Architect!"))
        found = await service.find_by_id(seeded[0].id)
        assert (found.name, found.role) == ("Charlie Brown", "Engineer")

    async def test_partial_update(self, service, seeded):
        patched = await service.partial_update(seeded[2].id, EmployeePatch(role="Legend"))
        assert (patched.name, patched.role) == ("Bob Marley", "Legend")

    async def test_partial_update_missing(self, service):
        assert await service.partial_update(12345, EmployeePatch(name="Nobody Here")) is None

    async def test_delete(self, service, seeded):
        assert await service.delete_by_id(seeded[0].id)
        assert not await service.exists_by_id(seeded[0].id)
        assert not await service.delete_by_id(seeded[0].id)


class TestCaching:
    """The service talks to Redis only through RedisCache; the client is mocked."""

    @pytest.fixture
    def cached_service(self, db_session, connected_cache):
        return EmployeeService(db_session, connected_cache)

    async def test_find_by_id_served_from_cache(self, cached_service, redis_mock, db_session):
        redis_mock.get.return_value = json.dumps({"id": 77, "name": "Cached Person", "role": "Ghost"})
        found = await cached_service.find_by_id(77)
        assert found == EmployeeDto(id=77, name="Cached Person", role="Ghost")
        redis_mock.get.assert_awaited_once_with(employee_key(77))

    async def test_find_by_id_miss_populates_cache(self, cached_service, redis_mock):
        created = await cached_service.create(dto("Ada Lovelace", "Engineer"))
        redis_mock.get.return_value = None

        await cached_service.find_by_id(created.id)

        key, payload = redis_mock.set.await_args.args
        assert key == employee_key(created.id)
        assert json.loads(payload)["name"] == "Ada Lovelace"

    async def test_create_evicts_count(self, cached_service, redis_mock):
        await cached_service.create(dto("Ada Lovelace", "Engineer"))
        redis_mock.delete.assert_awaited_with(EMPLOYEE_COUNT_KEY)

    async def test_delete_evicts_employee_and_count(self, cached_service, redis_mock):
        created = await cached_service.create(dto("Ada Lovelace", "Engineer"))
        await cached_service.delete_by_id(created.id)
        redis_mock.delete.assert_awaited_with(employee_key(created.id), EMPLOYEE_COUNT_KEY)

    async def test_count_is_cached(self, cached_service, redis_mock):
        redis_mock.get.return_value = "42"
        assert await cached_service.count() == 42

    async def test_redis_failure_falls_back_to_database(self, cached_service, redis_mock):
        created = await cached_service.create(dto("Ada Lovelace", "Engineer"))
        redis_mock.get.side_effect = RedisConnectionError("redis down")
        redis_mock.set.side_effect = RedisConnectionError("redis down")

        found = await cached_service.find_by_id(created.id)
        assert found.name == "Ada Lovelace"
