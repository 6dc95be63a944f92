"""End-to-end tests for /api/v1/employees through the FastAPI TestClient."""

import pytest

from conftest import ADMIN_AUTH, USER_AUTH

BASE = "/api/v1/employees"


def create(client, name: str, role: str) -> dict:
    response = client.post(BASE, json={"name": name, "role": role}, auth=USER_AUTH)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def seeded(client):
    return [
        create(client, "Charlie Brown", "Engineer"),
        create(client, "Ada Lovelace", "engineer"),
        create(client, "Bob Marley", "Musician"),
    ]


class TestCreate:
    def test_returns_201_with_location(self, client):
        response = client.post(BASE, json={"name": "Ada Lovelace", "role": "Engineer"}, auth=USER_AUTH)
        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "Ada Lovelace"
        assert response.headers["Location"] == f"{BASE}/{body['id']}"

    def test_stores_sanitized_values(self, client):
        body = create(client, "  Zoë Saldaña ", "Engineer\u0007 II")
        assert body["name"] == "Zoë Saldaña"
        assert body["role"] == "Engineer II"

    def test_rejects_invalid_characters(self, client):
        response = client.post(BASE, json={"name": "<script>", "role": "Engineer"}, auth=USER_AUTH)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert body["details"] == "Name contains invalid characters"

    def test_rejects_missing_field_with_field_errors(self, client):
        response = client.post(BASE, json={"name": "Ada Lovelace"}, auth=USER_AUTH)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert [fe["field"] for fe in body["fieldErrors"]] == ["role"]

    def test_rejects_blank_name_with_message(self, client):
        response = client.post(BASE, json={"name": "   ", "role": "Engineer"}, auth=USER_AUTH)
        assert response.status_code == 400
        field_error = response.json()["fieldErrors"][0]
        assert field_error == {"field": "name", "rejectedValue": "   ", "message": "Employee name is required"}


class TestRead:
    def test_get_by_id(self, client, seeded):
        response = client.get(f"{BASE}/{seeded[0]['id']}", auth=USER_AUTH)
        assert response.status_code == 200
        assert response.json() == {"id": seeded[0]["id"], "name": "Charlie Brown", "role": "Engineer"}

    def test_get_missing_is_404(self, client):
        response = client.get(f"{BASE}/999", auth=USER_AUTH)
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "EMPLOYEE_NOT_FOUND"
        assert body["details"] == "Could not find employee with id: 999"
        assert body["path"] == f"{BASE}/999"
        assert len(body["traceId"]) == 12

    def test_list_defaults(self, client, seeded):
        response = client.get(BASE, auth=USER_AUTH)
        assert response.status_code == 200
        assert response.headers["X-Total-Count"] == "3"
        body = response.json()
        assert [e["name"] for e in body["embedded"]["employeeList"]] == [
            "Charlie Brown",
            "Ada Lovelace",
            "Bob Marley",
        ]
        assert body["page"] == {"size": 10, "number": 0, "totalElements": 3, "totalPages": 1}

    def test_list_sorted_and_paged(self, client, seeded):
        response = client.get(
            BASE, params={"sortBy": "name", "sortDir": "DESC", "page": 0, "size": 2}, auth=USER_AUTH
        )
        body = response.json()
        assert [e["name"] for e in body["embedded"]["employeeList"]] == ["Charlie Brown", "Bob Marley"]
        assert body["page"]["totalPages"] == 2

    @pytest.mark.parametrize("sort_by", ["\x01", "\x01\x1f", " \t"])
    def test_list_blank_sort_field_orders_by_id(self, client, seeded, sort_by):
        response = client.get(BASE, params={"sortBy": sort_by}, auth=USER_AUTH)
        assert response.status_code == 200
        assert [e["id"] for e in response.json()["embedded"]["employeeList"]] == [e["id"] for e in seeded]

    @pytest.mark.parametrize(
        "params, details",
        [
            ({"sortBy": "password"}, "Sort field not allowed: password"),
            ({"sortBy": "1name"}, "Invalid sort field: 1name"),
            ({"page": -1}, "Page number cannot be negative"),
            ({"size": 0}, "Page size must be positive"),
            ({"size": 1001}, "Page size too large (max 1000)"),
            ({"page": "10000000000000000000", "size": 10}, "Page number too large"),
        ],
    )
    def test_list_rejects_invalid_parameters(self, client, params, details):
        response = client.get(BASE, params=params, auth=USER_AUTH)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert body["details"] == details

    def test_search(self, client, seeded):
        response = client.get(f"{BASE}/search", params={"name": "brown"}, auth=USER_AUTH)
        assert response.status_code == 200
        body = response.json()
        assert [e["name"] for e in body["embedded"]["employeeList"]] == ["Charlie Brown"]
        assert body["page"]["totalElements"] == 1

    def test_search_requires_name(self, client):
        response = client.get(f"{BASE}/search", auth=USER_AUTH)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "MISSING_PARAMETER"
        assert body["details"] == "Required parameter 'name' is missing"

    def test_by_role_ignores_case(self, client, seeded):
        response = client.get(f"{BASE}/role/ENGINEER", auth=USER_AUTH)
        names = [e["name"] for e in response.json()["embedded"]["employeeList"]]
        assert sorted(names) == ["Ada Lovelace", "Charlie Brown"]

    def test_count(self, client, seeded):
        assert client.get(f"{BASE}/count", auth=USER_AUTH).json() == 3
        assert client.get(f"{BASE}/count", params={"role": "musician"}, auth=USER_AUTH).json() == 1


class TestReplace:
    def test_replace_existing(self, client, seeded):
        target = seeded[2]["id"]
        response = client.put(f"{BASE}/{target}", json={"name": "Robert Marley", "role": "Singer"}, auth=USER_AUTH)
        assert response.status_code == 200
        assert response.json() == {"id": target, "name": "Robert Marley", "role": "Singer"}
        assert "Location" not in response.headers

    def test_upsert_points_location_at_new_id(self, client, seeded):
        response = client.put(f"{BASE}/500", json={"name": "New Person", "role": "Intern"}, auth=USER_AUTH)
        assert response.status_code == 201
        new_id = response.json()["id"]
        assert new_id != 500
        assert response.headers["Location"] == f"{BASE}/{new_id}"
        assert client.get(f"{BASE}/{new_id}", auth=USER_AUTH).status_code == 200


class TestPatch:
    def test_patch_one_field(self, client, seeded):
        target = seeded[0]["id"]
        response = client.patch(f"{BASE}/{target}", json={"role": "Architect"}, auth=USER_AUTH)
        assert response.status_code == 200
        assert response.json() == {"id": target, "name": "Charlie Brown", "role": "Architect"}

    def test_patch_missing_is_404(self, client):
        response = client.patch(f"{BASE}/404", json={"role": "Architect"}, auth=USER_AUTH)
        assert response.status_code == 404
        assert response.json()["error"] == "EMPLOYEE_NOT_FOUND"

    def test_patch_invalid_value(self, client, seeded):
        response = client.patch(f"{BASE}/{seeded[0]['id']}", json={"name": "C"}, auth=USER_AUTH)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert body["fieldErrors"][0]["field"] == "name"


class TestDelete:
    def test_delete_then_404(self, client, seeded):
        target = seeded[0]["id"]
        response = client.delete(f"{BASE}/{target}", auth=ADMIN_AUTH)
        assert response.status_code == 204
        assert response.content == b""

        assert client.delete(f"{BASE}/{target}", auth=ADMIN_AUTH).status_code == 404
        assert client.get(f"{BASE}/count", auth=USER_AUTH).json() == 2
