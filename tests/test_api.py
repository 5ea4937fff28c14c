"""
main.py tests

HTTP surface over the ledger store, error mapping and persistence
"""

import pytest
from fastapi.testclient import TestClient

from config import Config
from errors import StorageError
from ledger_store import LedgerStore
from main import build_app, create_app
from storage import GroupRepository


class UnwritableRepository(GroupRepository):
    """Repository whose every save fails"""

    def save(self, groups) -> None:
        raise StorageError("disk full")


def create_trio(client: TestClient) -> dict:
    response = client.post("/groups/", json={"name": "Road trip", "member_names": ["A", "B", "C"]})
    assert response.status_code == 201
    return response.json()


class TestGroups:
    """Group endpoints"""

    def test_root(self, client: TestClient) -> None:
        assert client.get("/").status_code == 200

    def test_create_and_get_group(self, client: TestClient) -> None:
        group = create_trio(client)
        assert [m["name"] for m in group["members"]] == ["A", "B", "C"]

        fetched = client.get(f"/groups/{group['id']}").json()
        assert fetched == group
        assert [g["id"] for g in client.get("/groups/").json()] == [group["id"]]

    def test_create_group_without_members(self, client: TestClient) -> None:
        response = client.post("/groups/", json={"name": "Empty", "member_names": []})
        assert response.status_code == 400

    def test_unknown_group(self, client: TestClient) -> None:
        assert client.get("/groups/missing").status_code == 404


class TestMembers:
    """Member endpoints"""

    def test_add_and_remove_member(self, client: TestClient) -> None:
        group = create_trio(client)
        member = client.post(f"/groups/{group['id']}/members", json={"name": "D"}).json()

        response = client.delete(f"/groups/{group['id']}/members/{member['id']}")
        assert response.status_code == 200
        assert len(client.get(f"/groups/{group['id']}").json()["members"]) == 3

    def test_remove_referenced_member_conflicts(self, client: TestClient) -> None:
        group = create_trio(client)
        payer = group["members"][0]["id"]
        client.post(f"/groups/{group['id']}/expenses", json={"title": "Fuel", "amount": 60, "paid_by": payer})

        response = client.delete(f"/groups/{group['id']}/members/{payer}")
        assert response.status_code == 409
        assert "referenced" in response.json()["detail"]

    def test_remove_unknown_member(self, client: TestClient) -> None:
        group = create_trio(client)
        assert client.delete(f"/groups/{group['id']}/members/missing").status_code == 404


class TestExpensesAndBalances:
    """Expense, balance and spending endpoints"""

    def test_balances_after_expense(self, client: TestClient) -> None:
        group = create_trio(client)
        a, b, c = (m["id"] for m in group["members"])
        response = client.post(
            f"/groups/{group['id']}/expenses",
            json={"title": "Fuel", "amount": 30, "paid_by": a, "category": "transport"},
        )
        assert response.status_code == 201
        assert response.json()["split_between"] == [a, b, c]

        balances = client.get(f"/groups/{group['id']}/balances").json()
        assert balances["balances"] == {a: 20.0, b: -10.0, c: -10.0}
        assert balances["display"] == "owed $20.00"

        viewer_b = client.get(f"/groups/{group['id']}/balances", params={"viewer_member_id": b}).json()
        assert viewer_b["display"] == "owe $10.00"

    def test_zero_amount_rejected(self, client: TestClient) -> None:
        group = create_trio(client)
        payer = group["members"][0]["id"]
        response = client.post(f"/groups/{group['id']}/expenses", json={"title": "Fuel", "amount": 0, "paid_by": payer})
        assert response.status_code == 400
        assert client.get(f"/groups/{group['id']}/expenses").json() == []

    def test_unknown_viewer(self, client: TestClient) -> None:
        group = create_trio(client)
        response = client.get(f"/groups/{group['id']}/balances", params={"viewer_member_id": "nobody"})
        assert response.status_code == 404

    def test_spending_and_filtered_expenses(self, client: TestClient) -> None:
        group = create_trio(client)
        payer = group["members"][1]["id"]
        for title, amount, category in (("Pizza", 24, "food"), ("Bus", 6, "transport"), ("Tacos", 16, "food")):
            client.post(
                f"/groups/{group['id']}/expenses",
                json={"title": title, "amount": amount, "paid_by": payer, "category": category},
            )

        spending = client.get(f"/groups/{group['id']}/spending").json()
        assert spending["total_spent"] == 46
        assert spending["spending_by_category"] == {"food": 40, "transport": 6}

        food = client.get(f"/groups/{group['id']}/expenses", params={"category": "food"}).json()
        assert [e["title"] for e in food] == ["Pizza", "Tacos"]


class TestPersistence:
    """Saving after every mutation and reloading on startup"""

    def test_mutations_are_persisted(self, client: TestClient, repository: GroupRepository) -> None:
        group = create_trio(client)
        payer = group["members"][0]["id"]
        client.post(f"/groups/{group['id']}/expenses", json={"title": "Fuel", "amount": 30, "paid_by": payer})

        saved = repository.load()
        assert len(saved) == 1
        assert saved[0].expenses[0].title == "Fuel"

    def test_restart_restores_groups(self, client: TestClient, repository: GroupRepository) -> None:
        group = create_trio(client)
        restarted = TestClient(create_app(repository=repository))
        assert restarted.get(f"/groups/{group['id']}").json() == group

    def test_failed_mutation_is_not_persisted(self, client: TestClient, repository: GroupRepository) -> None:
        client.post("/groups/", json={"name": "", "member_names": ["A"]})
        assert repository.load() == []


class TestSaveFailure:
    """A mutation whose save fails is rolled back"""

    def test_failed_create_is_rolled_back(self, tmp_path) -> None:
        client = TestClient(create_app(repository=UnwritableRepository(str(tmp_path / "groups.json"))))
        body = {"name": "Road trip", "member_names": ["A", "B"]}

        assert client.post("/groups/", json=body).status_code == 500
        assert client.get("/groups/").json() == []

        retry = client.post("/groups/", json=body)
        assert retry.status_code == 500
        assert "disk full" in retry.json()["detail"]
        assert client.get("/groups/").json() == []

    def test_failed_expense_is_rolled_back(self, tmp_path) -> None:
        store = LedgerStore()
        group = store.create_group("Road trip", ["A", "B"])
        client = TestClient(create_app(store=store, repository=UnwritableRepository(str(tmp_path / "groups.json"))))

        response = client.post(
            f"/groups/{group.id}/expenses",
            json={"title": "Fuel", "amount": 30, "paid_by": group.members[0].id},
        )
        assert response.status_code == 500
        assert store.get_group(group.id).expenses == []

    def test_failed_removal_is_rolled_back(self, tmp_path) -> None:
        store = LedgerStore()
        group = store.create_group("Road trip", ["A", "B"])
        client = TestClient(create_app(store=store, repository=UnwritableRepository(str(tmp_path / "groups.json"))))

        response = client.delete(f"/groups/{group.id}/members/{group.members[1].id}")
        assert response.status_code == 500
        assert store.get_group(group.id) == group


class TestBuildApp:
    """build_app validates the settings and uses the configured groups file"""

    def test_uses_configured_groups_file(self, monkeypatch, tmp_path) -> None:
        groups_file = tmp_path / "data" / "groups.json"
        monkeypatch.setattr(Config, "GROUPS_FILE", str(groups_file))

        client = TestClient(build_app())
        create_trio(client)
        assert groups_file.exists()

    def test_invalid_settings_rejected(self, monkeypatch, tmp_path) -> None:
        monkeypatch.setattr(Config, "GROUPS_FILE", str(tmp_path / "groups.json"))
        monkeypatch.setattr(Config, "PORT", 0)
        with pytest.raises(ValueError):
            build_app()
