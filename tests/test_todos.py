import pytest

from app.core.exceptions import Forbidden, InvalidArgument, NotFound, Unavailable
from app.modules.todos.service import TodoService
from tests.helpers import API, auth_headers


@pytest.fixture
def service(supabase):
    return TodoService(supabase)


@pytest.fixture
def groceries(service, group_id):
    return service.create_list(group_id, "alice", "Groceries", ["Milk", "Eggs", "Bread"])


def labels(todo_list):
    return [item.label for item in todo_list.items]


def positions(todo_list):
    return [item.position for item in todo_list.items]


class TestCreate:
    def test_duplicates_collapse_keeping_first_spelling(self, service, group_id):
        todo_list = service.create_list(group_id, "bob", " Chores ", ["Dishes", "dishes", " Laundry ", ""])
        assert todo_list.title == "Chores"
        assert labels(todo_list) == ["Dishes", "Laundry"]
        assert positions(todo_list) == [0, 1]
        assert all(item.group_id == group_id for item in todo_list.items)

    @pytest.mark.parametrize("title, items, message", [
        ("", ["A"], "List title is required."),
        ("Chores", ["  ", ""], "Add at least one item."),
        ("Chores", [str(n) for n in range(11)], "Lists can include up to 10 tasks."),
    ])
    def test_validation(self, service, group_id, title, items, message):
        with pytest.raises(InvalidArgument) as exc:
            service.create_list(group_id, "alice", title, items)
        assert exc.value.detail == message

    def test_ten_items_is_allowed(self, service, group_id):
        todo_list = service.create_list(group_id, "alice", "Packing", [f"thing {n}" for n in range(10)])
        assert len(todo_list.items) == 10

    def test_failed_items_roll_back_the_list(self, service, supabase, group_id):
        supabase.fail_on("group_list_items", "insert")
        with pytest.raises(Unavailable):
            service.create_list(group_id, "alice", "Groceries", ["Milk"])
        assert supabase.rows("group_lists") == []


class TestItems:
    def test_add_appends_at_the_end(self, service, group_id, groceries):
        todo_list = service.add_item(group_id, groceries.id, "bob", " Butter ")
        assert labels(todo_list) == ["Milk", "Eggs", "Bread", "Butter"]
        assert positions(todo_list) == [0, 1, 2, 3]

    def test_add_rejects_duplicates_and_blank(self, service, group_id, groceries):
        with pytest.raises(InvalidArgument) as exc:
            service.add_item(group_id, groceries.id, "bob", "EGGS")
        assert exc.value.detail == "That item is already on the list."
        with pytest.raises(InvalidArgument) as exc:
            service.add_item(group_id, groceries.id, "bob", "  ")
        assert exc.value.detail == "Item label is required."

    def test_add_respects_the_cap(self, service, group_id):
        todo_list = service.create_list(group_id, "alice", "Full", [f"t{n}" for n in range(10)])
        with pytest.raises(InvalidArgument) as exc:
            service.add_item(group_id, todo_list.id, "alice", "one more")
        assert exc.value.detail == "Lists can include up to 10 tasks."

    def test_toggle_flips_completed(self, service, group_id, groceries):
        milk = groceries.items[0].id
        todo_list = service.toggle_item(group_id, groceries.id, milk, "bob")
        assert todo_list.items[0].completed is True
        todo_list = service.toggle_item(group_id, groceries.id, milk, "alice")
        assert todo_list.items[0].completed is False

    def test_update_sets_explicit_values(self, service, group_id, groceries):
        eggs = groceries.items[1].id
        todo_list = service.update_item(group_id, groceries.id, eggs, "bob", completed=True, label="Free-range eggs")
        assert todo_list.items[1].completed is True
        assert todo_list.items[1].label == "Free-range eggs"
        todo_list = service.update_item(group_id, groceries.id, eggs, "bob", completed=True)
        assert todo_list.items[1].completed is True

    def test_update_validation(self, service, group_id, groceries):
        eggs = groceries.items[1].id
        with pytest.raises(InvalidArgument) as exc:
            service.update_item(group_id, groceries.id, eggs, "bob")
        assert exc.value.detail == "No updates provided."
        with pytest.raises(InvalidArgument):
            service.update_item(group_id, groceries.id, eggs, "bob", label="milk")
        with pytest.raises(NotFound) as exc:
            service.update_item(group_id, groceries.id, "nope", "bob", completed=True)
        assert exc.value.detail == "Item not found."

    def test_remove_closes_the_gap(self, service, group_id, groceries):
        todo_list = service.remove_item(group_id, groceries.id, groceries.items[1].id, "bob")
        assert labels(todo_list) == ["Milk", "Bread"]
        assert positions(todo_list) == [0, 1]

    def test_list_can_be_emptied(self, service, group_id):
        todo_list = service.create_list(group_id, "alice", "Solo", ["Only"])
        todo_list = service.remove_item(group_id, todo_list.id, todo_list.items[0].id, "alice")
        assert todo_list.items == []


class TestReorder:
    def test_applies_permutation(self, service, group_id, groceries):
        milk, eggs, bread = [item.id for item in groceries.items]
        todo_list = service.reorder_items(group_id, groceries.id, [bread, milk, eggs], "bob")
        assert labels(todo_list) == ["Bread", "Milk", "Eggs"]
        assert positions(todo_list) == [0, 1, 2]

    def test_foreign_ids_are_ignored(self, service, group_id, groceries):
        other = service.create_list(group_id, "bob", "Chores", ["Dishes"])
        milk, eggs, bread = [item.id for item in groceries.items]
        todo_list = service.reorder_items(group_id, groceries.id, [other.items[0].id, eggs, milk, bread], "bob")
        assert labels(todo_list) == ["Eggs", "Milk", "Bread"]
        assert labels(service._load_list(group_id, other.id)) == ["Dishes"]

    def test_empty_order_rejected(self, service, group_id, groceries):
        with pytest.raises(InvalidArgument) as exc:
            service.reorder_items(group_id, groceries.id, [], "bob")
        assert exc.value.detail == "Item order is required."

    def test_stops_at_first_failure(self, service, supabase, group_id, groceries):
        milk, eggs, bread = [item.id for item in groceries.items]
        supabase.fail_on("group_list_items", "update", after=1)
        with pytest.raises(Unavailable) as exc:
            service.reorder_items(group_id, groceries.id, [bread, milk, eggs], "bob")
        assert exc.value.detail == "Unable to reorder items."


class TestDeleteList:
    def test_only_creator(self, service, group_id, groceries):
        with pytest.raises(Forbidden) as exc:
            service.delete_list(group_id, groceries.id, "bob")
        assert exc.value.detail == "Only the list creator can remove it."

    def test_removes_items(self, service, supabase, group_id, groceries):
        service.delete_list(group_id, groceries.id, "alice")
        assert supabase.rows("group_lists") == []
        assert supabase.rows("group_list_items") == []


def test_lists_are_group_scoped(service, group_id, groceries):
    with pytest.raises(Forbidden):
        service.list_lists(group_id, "carol")
    assert [t.id for t in service.list_lists(group_id, "bob")] == [groceries.id]


@pytest.mark.asyncio
async def test_todo_routes(client, group_id):
    response = await client.post(
        f"{API}/groups/{group_id}/todos",
        json={"title": "Groceries", "items": ["Milk", "Eggs"]},
        headers=auth_headers("bob"),
    )
    assert response.status_code == 201
    todo_list = response.json()["list"]
    milk, eggs = [item["id"] for item in todo_list["items"]]
    base = f"{API}/groups/{group_id}/todos/{todo_list['id']}"

    response = await client.post(f"{base}/items/{milk}/toggle", headers=auth_headers("alice"))
    assert response.json()["list"]["items"][0]["completed"] is True

    response = await client.patch(f"{base}/reorder", json={"item_ids": [eggs, milk]}, headers=auth_headers("alice"))
    assert [i["label"] for i in response.json()["list"]["items"]] == ["Eggs", "Milk"]

    response = await client.patch(f"{base}/items/{eggs}", json={"completed": True}, headers=auth_headers("alice"))
    assert all(i["completed"] for i in response.json()["list"]["items"])

    response = await client.post(f"{base}/items", json={"label": "milk"}, headers=auth_headers("alice"))
    assert response.status_code == 400
    assert response.json() == {"error": "That item is already on the list."}

    response = await client.delete(f"{base}/items/{eggs}", headers=auth_headers("alice"))
    assert [i["label"] for i in response.json()["list"]["items"]] == ["Milk"]

    response = await client.delete(base, headers=auth_headers("bob"))
    assert response.json() == {"success": True}
