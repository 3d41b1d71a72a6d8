from camphub.models import Child, Registration, SignatureRequest
from tests.testkit import (
    create_camp,
    create_child,
    create_document,
    create_organization,
    create_user,
    login,
    require_agreement,
)

CHILD = {
    "full_name": "Jamie Rivera",
    "date_of_birth": "2014-06-15T00:00:00",
    "gender": "female",
    "allergies": ["peanuts", "  ", "<b>bees</b>"],
    "sports_interests": [
        {"sport": "Soccer", "skill_level": "intermediate", "preferred_positions": ["wing", ""]}
    ],
}


def _parent(make_client, username="parent"):
    parent_id = create_user(username)
    return parent_id, login(make_client(), username)


def test_create_and_list_children(make_client):
    parent_id, client = _parent(make_client)

    response = client.post("/api/children", json=CHILD)

    assert response.status_code == 201
    body = response.json()
    assert body["parent_id"] == parent_id
    assert body["allergies"] == ["peanuts", "&lt;b&gt;bees&lt;/b&gt;"]
    assert body["sports_interests"][0]["preferred_positions"] == ["wing"]
    assert [child["full_name"] for child in client.get("/api/children").json()] == ["Jamie Rivera"]


def test_child_validation(make_client):
    _, client = _parent(make_client)

    future = client.post("/api/children", json={**CHILD, "date_of_birth": "2999-01-01T00:00:00"})
    assert future.status_code == 400
    assert "Date of birth must be in the past" in future.json()["details"][0]["msg"]

    assert client.post("/api/children", json={**CHILD, "gender": "unknown"}).status_code == 400


def test_only_parents_manage_children(make_client):
    org_id = create_organization()
    create_user("coach", role="coach", organization_id=org_id)

    response = login(make_client(), "coach").post("/api/children", json=CHILD)
    assert response.status_code == 403
    assert response.json() == {"error": "Only parents can perform this action"}


def test_other_parents_children_are_invisible(make_client):
    other_id = create_user("other")
    child_id = create_child(other_id)
    _, client = _parent(make_client)

    assert client.get(f"/api/children/{child_id}").status_code == 404
    assert client.patch(f"/api/children/{child_id}", json={"jersey_size": "YL"}).status_code == 404
    assert client.delete(f"/api/children/{child_id}").status_code == 404


def test_update_child(make_client, fake_redis):
    parent_id, client = _parent(make_client)
    child_id = create_child(parent_id)
    camp_id = create_camp(create_organization())
    client.post("/api/registrations", json={"camp_id": camp_id, "child_id": child_id})
    fake_redis.set(f"camp:{camp_id}:registrations", "[]")

    response = client.patch(f"/api/children/{child_id}", json={"jersey_size": "YL", "medications": []})

    assert response.status_code == 200
    assert response.json()["jersey_size"] == "YL"
    assert response.json()["medications"] == []
    assert response.json()["allergies"] == ["peanuts", "bees"]
    assert fake_redis.get(f"camp:{camp_id}:registrations") is None

    blank = client.patch(f"/api/children/{child_id}", json={"full_name": None})
    assert blank.json()["error"] == "full_name cannot be empty"


def test_delete_child_with_active_registration_is_blocked(make_client):
    parent_id, client = _parent(make_client)
    child_id = create_child(parent_id)
    camp_id = create_camp(create_organization())
    client.post("/api/registrations", json={"camp_id": camp_id, "child_id": child_id})

    response = client.delete(f"/api/children/{child_id}")

    assert response.status_code == 400
    assert response.json()["error"] == "Cancel this athlete's active registrations first"


def test_delete_child_removes_cancelled_history(make_client, db):
    org_id = create_organization()
    camp_id = create_camp(org_id)
    require_agreement(camp_id, create_document(org_id))
    parent_id, client = _parent(make_client)
    child_id = create_child(parent_id)
    registration = client.post(
        "/api/registrations", json={"camp_id": camp_id, "child_id": child_id}
    ).json()
    client.post(f"/api/registrations/{registration['id']}/cancel")

    assert client.delete(f"/api/children/{child_id}").status_code == 204

    assert db.get(Child, child_id) is None
    assert db.query(Registration).count() == 0
    request = db.get(SignatureRequest, registration["signature_request_ids"][0])
    assert request.registration_id is None


def test_delete_child_refreshes_camp_registration_lists(make_client, fake_redis):
    org_id = create_organization()
    camp_id = create_camp(org_id)
    create_user("coach", role="coach", organization_id=org_id)
    coach = login(make_client(), "coach")
    parent_id, client = _parent(make_client)
    child_id = create_child(parent_id)
    registration = client.post(
        "/api/registrations", json={"camp_id": camp_id, "child_id": child_id}
    ).json()
    client.post(f"/api/registrations/{registration['id']}/cancel")

    listed = coach.get(f"/api/camps/{camp_id}/registrations").json()["registrations"]
    assert [entry["child"]["full_name"] for entry in listed] == ["Jamie Rivera"]
    assert fake_redis.get(f"camp:{camp_id}:registrations") is not None

    assert client.delete(f"/api/children/{child_id}").status_code == 204

    assert fake_redis.get(f"camp:{camp_id}:registrations") is None
    assert coach.get(f"/api/camps/{camp_id}/registrations").json()["registrations"] == []
