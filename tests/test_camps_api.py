from datetime import timedelta

from camphub.models import Camp, utcnow
from tests.testkit import (
    camp_dates,
    camp_payload,
    create_camp,
    create_child,
    create_document,
    create_organization,
    create_user,
    login,
)


def _admin(make_client, role="camp_creator", org_id=None):
    org_id = org_id or create_organization()
    create_user("owner", role=role, organization_id=org_id)
    return org_id, login(make_client(), "owner")


def test_create_camp(make_client, fake_redis):
    org_id, client = _admin(make_client)
    fake_redis.set("camps:list:page=1&page_size=20", "[]")

    response = client.post("/api/camps", json=camp_payload(description="Learn <b>layups</b>"))

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["organization_id"] == org_id
    assert body["slug"] == "summer-hoops"
    assert body["description"] == "Learn &lt;b&gt;layups&lt;/b&gt;"
    assert body["schedules"] == [
        {"id": body["schedules"][0]["id"], "day_of_week": 2, "start_time": "09:00", "end_time": "11:30"}
    ]
    assert fake_redis.get("camps:list:page=1&page_size=20") is None

    second = client.post("/api/camps", json=camp_payload())
    assert second.json()["slug"].startswith("summer-hoops-")


def test_only_admins_create_camps(make_client):
    org_id = create_organization()
    create_user("coach", role="coach", organization_id=org_id)
    create_user("parent")

    assert login(make_client(), "coach").post("/api/camps", json=camp_payload()).status_code == 403
    assert login(make_client(), "parent").post("/api/camps", json=camp_payload()).status_code == 403
    assert make_client().post("/api/camps", json=camp_payload()).status_code == 401


def test_camp_rules(make_client):
    _, client = _admin(make_client)
    dates = camp_dates()

    def error_for(**overrides):
        response = client.post("/api/camps", json=camp_payload(**overrides))
        assert response.status_code == 400
        return response.json()["error"]

    assert error_for(end_date=(dates["start_date"] - timedelta(days=1)).isoformat()) == (
        "End date cannot be before start date"
    )
    assert error_for(registration_end_date=(dates["start_date"] + timedelta(days=1)).isoformat()) == (
        "Registration must close on or before the camp start date"
    )
    assert error_for(min_age=15, max_age=9) == "Minimum age cannot be greater than maximum age"
    assert error_for(city=None) == "In-person camps require a full address (missing: city)"
    assert error_for(is_virtual=True) == "Virtual camps require a meeting URL"
    assert error_for(schedules=[]) == "Fixed scheduling requires at least one schedule"
    assert error_for(schedules=[{"day_of_week": 1, "start_time": "12:00", "end_time": "09:00"}]) == (
        "Schedule start time must be before end time"
    )
    assert error_for(schedules=[{"day_of_week": 1, "start_time": "9am", "end_time": "10:00"}]) == (
        "Invalid request data"
    )
    assert error_for(capacity=0) == "Invalid request data"


def test_virtual_type_and_availability_scheduling(make_client):
    _, client = _admin(make_client)

    virtual = client.post(
        "/api/camps",
        json=camp_payload(type="virtual", virtual_meeting_url="https://meet.example.com/hoops"),
    )
    assert virtual.status_code == 201
    assert virtual.json()["is_virtual"] is True

    availability = client.post(
        "/api/camps", json=camp_payload(name="Private Lessons", type="one_on_one", scheduling_type="availability")
    )
    assert availability.status_code == 201
    assert availability.json()["schedules"] == []


def test_get_camp_visibility_and_permissions(make_client):
    org_id, admin = _admin(make_client)
    public_id = create_camp(org_id)
    private_id = create_camp(org_id, visibility="private")
    deleted_id = create_camp(org_id, is_deleted=True)
    anonymous = make_client()

    public = anonymous.get(f"/api/camps/{public_id}")
    assert public.status_code == 200
    assert public.json()["permissions"] == {"can_manage": False, "is_staff": False}

    assert anonymous.get(f"/api/camps/{private_id}").status_code == 404
    assert anonymous.get(f"/api/camps/{deleted_id}").status_code == 404
    assert anonymous.get("/api/camps/999").status_code == 404

    private = admin.get(f"/api/camps/{private_id}")
    assert private.status_code == 200
    assert private.json()["permissions"] == {"can_manage": True, "is_staff": True}


def test_list_camps_by_audience(make_client):
    org_id, admin = _admin(make_client)
    other_org = create_organization("Rival Camps")
    create_camp(org_id, name="Ours Public")
    create_camp(org_id, name="Ours Private", visibility="private")
    create_camp(other_org, name="Theirs Public")
    create_camp(other_org, name="Theirs Private", visibility="private")

    staff_view = {camp["name"] for camp in admin.get("/api/camps").json()}
    assert staff_view == {"Ours Public", "Ours Private"}

    public_view = {camp["name"] for camp in make_client().get("/api/camps").json()}
    assert public_view == {"Ours Public", "Theirs Public"}

    searched = make_client().get("/api/camps", params={"search": "theirs"}).json()
    assert [camp["name"] for camp in searched] == ["Theirs Public"]

    assert make_client().get("/api/camps", params={"page_size": 500}).status_code == 400
    assert make_client().get("/api/camps", params={"status": "soon"}).status_code == 400


def test_list_camps_status_filters(make_client):
    org_id, admin = _admin(make_client)
    now = utcnow()
    create_camp(org_id, name="Upcoming")
    create_camp(
        org_id,
        name="Running",
        registration_start_date=now - timedelta(days=10),
        registration_end_date=now - timedelta(days=3),
        start_date=now - timedelta(days=2),
        end_date=now + timedelta(days=2),
    )
    create_camp(
        org_id,
        name="Finished",
        registration_start_date=now - timedelta(days=30),
        registration_end_date=now - timedelta(days=20),
        start_date=now - timedelta(days=15),
        end_date=now - timedelta(days=10),
    )
    create_camp(org_id, name="Called Off", is_cancelled=True)

    def names(status):
        return [camp["name"] for camp in admin.get("/api/camps", params={"status": status}).json()]

    assert names("upcoming") == ["Upcoming"]
    assert names("active") == ["Running"]
    assert names("past") == ["Finished"]
    assert names("cancelled") == ["Called Off"]


def test_update_camp_merges_and_validates(make_client, fake_redis):
    org_id, client = _admin(make_client, role="manager")
    camp_id = create_camp(org_id)
    client.get(f"/api/camps/{camp_id}")
    assert fake_redis.get(f"camp:{camp_id}") is not None

    response = client.patch(f"/api/camps/{camp_id}", json={"name": "Spring Soccer Elite", "capacity": 12})

    assert response.status_code == 200
    assert response.json()["name"] == "Spring Soccer Elite"
    assert response.json()["city"] == "Austin"
    assert fake_redis.get(f"camp:{camp_id}") is None
    assert client.get(f"/api/camps/{camp_id}").json()["capacity"] == 12

    assert client.patch(f"/api/camps/{camp_id}", json={"min_age": 12, "max_age": 8}).status_code == 400
    assert client.patch(f"/api/camps/{camp_id}", json={"start_date": None}).json()["error"] == (
        "start_date cannot be empty"
    )


def test_update_camp_rejects_null_for_required_columns(make_client, db):
    org_id, client = _admin(make_client)
    camp_id = create_camp(org_id, capacity=8)

    for name in ("capacity", "name", "price", "type", "waitlist_enabled"):
        response = client.patch(f"/api/camps/{camp_id}", json={name: None})
        assert response.status_code == 400
        assert response.json() == {"error": f"{name} cannot be empty"}

    camp = db.get(Camp, camp_id)
    assert (camp.name, camp.capacity, camp.price) == ("Spring Soccer", 8, 0)


def test_changing_type_updates_the_virtual_flag(make_client):
    org_id, client = _admin(make_client)
    meeting = {"virtual_meeting_url": "https://meet.example.com/drills"}
    camp_id = create_camp(org_id, type="virtual", is_virtual=True, **meeting)
    remote_only = create_camp(
        org_id, type="virtual", is_virtual=True, street_address=None, city=None, **meeting
    )

    in_person = client.patch(f"/api/camps/{camp_id}", json={"type": "group"})
    assert in_person.status_code == 200
    assert in_person.json()["is_virtual"] is False

    back_online = client.patch(f"/api/camps/{camp_id}", json={"type": "virtual"})
    assert back_online.json()["is_virtual"] is True

    explicit = client.patch(f"/api/camps/{camp_id}", json={"type": "team", "is_virtual": True})
    assert explicit.json()["is_virtual"] is True

    missing_address = client.patch(f"/api/camps/{remote_only}", json={"type": "group"})
    assert missing_address.status_code == 400
    assert missing_address.json()["error"].startswith("In-person camps require a full address")


def test_capacity_cannot_drop_below_active_registrations(make_client):
    org_id, admin = _admin(make_client)
    camp_id = create_camp(org_id, capacity=5)
    parent_id = create_user("parent")
    parent = login(make_client(), "parent")
    for name in ("Jamie", "Riley"):
        child_id = create_child(parent_id, full_name=name)
        parent.post("/api/registrations", json={"camp_id": camp_id, "child_id": child_id})

    response = admin.patch(f"/api/camps/{camp_id}", json={"capacity": 1})

    assert response.status_code == 400
    assert response.json()["error"] == "Capacity cannot be lower than the 2 active registrations"


def test_other_organizations_cannot_manage(make_client):
    org_id = create_organization()
    camp_id = create_camp(org_id)
    _, rival = _admin(make_client, org_id=create_organization("Rival Camps"))

    assert rival.patch(f"/api/camps/{camp_id}", json={"name": "Mine"}).status_code == 403
    assert rival.delete(f"/api/camps/{camp_id}").status_code == 403
    assert rival.post(f"/api/camps/{camp_id}/cancel", json={}).status_code == 403


def test_delete_is_soft(make_client, db):
    org_id, client = _admin(make_client)
    camp_id = create_camp(org_id)

    assert client.delete(f"/api/camps/{camp_id}").status_code == 204

    camp = db.get(Camp, camp_id)
    assert camp.is_deleted is True
    assert camp.deleted_at is not None
    assert make_client().get(f"/api/camps/{camp_id}").status_code == 404
    assert client.get(f"/api/camps/{camp_id}").json()["is_deleted"] is True


def test_cancel_camp(make_client):
    org_id, client = _admin(make_client)
    camp_id = create_camp(org_id)

    response = client.post(f"/api/camps/{camp_id}/cancel", json={"reason": "Field flooded"})

    assert response.status_code == 200
    assert response.json()["is_cancelled"] is True
    assert response.json()["cancel_reason"] == "Field flooded"
    assert client.post(f"/api/camps/{camp_id}/cancel", json={}).json()["error"] == "Camp is already cancelled"


def test_replace_schedules(make_client):
    org_id, client = _admin(make_client)
    camp_id = create_camp(org_id)
    availability_id = create_camp(org_id, scheduling_type="availability")
    schedules = [
        {"day_of_week": 1, "start_time": "08:00", "end_time": "10:00"},
        {"day_of_week": 3, "start_time": "08:00", "end_time": "10:00"},
    ]

    response = client.put(f"/api/camps/{camp_id}/schedules", json={"schedules": schedules})
    assert response.status_code == 200
    assert [entry["day_of_week"] for entry in response.json()] == [1, 3]

    listed = make_client().get(f"/api/camps/{camp_id}/schedules").json()
    assert len(listed["schedules"]) == 2
    assert listed["permissions"]["can_manage"] is False

    rejected = client.put(f"/api/camps/{availability_id}/schedules", json={"schedules": schedules})
    assert rejected.json()["error"] == "Availability-based camps do not use fixed schedules"


def test_schedule_exceptions(make_client, db):
    org_id, client = _admin(make_client)
    camp_id = create_camp(org_id)
    camp = db.get(Camp, camp_id)
    schedule_id = camp.schedules[0].id
    inside = (camp.start_date + timedelta(days=1)).isoformat()
    url = f"/api/camps/{camp_id}/schedule-exceptions"

    created = client.post(
        url,
        json={
            "exception_date": inside,
            "day_of_week": 1,
            "start_time": "13:00",
            "end_time": "15:00",
            "status": "rescheduled",
            "reason": "Heat advisory",
            "original_schedule_id": schedule_id,
        },
    )
    assert created.status_code == 201, created.text
    exception_id = created.json()["id"]

    outside = (camp.end_date + timedelta(days=3)).isoformat()
    out_of_range = client.post(
        url, json={"exception_date": outside, "day_of_week": 1, "start_time": "13:00", "end_time": "15:00"}
    )
    assert out_of_range.json()["error"] == "Exception date must fall within the camp dates"

    foreign = client.post(
        url,
        json={
            "exception_date": inside,
            "day_of_week": 1,
            "start_time": "13:00",
            "end_time": "15:00",
            "original_schedule_id": 999,
        },
    )
    assert foreign.json()["error"] == "Original schedule not found for this camp"

    updated = client.patch(f"{url}/{exception_id}", json={"status": "cancelled"})
    assert updated.json()["status"] == "cancelled"
    backwards = client.patch(f"{url}/{exception_id}", json={"end_time": "12:00"})
    assert backwards.json()["error"] == "Start time must be before end time"
    for name in ("start_time", "exception_date", "status"):
        cleared = client.patch(f"{url}/{exception_id}", json={name: None})
        assert cleared.status_code == 400
        assert cleared.json()["error"] == f"{name} cannot be empty"

    listed = make_client().get(url).json()
    assert [entry["id"] for entry in listed["exceptions"]] == [exception_id]

    assert client.delete(f"{url}/{exception_id}").status_code == 204
    assert client.delete(f"{url}/{exception_id}").status_code == 404


def test_camp_staff(make_client):
    org_id, admin = _admin(make_client)
    camp_id = create_camp(org_id)
    coach_id = create_user("coach", role="coach", organization_id=org_id, first_name="Pat", last_name="Lee")
    outsider_id = create_user("outsider", role="coach", organization_id=create_organization("Rival Camps"))
    url = f"/api/camps/{camp_id}/staff"

    added = admin.post(url, json={"user_id": coach_id, "role": "coach"})
    assert added.status_code == 201
    assert added.json()["display_name"] == "Pat Lee"

    assert admin.post(url, json={"user_id": coach_id, "role": "coach"}).json()["error"] == (
        "User is already assigned to this camp"
    )
    assert admin.post(url, json={"user_id": outsider_id, "role": "coach"}).json()["error"] == (
        "User is not a staff member of this organization"
    )

    coach = login(make_client(), "coach")
    assert [member["username"] for member in coach.get(url).json()] == ["coach"]
    assert coach.delete(f"{url}/{coach_id}").status_code == 403

    assert admin.delete(f"{url}/{coach_id}").json() == {"success": True}
    assert admin.delete(f"{url}/{coach_id}").status_code == 404


def test_document_agreements(make_client):
    org_id, admin = _admin(make_client)
    camp_id = create_camp(org_id)
    waiver = create_document(org_id)
    photo = create_document(org_id, title="Photo Release")
    foreign = create_document(create_organization("Rival Camps"))
    url = f"/api/camps/{camp_id}/document-agreements"

    response = admin.put(
        url,
        json={"agreements": [{"document_id": waiver}, {"document_id": photo, "required": False}]},
    )
    assert response.status_code == 200
    assert [(entry["document_title"], entry["required"]) for entry in response.json()] == [
        ("Liability Waiver", True),
        ("Photo Release", False),
    ]

    rejected = admin.put(url, json={"agreements": [{"document_id": foreign}]})
    assert rejected.json()["error"] == "Documents must belong to the camp's organization"

    replaced = admin.put(url, json={"agreements": [{"document_id": photo}]})
    assert [entry["document_id"] for entry in replaced.json()] == [photo]
    assert len(make_client().get(url).json()) == 1


def test_private_camp_agreements_are_hidden(make_client):
    org_id, admin = _admin(make_client)
    camp_id = create_camp(org_id, visibility="private")

    assert make_client().get(f"/api/camps/{camp_id}/document-agreements").status_code == 404
    assert admin.get(f"/api/camps/{camp_id}/document-agreements").status_code == 200
