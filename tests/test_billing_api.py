from tests.testkit import create_organization, create_user, login

PLAN = {"name": "Pro", "price_monthly": 4900, "price_yearly": 49000, "max_camps": 10, "features": ["Waivers"]}


def _creator(make_client):
    create_user("founder", role="camp_creator", organization_id=create_organization())
    return login(make_client(), "founder")


def test_create_and_list_plans(make_client):
    client = _creator(make_client)

    created = client.post("/api/subscription-plans", json=PLAN)
    client.post("/api/subscription-plans", json={"name": "Starter", "price_monthly": 0})
    client.post("/api/subscription-plans", json={"name": "Legacy", "price_monthly": 100, "is_active": False})

    assert created.status_code == 201
    assert created.json()["max_athletes"] is None

    listed = make_client().get("/api/subscription-plans").json()
    assert [plan["name"] for plan in listed] == ["Starter", "Pro"]


def test_plan_rules(make_client):
    client = _creator(make_client)
    client.post("/api/subscription-plans", json=PLAN)

    duplicate = client.post("/api/subscription-plans", json=PLAN)
    assert duplicate.json()["error"] == "A plan with this name already exists"

    negative = client.post("/api/subscription-plans", json={**PLAN, "name": "Cheap", "price_monthly": -1})
    assert negative.status_code == 400


def test_only_camp_creators_manage_plans(make_client):
    org_id = create_organization()
    create_user("manager", role="manager", organization_id=org_id)

    response = login(make_client(), "manager").post("/api/subscription-plans", json=PLAN)

    assert response.status_code == 403
    assert response.json() == {"error": "Only camp creators can manage subscription plans"}
    assert make_client().post("/api/subscription-plans", json=PLAN).status_code == 401


def test_update_plan(make_client):
    client = _creator(make_client)
    plan_id = client.post("/api/subscription-plans", json=PLAN).json()["id"]
    client.post("/api/subscription-plans", json={"name": "Team"})

    response = client.patch(f"/api/subscription-plans/{plan_id}", json={"price_monthly": 5900, "is_active": False})
    assert response.status_code == 200
    assert response.json()["price_monthly"] == 5900
    assert response.json()["name"] == "Pro"

    assert client.patch(f"/api/subscription-plans/{plan_id}", json={"name": "Team"}).status_code == 400
    assert client.patch(f"/api/subscription-plans/{plan_id}", json={"features": None}).json()["error"] == (
        "features cannot be empty"
    )
    assert client.patch("/api/subscription-plans/999", json={"name": "Ghost"}).status_code == 404
