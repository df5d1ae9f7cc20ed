from __future__ import annotations

import json

import pytest

from agriassist import crud, models
from agriassist.deps import get_mailer
from agriassist.flows.ask import AskReply
from agriassist.mailer import Mailer
from agriassist.main import app


def csv_geom(value: dict) -> str:
    """Embed GeoJSON inside a CSV field with doubled quotes."""
    return json.dumps(value).replace('"', '""')


def get_user(api, uid: str) -> models.User | None:
    with api.sessions() as session:
        return session.get(models.User, uid)


def add_unaffiliated(api, uid="sam", email="sam@example.com", name="Sam"):
    """Signed-up user without a farm of their own yet."""
    with api.sessions() as db:
        db.add(models.User(uid=uid, email=email, name=name, is_farm_owner=False,
                           settings=crud.DEFAULT_SETTINGS))
        db.commit()
    return api.login(uid, email, name)


# ---------- auth & accounts ----------

def test_requests_without_token_are_rejected(api):
    resp = api.client.get("/users/me")

    assert resp.status_code == 401, resp.json()
    assert resp.json() == {"detail": "Unauthorized: No token provided"}


def test_requests_with_bad_token_are_rejected(api):
    resp = api.client.get("/users/me", headers={"Authorization": "Bearer forged"})

    assert resp.status_code == 401, resp.json()
    assert resp.json() == {"detail": "Unauthorized: Invalid token"}


def test_register_creates_user_and_farm(api):
    headers = api.login("u1", "Olive@Example.com", "Olive")

    resp = api.client.post("/auth/register", json={"name": "Olive", "farmName": "Green Acres"}, headers=headers)

    assert resp.status_code == 201, resp.json()
    body = resp.json()
    assert body["uid"] == "u1"
    assert body["email"] == "olive@example.com"
    assert body["farmId"] == "u1"
    assert body["isFarmOwner"] is True
    assert body["roleOnCurrentFarm"] == "owner"
    assert body["settings"]["notificationPreferences"]["aiInsightsEmail"] is True
    assert [m.subject for m in api.mailer.sent] == ["Welcome to AgriAssist, Olive!"]

    again = api.client.post("/auth/register", json={"name": "Olive", "farmName": "Other"}, headers=headers)
    assert again.status_code == 409, again.json()


def test_register_succeeds_even_if_welcome_email_fails(api):
    api.mailer.fail = True
    headers = api.login("u1", "olive@example.com", "Olive")

    resp = api.client.post("/auth/register", json={"name": "Olive", "farmName": "Green Acres"}, headers=headers)

    assert resp.status_code == 201, resp.json()


def test_register_requires_names(api):
    resp = api.client.post("/auth/register", json={"name": ""}, headers=api.login("u1"))
    assert resp.status_code == 422, resp.json()


def test_me_requires_registration(api):
    resp = api.client.get("/users/me", headers=api.login("ghost"))
    assert resp.status_code == 404, resp.json()


def test_update_settings_merges(api):
    headers = api.owner()

    resp = api.client.patch("/users/me/settings", headers=headers, json={
        "notificationPreferences": {"weatherAlertsEmail": True},
        "preferredWeightUnit": "lb",
    })

    assert resp.status_code == 200, resp.json()
    settings = resp.json()["settings"]
    assert settings["notificationPreferences"]["weatherAlertsEmail"] is True
    assert settings["notificationPreferences"]["taskRemindersEmail"] is True
    assert settings["preferredWeightUnit"] == "lb"


def test_farm_read_and_owner_only_update(api):
    owner = api.owner()
    editor = api.member("ed", "owner1", "editor")

    resp = api.client.get("/farm", headers=editor)
    assert resp.status_code == 200, resp.json()
    assert resp.json()["staff"] == [{"uid": "ed", "role": "editor"}]

    denied = api.client.patch("/farm", headers=editor, json={"farmName": "Mine now"})
    assert denied.status_code == 403, denied.json()

    ok = api.client.patch("/farm", headers=owner, json={"farmName": "Blue Acres", "latitude": 41.3})
    assert ok.status_code == 200, ok.json()
    assert ok.json()["farmName"] == "Blue Acres"
    assert ok.json()["latitude"] == 41.3
    assert get_user(api, "ed").farm_name == "Blue Acres"


def test_farm_routes_need_a_farm(api):
    headers = add_unaffiliated(api)
    resp = api.client.get("/farm", headers=headers)
    assert resp.status_code == 403, resp.json()


def test_send_welcome_email(api):
    headers = api.owner()

    missing = api.client.post("/email/send-welcome", headers=headers, json={"to": "x@example.com"})
    assert missing.status_code == 400, missing.json()

    resp = api.client.post("/email/send-welcome", headers=headers, json={"to": "x@example.com", "userName": "Xen"})
    assert resp.status_code == 200, resp.json()
    assert resp.json()["success"] is True
    assert api.mailer.sent[-1].to == "x@example.com"


def test_send_welcome_email_without_configuration(api):
    headers = api.owner()
    app.dependency_overrides[get_mailer] = lambda: Mailer(api_key="")

    resp = api.client.post("/email/send-welcome", headers=headers, json={"to": "x@example.com", "userName": "Xen"})

    assert resp.status_code == 500, resp.json()
    assert resp.json() == {"detail": "Email service is not configured."}


# ---------- log records ----------

def test_log_crud_round(api):
    headers = api.owner()

    created = api.client.post("/logs/planting", headers=headers, json={
        "cropName": "Corn", "plantingDate": "2024-04-10", "seedsUsed": "Pioneer P1185",
    })
    assert created.status_code == 201, created.json()
    rec = created.json()
    assert rec["cropName"] == "Corn"
    assert rec["farmId"] == "owner1"
    assert rec["userId"] == "owner1"

    listed = api.client.get("/logs/planting", headers=headers)
    assert [r["id"] for r in listed.json()] == [rec["id"]]

    updated = api.client.put(f"/logs/planting/{rec['id']}", headers=headers, json={"notes": "Late frost"})
    assert updated.status_code == 200, updated.json()
    assert updated.json()["notes"] == "Late frost"
    assert updated.json()["seedsUsed"] == "Pioneer P1185"

    deleted = api.client.delete(f"/logs/planting/{rec['id']}", headers=headers)
    assert deleted.status_code == 200, deleted.json()
    assert api.client.get(f"/logs/planting/{rec['id']}", headers=headers).status_code == 404


def test_log_list_orders_limits_and_filters(api):
    headers = api.owner()
    for crop, day, field in [("Corn", "2024-04-01", "f1"), ("Wheat", "2024-09-01", "f2"), ("Soy", "2024-06-01", "f1")]:
        api.client.post("/logs/planting", headers=headers,
                        json={"cropName": crop, "plantingDate": day, "fieldId": field})

    everything = api.client.get("/logs/planting", headers=headers).json()
    assert [r["cropName"] for r in everything] == ["Wheat", "Soy", "Corn"]

    f1 = api.client.get("/logs/planting", headers=headers, params={"field_id": "f1"}).json()
    assert [r["cropName"] for r in f1] == ["Soy", "Corn"]

    top = api.client.get("/logs/planting", headers=headers, params={"limit": 1}).json()
    assert len(top) == 1

    too_many = api.client.get("/logs/planting", headers=headers, params={"limit": 501})
    assert too_many.status_code == 422, too_many.json()


def test_fields_list_by_name_with_derived_location(api):
    headers = api.owner()
    api.client.post("/logs/fields", headers=headers, json={"fieldName": "South"})
    resp = api.client.post("/logs/fields", headers=headers, json={
        "fieldName": "North", "fieldSize": 12, "geometry": {"type": "Point", "coordinates": [19.81923, 41.32781]},
    })
    assert resp.status_code == 201, resp.json()
    assert resp.json()["latitude"] == 41.3278
    assert resp.json()["longitude"] == 19.8192

    names = [f["fieldName"] for f in api.client.get("/logs/fields", headers=headers).json()]
    assert names == ["North", "South"]


def test_log_validation_errors_are_422(api):
    headers = api.owner()

    bad_create = api.client.post("/logs/expenses", headers=headers, json={
        "date": "2024-01-01", "category": "Groceries", "description": "Snacks", "amount": 5,
    })
    assert bad_create.status_code == 422, bad_create.json()
    assert bad_create.json()["detail"][0]["loc"] == ["category"]

    ok = api.client.post("/logs/expenses", headers=headers, json={
        "date": "2024-01-01", "category": "Fuel", "description": "Diesel", "amount": 80,
    })
    bad_update = api.client.put(f"/logs/expenses/{ok.json()['id']}", headers=headers, json={"amount": -3})
    assert bad_update.status_code == 422, bad_update.json()
    assert api.client.get(f"/logs/expenses/{ok.json()['id']}", headers=headers).json()["amount"] == 80


def test_unknown_log_kind_is_404(api):
    resp = api.client.get("/logs/spaceships", headers=api.owner())
    assert resp.status_code == 404, resp.json()


def test_viewers_are_read_only(api):
    owner = api.owner()
    viewer = api.member("vic", "owner1", "viewer")
    rec = api.client.post("/logs/tasks", headers=owner, json={"taskName": "Fix fence"}).json()

    assert api.client.get("/logs/tasks", headers=viewer).status_code == 200
    assert api.client.post("/logs/tasks", headers=viewer, json={"taskName": "Nope"}).status_code == 403
    assert api.client.put(f"/logs/tasks/{rec['id']}", headers=viewer, json={"status": "Done"}).status_code == 403
    assert api.client.delete(f"/logs/tasks/{rec['id']}", headers=viewer).status_code == 403


def test_records_are_isolated_between_farms(api):
    mine = api.owner()
    theirs = api.owner(uid="owner2", email="two@example.com", name="Tom", farm_name="Other Farm")
    rec = api.client.post("/logs/revenue", headers=mine,
                          json={"date": "2024-02-01", "source": "Market", "amount": 250}).json()

    assert api.client.get(f"/logs/revenue/{rec['id']}", headers=theirs).status_code == 404
    assert api.client.put(f"/logs/revenue/{rec['id']}", headers=theirs, json={"amount": 1}).status_code == 404
    assert api.client.delete(f"/logs/revenue/{rec['id']}", headers=theirs).status_code == 404
    assert api.client.get("/logs/revenue", headers=theirs).json() == []


def test_health_record_takes_tag_from_animal(api):
    headers = api.owner()
    animal = api.client.post("/logs/animals", headers=headers,
                             json={"animalIdTag": "COW-7", "species": "Cattle"}).json()

    resp = api.client.post("/logs/health", headers=headers, json={
        "animalId": animal["id"], "logDate": "2024-03-01", "eventType": "Vaccination", "details": "Annual shots",
    })
    assert resp.status_code == 201, resp.json()
    assert resp.json()["animalIdTag"] == "COW-7"

    missing = api.client.post("/logs/health", headers=headers, json={
        "animalId": "nope", "logDate": "2024-03-01", "eventType": "Vaccination", "details": "Annual shots",
    })
    assert missing.status_code == 404, missing.json()
    assert missing.json() == {"detail": "Animal not found."}


def test_weight_and_feed_logs_for_an_animal(api):
    headers = api.owner()
    animal = api.client.post("/logs/animals", headers=headers,
                             json={"animalIdTag": "GOAT-2", "species": "Goat"}).json()

    weight = api.client.post("/logs/weight", headers=headers, json={
        "animalId": animal["id"], "logDate": "2024-03-01", "weight": 42.5, "weightUnit": "lbs",
    })
    feed = api.client.post("/logs/feed", headers=headers, json={
        "logDate": "2024-03-01", "feedType": "Alfalfa", "quantityConsumed": 30,
    })

    assert weight.status_code == 201, weight.json()
    assert weight.json()["animalIdTag"] == "GOAT-2"
    assert feed.status_code == 201, feed.json()
    assert feed.json()["animalIdTag"] is None
    assert feed.json()["quantityUnit"] == "kg"
    no_animal = api.client.post("/logs/weight", headers=headers, json={"logDate": "2024-03-01", "weight": 40})
    assert no_animal.status_code == 422


def test_breeding_offspring_tags_from_string(api):
    resp = api.client.post("/logs/breeding", headers=api.owner(), json={
        "damAnimalId": "a1", "offspringIdTags": "C-1, C-2,,",
    })
    assert resp.status_code == 201, resp.json()
    assert resp.json()["offspringIdTags"] == ["C-1", "C-2"]


# ---------- field import ----------

def test_import_fields_from_csv(api):
    geom = csv_geom({"type": "Point", "coordinates": [19.8192, 41.3278]})
    content = (
        "field_name,field_size,field_size_unit,geometry\n"
        f'North,12.5,acres,"{geom}"\n'
        "South,3,hectares,\n"
    )

    resp = api.client.post(
        "/fields/import/csv",
        headers=api.owner(),
        files={"file": ("fields.csv", content.encode("utf-8"), "text/csv")},
    )

    assert resp.status_code == 200, resp.json()
    body = resp.json()
    assert body["imported"] == 2
    assert len(body["fieldIds"]) == 2
    assert body["withoutLocation"] == ["South"]


def test_import_csv_errors(api):
    headers = api.owner()

    not_utf8 = api.client.post("/fields/import/csv", headers=headers,
                               files={"file": ("f.csv", "field_name\nCaf\xe9\n".encode("latin-1"), "text/csv")})
    assert not_utf8.status_code == 400, not_utf8.json()

    bad_geom = api.client.post("/fields/import/csv", headers=headers,
                               files={"file": ("f.csv", b"field_name,geometry\nA,{oops\n", "text/csv")})
    assert bad_geom.status_code == 422, bad_geom.json()


def test_import_fields_from_geojson(api):
    headers = api.owner()
    fc = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {"field_name": "East", "field_size": 4},
             "geometry": {"type": "Polygon", "coordinates": [[[0, 0], [2, 0], [2, 2], [0, 2]]]}},
        ],
    }

    resp = api.client.post("/fields/import/geojson", headers=headers, json=fc)

    assert resp.status_code == 200, resp.json()
    assert resp.json()["imported"] == 1
    fields = api.client.get("/logs/fields", headers=headers).json()
    assert fields[0]["latitude"] == 1.0

    wrong = api.client.post("/fields/import/geojson", headers=headers, json={"type": "Point", "coordinates": [0, 0]})
    assert wrong.status_code == 422, wrong.json()


@pytest.mark.parametrize(
    "body",
    [
        {"type": "FeatureCollection", "features": ["oops"]},
        {"type": "Feature", "properties": "x"},
    ],
)
def test_import_geojson_rejects_malformed_features(api, body):
    headers = api.owner()

    resp = api.client.post("/fields/import/geojson", headers=headers, json=body)

    assert resp.status_code == 422, resp.json()
    assert "must be an object" in resp.json()["detail"]
    assert api.client.get("/logs/fields", headers=headers).json() == []


# ---------- staff ----------

def test_invite_and_accept_via_token(api):
    owner = api.owner()
    sam = add_unaffiliated(api)

    invited = api.client.post("/farm/invite-staff", headers=owner,
                              json={"invitedEmail": "sam@example.com", "invitedRole": "editor"})
    assert invited.status_code == 200, invited.json()
    assert invited.json() == {"success": True, "message": "Invitation sent to sam@example.com."}

    sent = api.client.get("/farm/invitations", headers=owner).json()
    assert [(i["invitedEmail"], i["status"]) for i in sent] == [("sam@example.com", "pending")]
    mine = api.client.get("/invitations/mine", headers=sam).json()
    assert [i["id"] for i in mine] == [sent[0]["id"]]

    accepted = api.client.post("/farm/invitations/process-token", headers=sam, json={"invitationToken": "tok1"})
    assert accepted.status_code == 200, accepted.json()

    me = api.client.get("/users/me", headers=sam).json()
    assert me["farmId"] == "owner1"
    assert me["roleOnCurrentFarm"] == "editor"
    owner_notes = api.client.get("/notifications", headers=owner).json()
    assert [n["type"] for n in owner_notes] == ["staff_invite_accepted"]


def test_invite_errors(api):
    owner = api.owner()
    add_unaffiliated(api)

    unknown = api.client.post("/farm/invite-staff", headers=owner, json={"invitedEmail": "ghost@example.com"})
    assert unknown.status_code == 404, unknown.json()

    api.client.post("/farm/invite-staff", headers=owner, json={"invitedEmail": "sam@example.com"})
    dup = api.client.post("/farm/invite-staff", headers=owner, json={"invitedEmail": "sam@example.com"})
    assert dup.status_code == 409, dup.json()

    bad_role = api.client.post("/farm/invite-staff", headers=owner,
                               json={"invitedEmail": "sam@example.com", "invitedRole": "owner"})
    assert bad_role.status_code == 422, bad_role.json()


def test_accept_decline_and_revoke_by_id(api):
    owner = api.owner()
    sam = add_unaffiliated(api)
    eve = add_unaffiliated(api, uid="eve", email="eve@example.com", name="Eve")
    api.client.post("/farm/invite-staff", headers=owner, json={"invitedEmail": "sam@example.com"})
    api.client.post("/farm/invite-staff", headers=owner, json={"invitedEmail": "eve@example.com"})
    by_email = {i["invitedEmail"]: i["id"] for i in api.client.get("/farm/invitations", headers=owner).json()}

    wrong_user = api.client.post("/farm/invitations/accept", headers=eve,
                                 json={"invitationId": by_email["sam@example.com"]})
    assert wrong_user.status_code == 403, wrong_user.json()

    ok = api.client.post("/farm/invitations/accept", headers=sam, json={"invitationId": by_email["sam@example.com"]})
    assert ok.status_code == 200, ok.json()
    assert ok.json()["message"] == "Invitation to farm Green Acres accepted."

    declined = api.client.post("/farm/invitations/decline", headers=eve,
                               json={"invitationId": by_email["eve@example.com"]})
    assert declined.status_code == 200, declined.json()

    revoked = api.client.post("/farm/invitations/revoke", headers=owner,
                              json={"invitationId": by_email["eve@example.com"]})
    assert revoked.status_code == 400, revoked.json()
    assert revoked.json() == {"detail": "Invitation already declined."}


def test_remove_staff_and_update_role(api):
    owner = api.owner()
    api.member("ada", "owner1", "admin")
    api.member("vic", "owner1", "viewer")

    role = api.client.post("/farm/update-staff-role", headers=owner,
                           json={"staffUidToUpdate": "vic", "newRole": "editor"})
    assert role.status_code == 200, role.json()
    assert get_user(api, "vic").role_on_current_farm == "editor"

    removed = api.client.post("/farm/remove-staff", headers=owner, json={"staffUidToRemove": "ada"})
    assert removed.status_code == 200, removed.json()
    ada = get_user(api, "ada")
    assert ada.farm_id == "ada"
    assert ada.is_farm_owner is True
    staff = api.client.get("/farm", headers=owner).json()["staff"]
    assert staff == [{"uid": "vic", "role": "editor"}]


# ---------- billing ----------

def test_checkout_session_for_existing_user(api):
    headers = api.owner()

    resp = api.client.post("/billing/create-checkout-session", headers=headers, json={"planId": "pro"})

    assert resp.status_code == 200, resp.json()
    assert resp.json() == {"success": True, "sessionId": "cs_test_1"}
    assert get_user(api, "owner1").stripe_customer_id == "cus_owner1"

    free = api.client.post("/billing/create-checkout-session", headers=headers, json={"planId": "free"})
    assert free.status_code == 400, free.json()


def test_cancel_subscription_requires_one(api):
    headers = api.owner()
    resp = api.client.post("/billing/cancel-subscription", headers=headers)
    assert resp.status_code == 400, resp.json()
    assert resp.json() == {"detail": "No active subscription to cancel."}


def test_paid_registration_then_webhook_creates_farm(api):
    headers = api.login("p1", "pat@example.com", "Pat")

    bad = api.client.post("/auth/initiate-paid-registration", headers=headers,
                          json={"planId": "pro", "name": "Pat"})
    assert bad.status_code == 400, bad.json()

    resp = api.client.post("/auth/initiate-paid-registration", headers=headers,
                           json={"planId": "pro", "name": "Pat", "farmName": "Pat Farm"})
    assert resp.status_code == 200, resp.json()
    assert resp.json()["sessionId"] == "cs_test_1"
    assert api.gateway.sessions[0]["cancel_url"].endswith("/register?payment_cancelled=true")
    assert get_user(api, "p1").subscription_status == "pending_payment"

    api.gateway.subscriptions["sub_1"] = {
        "id": "sub_1", "customer": "cus_p1", "status": "active", "current_period_end": 1767225600,
        "metadata": {"firebaseUID": "p1", "planId": "pro"},
    }
    event = {"id": "evt_1", "type": "checkout.session.completed", "data": {"object": {
        "id": "cs_test_1", "mode": "subscription", "subscription": "sub_1", "customer": "cus_p1",
        "metadata": {"firebaseUID": "p1", "planId": "pro"},
    }}}

    hook = api.client.post("/billing/webhook", content=json.dumps(event), headers={"Stripe-Signature": "valid-sig"})

    assert hook.status_code == 200, hook.json()
    assert hook.json() == {"received": True}
    user = get_user(api, "p1")
    assert user.subscription_status == "active"
    assert user.selected_plan_id == "pro"
    assert user.farm_id == "p1"
    assert api.client.get("/farm", headers=headers).json()["farmName"] == "Pat Farm"


def test_webhook_rejects_bad_signatures(api):
    payload = json.dumps({"type": "invoice.paid", "data": {"object": {}}})

    forged = api.client.post("/billing/webhook", content=payload, headers={"Stripe-Signature": "forged"})
    assert forged.status_code == 400, forged.json()

    unsigned = api.client.post("/billing/webhook", content=payload)
    assert unsigned.status_code == 400, unsigned.json()


def test_webhook_acknowledges_irrelevant_events(api):
    payload = json.dumps({"type": "customer.created", "data": {"object": {}}})
    resp = api.client.post("/billing/webhook", content=payload, headers={"Stripe-Signature": "valid-sig"})
    assert resp.status_code == 200, resp.json()
    assert resp.json() == {"received": True}


# ---------- notifications ----------

def test_notifications_flow(api):
    owner = api.owner()

    created = api.client.post("/notifications", headers=owner, json={
        "userId": "owner1", "title": "Frost", "message": "Cover seedlings", "type": "ai_insight", "link": "/dashboard",
    })
    assert created.status_code == 201, created.json()
    note = created.json()
    assert note["isRead"] is False
    assert note["triggeredBy"] == "owner1"
    assert api.mailer.sent[-1].subject == "AgriAssist Notification: Frost"

    unread = api.client.get("/notifications", headers=owner, params={"unread_only": True}).json()
    assert [n["id"] for n in unread] == [note["id"]]

    read = api.client.post(f"/notifications/{note['id']}/read", headers=owner)
    assert read.status_code == 200, read.json()
    assert api.client.get("/notifications", headers=owner, params={"unread_only": True}).json() == []


def test_cannot_mark_someone_elses_notification(api):
    owner = api.owner()
    other = api.owner(uid="owner2", email="two@example.com", name="Tom", farm_name="Other")
    note = api.client.post("/notifications", headers=owner, json={
        "userId": "owner1", "title": "T", "message": "M", "type": "general",
    }).json()

    resp = api.client.post(f"/notifications/{note['id']}/read", headers=other)
    assert resp.status_code == 404, resp.json()


def test_read_all_and_task_reminders(api):
    owner = api.owner()
    today = api.clock.today().isoformat()
    api.client.post("/logs/tasks", headers=owner, json={"taskName": "Spray", "dueDate": today})
    api.client.post("/logs/tasks", headers=owner, json={"taskName": "Someday"})

    reminders = api.client.post("/tasks/reminders", headers=owner)
    assert reminders.status_code == 200, reminders.json()
    assert reminders.json()["message"] == "1 task reminder(s) created."

    read_all = api.client.post("/notifications/read-all", headers=owner)
    assert read_all.json()["message"] == "1 notification(s) marked as read."


# ---------- analytics ----------

def test_analytics_endpoints(api):
    headers = api.owner()
    api.client.post("/logs/fields", headers=headers, json={"fieldName": "North", "fieldSize": 10})
    api.client.post("/logs/harvesting", headers=headers,
                    json={"cropName": "Corn", "harvestDate": "2024-09-01", "yieldAmount": 120, "yieldUnit": "bu"})
    api.client.post("/logs/irrigation", headers=headers,
                    json={"fieldId": "f1", "irrigationDate": "2024-07-04", "amountApplied": 25})
    api.client.post("/logs/revenue", headers=headers, json={"date": "2024-09-10", "source": "Elevator", "amount": 900})

    yields = api.client.get("/analytics/yields", headers=headers).json()
    assert yields == {"keys": ["Corn (bu)"], "rows": [{"year": "2024", "Corn (bu)": 120.0}]}

    water = api.client.get("/analytics/water-usage", headers=headers).json()
    assert len(water) == 12
    assert water[6] == {"month": "Jul", "usage": 25.0}

    fert = api.client.get("/analytics/fertilizer-usage", headers=headers, params={"year": 2024}).json()
    assert {m["usage"] for m in fert} == {0.0}

    dash = api.client.get("/analytics/dashboard", headers=headers).json()
    assert dash["fieldCount"] == 1
    assert dash["totalAcreage"] == 10.0
    assert dash["totalRevenue"] == 900.0
    assert dash["netIncome"] == 900.0
    assert dash["cropYields"] == [{"name": "Corn", "totalYield": 120.0, "unit": "bu"}]


# ---------- AI ----------

def test_ask_endpoint_uses_callers_farm(api):
    headers = api.owner()
    api.llm.replies[AskReply] = {"answer": "Sow 5 cm deep."}

    resp = api.client.post("/ai/ask", headers=headers, json={"question": "How deep do I sow corn?"})

    assert resp.status_code == 200, resp.json()
    assert resp.json() == {
        "answer": "Sow 5 cm deep.",
        "farmContextUsed": "AI considered the following farm context: Farm Name: Green Acres.",
    }


def test_ai_endpoints_reply_with_camel_case(api):
    headers = api.owner()
    calls = [
        ("/ai/optimization", {"optimizationGoals": "Less water"}, "dataSummary"),
        ("/ai/soil-interpretation", {"phLevel": 6.1, "organicMatterPercent": 3, "nitrogenPPM": 10,
                                     "phosphorusPPM": 12, "potassiumPPM": 150}, "phInterpretation"),
        ("/ai/sustainable-practices", {"sustainabilityGoals": "Soil health"}, "recommendedPractices"),
        ("/ai/planting-harvesting-windows", {"location": "Iowa", "cropType": "Corn", "activity": "Harvesting"},
         "suggestedWindow"),
        ("/ai/plant-diagnosis", {"photoDataUri": "data:image/png;base64,iVBOR", "description": "Spots"},
         "plantIdentification"),
        ("/ai/treatment-plan", {"cropType": "Tomato", "symptoms": "Wilting"}, "treatmentPlan"),
        ("/ai/proactive-insights", {"daysToLookAhead": 10}, "dataConsideredSummary"),
    ]
    for path, body, key in calls:
        resp = api.client.post(path, headers=headers, json=body)
        assert resp.status_code == 200, (path, resp.json())
        assert key in resp.json(), path


def test_ai_input_validation_and_llm_failure(api):
    headers = api.owner()

    invalid = api.client.post("/ai/planting-harvesting-windows", headers=headers,
                              json={"location": "Iowa", "cropType": "Corn", "activity": "Pruning"})
    assert invalid.status_code == 422, invalid.json()

    api.llm.fail = True
    failed = api.client.post("/ai/treatment-plan", headers=headers, json={"cropType": "Tomato", "symptoms": "Wilting"})
    assert failed.status_code == 502, failed.json()
    assert failed.json() == {"detail": "The AI service could not produce an answer. Please try again."}


def test_health_check(api):
    resp = api.client.get("/health")
    assert resp.status_code == 200, resp.json()
    assert resp.json()["status"] == "ok"
