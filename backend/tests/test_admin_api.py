"""API tests for the admin dashboard: user management and hospital moderation."""
from hospitofind.data.hospitals_repo import get_hospital
from hospitofind.data.users_repo import get_user


def test_admin_routes_reject_regular_users(client, user, auth):
    r = client.get("/admin/users", headers=auth(user))
    assert r.status_code == 403
    assert r.json()["message"] == "Admin access required"
    assert client.get("/admin/users").status_code == 401


def test_list_and_create_users(client, admin, auth):
    r = client.post(
        "/admin/users",
        json={"username": "editor", "email": "editor@example.com", "password": "editor1", "role": "admin"},
        headers=auth(admin),
    )
    assert r.status_code == 201
    assert r.json()["role"] == "admin"
    assert r.json()["is_verified"] is True
    usernames = {u["username"] for u in client.get("/admin/users", headers=auth(admin)).json()}
    assert usernames == {"root", "editor"}


def test_create_duplicate_user_is_409(client, admin, auth):
    r = client.post(
        "/admin/users",
        json={"username": "root", "email": "other@example.com", "password": "secret1"},
        headers=auth(admin),
    )
    assert r.status_code == 409


def test_update_role(client, db, admin, user, auth):
    r = client.patch("/admin/users/role", json={"user_id": user.user_id, "new_role": "admin"}, headers=auth(admin))
    assert r.json() == {"message": "User role updated to admin"}
    assert get_user(db, user.user_id).role == "admin"
    bad = client.patch("/admin/users/role", json={"user_id": user.user_id, "new_role": "owner"}, headers=auth(admin))
    assert bad.status_code == 400
    assert bad.json()["message"] == "Invalid role type"


def test_suspend_and_reactivate(client, db, admin, user, auth):
    r = client.patch(f"/admin/users/{user.user_id}", headers=auth(admin))
    assert r.json()["message"] == "User ada suspended"
    assert get_user(db, user.user_id).is_active is False
    r = client.patch(f"/admin/users/{user.user_id}", headers=auth(admin))
    assert r.json()["message"] == "User ada activated"


def test_admin_cannot_suspend_or_delete_self(client, admin, auth):
    assert client.patch(f"/admin/users/{admin.user_id}", headers=auth(admin)).status_code == 400
    assert client.delete(f"/admin/users/{admin.user_id}", headers=auth(admin)).status_code == 400


def test_delete_user(client, db, admin, user, auth):
    assert client.delete(f"/admin/users/{user.user_id}", headers=auth(admin)).json() == {"message": "User deleted"}
    assert get_user(db, user.user_id) is None
    assert client.delete(f"/admin/users/{user.user_id}", headers=auth(admin)).status_code == 404


def test_all_and_pending_hospitals(client, admin, auth, make_hospital):
    make_hospital("Live")
    make_hospital("Pending", verified=False)
    assert {h["name"] for h in client.get("/admin/hospitals", headers=auth(admin)).json()} == {"Live", "Pending"}
    assert [h["name"] for h in client.get("/admin/hospitals/pending", headers=auth(admin)).json()] == ["Pending"]


def test_admin_create_hospital_is_live(client, admin, auth):
    r = client.post(
        "/admin/hospitals",
        json={"name": "Federal Medical Centre", "address": {"city": "Abeokuta", "state": "Ogun"}},
        headers=auth(admin),
    )
    assert r.status_code == 201
    assert r.json()["hospital"]["verified"] is True


def test_check_duplicate(client, admin, auth, make_hospital):
    h = make_hospital("Eko Hospital", city="Ikeja", state="Lagos")
    params = {"name": "eko hospital", "city": "ikeja"}
    r = client.get("/admin/hospitals/check-duplicate", params=params, headers=auth(admin))
    assert r.json()["duplicate"] is True
    assert r.json()["hospital"]["id"] == h.hospital_id
    r = client.get(
        "/admin/hospitals/check-duplicate", params={**params, "exclude_id": h.hospital_id}, headers=auth(admin)
    )
    assert r.json() == {"duplicate": False, "hospital": None}
    assert client.get("/admin/hospitals/check-duplicate", headers=auth(admin)).status_code == 400


def test_approve_with_fixes(client, db, admin, auth, make_hospital):
    h = make_hospital("Pending Clinik", verified=False)
    r = client.patch(f"/admin/hospitals/approve/{h.hospital_id}", json={"name": "Pending Clinic"}, headers=auth(admin))
    assert r.json()["message"] == "Pending Clinic approved"
    stored = get_hospital(db, h.hospital_id)
    assert stored.verified is True
    assert stored.name == "Pending Clinic"


def test_toggle_status(client, admin, auth, make_hospital):
    h = make_hospital()
    r = client.patch(f"/admin/hospitals/{h.hospital_id}/toggle-status", headers=auth(admin))
    assert r.json()["message"] == "Lagos General Hospital is now Hidden"
    assert client.get("/hospitals").json() == []
    r = client.patch(f"/admin/hospitals/{h.hospital_id}/toggle-status", headers=auth(admin))
    assert r.json()["message"] == "Lagos General Hospital is now Live"


def test_toggle_clears_featured_cache(client, admin, auth, make_hospital):
    h = make_hospital("Star Hospital", is_featured=True)
    assert len(client.get("/hospitals/top").json()) == 1
    client.patch(f"/admin/hospitals/{h.hospital_id}/toggle-status", headers=auth(admin))
    assert client.get("/hospitals/top").json() == []


def test_admin_edit_and_delete(client, db, admin, auth, make_hospital):
    h = make_hospital()
    r = client.patch(f"/admin/hospitals/{h.hospital_id}", json={"type": "Teaching"}, headers=auth(admin))
    assert r.json()["hospital"]["type"] == "Teaching"
    assert r.json()["hospital"]["verified"] is True
    assert client.delete(f"/admin/hospitals/{h.hospital_id}", headers=auth(admin)).status_code == 200
    assert get_hospital(db, h.hospital_id) is None
