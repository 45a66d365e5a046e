# Overview: Pytest coverage for branch isolation across the HTTP surface.

"""
Branch Isolation Tests

SECURITY TESTS: Prove that staff of one branch cannot see or touch another
branch's data.

Setup: two branches, a staff member in each, customers in both. Verifies:
1. Lists only ever contain the caller's branch
2. Another branch's rows are 404 (existence is not revealed)
3. Naming a foreign branch on create is 403 and audited
4. Management principals see across branches
"""

from conftest import auth_headers, get_auth_token
from multishop.models import SecurityEvent


class TestEndToEndIsolation:
    """Owner sets up a branch, one staff member writes, the other cannot see."""

    def test_customer_created_in_b1_is_invisible_to_b2(self, client, owner, db_session):
        owner_headers = auth_headers(get_auth_token(client, "owner"))

        b1 = client.post("/api/branches", json={"name": "B1"}, headers=owner_headers).json["data"]
        b2 = client.post("/api/branches", json={"name": "B2"}, headers=owner_headers).json["data"]

        for username, branch in (("s1", b1), ("s2", b2)):
            resp = client.post("/api/staff", json={
                "branch_id": branch["id"],
                "username": username,
                "full_name": username.upper(),
                "password": "Password123!",
            }, headers=owner_headers)
            assert resp.status_code == 201

        s1_headers = auth_headers(get_auth_token(client, "s1"))
        s2_headers = auth_headers(get_auth_token(client, "s2"))

        created = client.post("/api/customers", json={
            "full_name": "Customer One",
            "email": "c1@example.com",
            "registration_date": "2026-06-01",
        }, headers=s1_headers)
        assert created.status_code == 201
        c1 = created.json["data"]
        assert c1["branch_id"] == b1["id"]

        listing = client.get("/api/customers", headers=s2_headers).json["data"]
        assert listing["items"] == []
        assert listing["pagination"]["total"] == 0

        resp = client.get(f"/api/customers/{c1['id']}", headers=s2_headers)
        assert resp.status_code == 404

        resp = client.get(f"/api/customers/{c1['id']}", headers=s1_headers)
        assert resp.status_code == 200

        owner_listing = client.get("/api/customers", headers=owner_headers).json["data"]
        assert [item["id"] for item in owner_listing["items"]] == [c1["id"]]


class TestCustomerIsolation:

    def test_foreign_customer_is_not_found(self, client, staff_b_headers, customers):
        resp = client.get(f"/api/customers/{customers['a'][0].id}", headers=staff_b_headers)
        assert resp.status_code == 404
        assert resp.json["message"] == "Customer not found"

    def test_missing_and_foreign_look_the_same(self, client, staff_b_headers, customers):
        foreign = client.get(f"/api/customers/{customers['a'][0].id}", headers=staff_b_headers)
        missing = client.get("/api/customers/99999", headers=staff_b_headers)
        assert foreign.status_code == missing.status_code == 404
        assert foreign.json == missing.json

    def test_create_in_foreign_branch_is_denied(self, client, staff_a, staff_a_headers, branch_b, db_session):
        resp = client.post("/api/customers", json={
            "branch_id": branch_b.id,
            "full_name": "Sneaky",
            "email": "sneaky@example.com",
            "registration_date": "2026-06-01",
        }, headers=staff_a_headers)
        assert resp.status_code == 403
        assert resp.json["success"] is False
        # Branch ids stay out of the response body
        assert str(branch_b.id) not in resp.get_data(as_text=True)

        event = db_session.query(SecurityEvent).filter_by(event_type="CROSS_BRANCH_ACCESS_DENIED").one()
        assert event.principal_id == staff_a.id
        assert event.branch_id == branch_b.id
        assert event.success is False

    def test_delete_in_foreign_branch(self, client, head_branch_a_headers, customers):
        resp = client.delete(f"/api/customers/{customers['b'][0].id}", headers=head_branch_a_headers)
        assert resp.status_code == 404


class TestBranchIsolation:

    def test_staff_lists_only_own_branch(self, client, staff_a_headers, branch_a, branch_b):
        resp = client.get("/api/branches", headers=staff_a_headers)
        assert resp.status_code == 200
        assert [b["id"] for b in resp.json["data"]] == [branch_a.id]

    def test_staff_cannot_read_other_branch(self, client, staff_a_headers, branch_b):
        resp = client.get(f"/api/branches/{branch_b.id}", headers=staff_a_headers)
        assert resp.status_code == 404

    def test_management_lists_all_branches(self, client, owner_headers, branch_a, branch_b):
        resp = client.get("/api/branches", headers=owner_headers)
        assert {b["id"] for b in resp.json["data"]} == {branch_a.id, branch_b.id}

    def test_staff_cannot_list_staff(self, client, staff_a_headers):
        resp = client.get("/api/staff", headers=staff_a_headers)
        assert resp.status_code == 403

    def test_staff_dashboard_is_scoped(self, client, staff_b_headers, branch_a, customers):
        resp = client.get(f"/api/dashboard/stats?branch_id={branch_a.id}", headers=staff_b_headers)
        assert resp.status_code == 200
        assert resp.json["data"]["total_customers"] == 2
        assert resp.json["data"]["branch_id"] != branch_a.id
