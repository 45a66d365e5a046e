# Overview: Pytest coverage for customer create/read/update/delete.

"""
Customer CRUD tests.

Verifies:
- Staff create in their own branch; management must name a branch
- Email is normalized and unique across all branches (400 on conflict)
- Free text is HTML-escaped before storage
- branch_id is fixed after creation
- Delete requires an elevated role and stays inside the branch scope
"""

import pytest

from conftest import principal_for
from multishop.errors import ConflictError, ValidationError
from multishop.models import Customer, SecurityEvent
from multishop.services import customer_service


def _payload(**overrides):
    payload = {
        "full_name": "Carla Cruz",
        "email": "carla@example.com",
        "registration_date": "2026-05-04",
    }
    payload.update(overrides)
    return payload


# =============================================================================
# CREATE
# =============================================================================


class TestCreateCustomer:

    def test_staff_create_defaults_to_own_branch(self, client, staff_a, staff_a_headers):
        resp = client.post("/api/customers", json=_payload(), headers=staff_a_headers)
        assert resp.status_code == 201
        assert resp.json["success"] is True
        data = resp.json["data"]
        assert data["branch_id"] == staff_a.branch_id
        assert data["status"] == "Active"
        assert data["registration_date"] == "2026-05-04"

    def test_staff_create_in_own_branch_explicitly(self, client, staff_a, staff_a_headers):
        resp = client.post(
            "/api/customers",
            json=_payload(branch_id=staff_a.branch_id),
            headers=staff_a_headers,
        )
        assert resp.status_code == 201

    def test_management_create(self, client, owner_headers, branch_b):
        resp = client.post("/api/customers", json=_payload(branch_id=branch_b.id), headers=owner_headers)
        assert resp.status_code == 201
        assert resp.json["data"]["branch_name"] == "Branch B - Uptown"

    def test_management_must_name_branch(self, client, owner_headers, branch_a):
        resp = client.post("/api/customers", json=_payload(), headers=owner_headers)
        assert resp.status_code == 400

    def test_unknown_branch(self, client, owner_headers, branch_a):
        resp = client.post("/api/customers", json=_payload(branch_id=99999), headers=owner_headers)
        assert resp.status_code == 400
        assert resp.json["message"] == "Branch not found"

    def test_email_is_normalized(self, client, owner_headers, branch_a):
        resp = client.post(
            "/api/customers",
            json=_payload(branch_id=branch_a.id, email="  Carla.Cruz@Example.COM "),
            headers=owner_headers,
        )
        assert resp.status_code == 201
        assert resp.json["data"]["email"] == "carla.cruz@example.com"

    def test_duplicate_email_across_branches(self, client, owner_headers, customers, branch_b):
        resp = client.post(
            "/api/customers",
            json=_payload(branch_id=branch_b.id, email="ANN@example.com"),
            headers=owner_headers,
        )
        assert resp.status_code == 400
        assert resp.json["success"] is False
        assert resp.json["error"]["code"] == "CONFLICT"

    @pytest.mark.parametrize("field,value", [
        ("email", "not-an-email"),
        ("registration_date", "04/05/2026"),
        ("status", "Suspended"),
        ("full_name", ""),
        ("full_name", "x" * 300),
    ])
    def test_invalid_fields(self, client, owner_headers, branch_a, field, value):
        resp = client.post(
            "/api/customers",
            json=_payload(branch_id=branch_a.id, **{field: value}),
            headers=owner_headers,
        )
        assert resp.status_code == 400

    @pytest.mark.parametrize("missing", ["full_name", "email", "registration_date"])
    def test_required_fields(self, client, owner_headers, branch_a, missing):
        payload = _payload(branch_id=branch_a.id)
        payload.pop(missing)
        resp = client.post("/api/customers", json=payload, headers=owner_headers)
        assert resp.status_code == 400
        assert missing in resp.json["message"]

    def test_unknown_field_rejected(self, client, owner_headers, branch_a):
        resp = client.post(
            "/api/customers",
            json=_payload(branch_id=branch_a.id, id=42),
            headers=owner_headers,
        )
        assert resp.status_code == 400

    def test_free_text_is_escaped(self, client, owner_headers, branch_a, db_session):
        resp = client.post(
            "/api/customers",
            json=_payload(branch_id=branch_a.id, full_name="<script>alert(1)</script>", address="1 & 2 Elm"),
            headers=owner_headers,
        )
        assert resp.status_code == 201
        stored = db_session.get(Customer, resp.json["data"]["id"])
        assert stored.full_name == "&lt;script&gt;alert(1)&lt;/script&gt;"
        assert stored.address == "1 &amp; 2 Elm"

    def test_status_is_case_insensitive(self, db_session, owner, branch_a):
        customer = customer_service.create_customer(
            principal_for(owner), _payload(branch_id=branch_a.id, status="inactive"),
        )
        assert customer.status == "Inactive"

    def test_service_rejects_duplicate_email(self, db_session, owner, branch_a, customers):
        with pytest.raises(ConflictError):
            customer_service.create_customer(
                principal_for(owner), _payload(branch_id=branch_a.id, email="ben@example.com"),
            )


# =============================================================================
# READ / UPDATE
# =============================================================================


class TestReadUpdateCustomer:

    def test_get_own_branch_customer(self, client, staff_a_headers, customers):
        customer = customers["a"][0]
        resp = client.get(f"/api/customers/{customer.id}", headers=staff_a_headers)
        assert resp.status_code == 200
        assert resp.json["data"]["email"] == "ann@example.com"

    def test_get_missing_customer(self, client, owner_headers):
        resp = client.get("/api/customers/99999", headers=owner_headers)
        assert resp.status_code == 404

    def test_update_fields(self, client, staff_a_headers, customers):
        customer = customers["a"][0]
        resp = client.put(
            f"/api/customers/{customer.id}",
            json={"phone_number": "555-9999", "status": "inactive"},
            headers=staff_a_headers,
        )
        assert resp.status_code == 200
        assert resp.json["data"]["phone_number"] == "555-9999"
        assert resp.json["data"]["status"] == "Inactive"

    def test_update_same_branch_is_allowed(self, client, staff_a, staff_a_headers, customers):
        customer = customers["a"][0]
        resp = client.put(
            f"/api/customers/{customer.id}",
            json={"branch_id": staff_a.branch_id, "code": "A-777"},
            headers=staff_a_headers,
        )
        assert resp.status_code == 200

    def test_branch_cannot_change(self, client, owner_headers, customers, branch_b):
        customer = customers["a"][0]
        resp = client.put(
            f"/api/customers/{customer.id}",
            json={"branch_id": branch_b.id},
            headers=owner_headers,
        )
        assert resp.status_code == 400

    def test_update_email_conflict(self, client, owner_headers, customers):
        customer = customers["a"][0]
        resp = client.put(
            f"/api/customers/{customer.id}",
            json={"email": "bea@example.com"},
            headers=owner_headers,
        )
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "CONFLICT"

    def test_update_keeping_own_email(self, client, owner_headers, customers):
        customer = customers["a"][0]
        resp = client.put(
            f"/api/customers/{customer.id}",
            json={"email": "ANN@example.com", "full_name": "Ann A. Archer"},
            headers=owner_headers,
        )
        assert resp.status_code == 200

    def test_email_cannot_be_cleared(self, db_session, owner, customers):
        with pytest.raises(ValidationError):
            customer_service.update_customer(principal_for(owner), customers["a"][0].id, {"email": None})

    def test_staff_cannot_update_other_branch(self, client, staff_a_headers, customers):
        customer = customers["b"][0]
        resp = client.put(
            f"/api/customers/{customer.id}",
            json={"full_name": "Hijacked"},
            headers=staff_a_headers,
        )
        assert resp.status_code == 404


# =============================================================================
# DELETE
# =============================================================================


class TestDeleteCustomer:

    def test_plain_staff_cannot_delete(self, client, staff_a_headers, customers, db_session):
        customer = customers["a"][0]
        resp = client.delete(f"/api/customers/{customer.id}", headers=staff_a_headers)
        assert resp.status_code == 403
        assert db_session.query(SecurityEvent).filter_by(event_type="ROLE_DENIED").count() == 1

    def test_warehouse_cannot_delete(self, client, warehouse_headers, customers):
        customer = customers["a"][0]
        resp = client.delete(f"/api/customers/{customer.id}", headers=warehouse_headers)
        assert resp.status_code == 403

    def test_head_branch_deletes_in_own_branch(self, client, head_branch_a_headers, customers, db_session):
        customer_id = customers["a"][0].id
        resp = client.delete(f"/api/customers/{customer_id}", headers=head_branch_a_headers)
        assert resp.status_code == 200
        assert db_session.get(Customer, customer_id) is None

    def test_head_branch_cannot_delete_other_branch(self, client, head_branch_a_headers, customers, db_session):
        customer_id = customers["b"][0].id
        resp = client.delete(f"/api/customers/{customer_id}", headers=head_branch_a_headers)
        assert resp.status_code == 404
        assert db_session.get(Customer, customer_id) is not None

    def test_owner_deletes_anywhere(self, client, owner_headers, customers):
        resp = client.delete(f"/api/customers/{customers['b'][1].id}", headers=owner_headers)
        assert resp.status_code == 200
        assert resp.json["message"] == "Customer deleted"
