# Overview: Pytest coverage for Flask CLI commands and security event retention.

from datetime import timedelta

import pytest

from multishop.errors import ValidationError
from multishop.models import ApiKey, Branch, SecurityEvent, Staff, User
from multishop.services import maintenance_service
from multishop.time_utils import utcnow


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


class TestSystemInit:

    def test_init_creates_branch_and_owner(self, runner, db_session):
        result = runner.invoke(args=["system", "init", "--branch", "Flagship"])
        assert result.exit_code == 0
        assert "PASS Created owner: owner" in result.output
        assert db_session.query(Branch).one().name == "Flagship"
        assert db_session.query(User).one().role == "Owner"

    def test_init_is_idempotent(self, runner, db_session):
        runner.invoke(args=["system", "init"])
        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0
        assert "already exists" in result.output
        assert db_session.query(User).count() == 1
        assert db_session.query(Branch).count() == 1


class TestAccountCommands:

    def test_create_user(self, runner, db_session):
        result = runner.invoke(args=[
            "users", "create",
            "--username", "jane", "--full-name", "Jane Doe",
            "--password", "Password123!", "--role", "Manager",
        ])
        assert result.exit_code == 0
        assert db_session.query(User).filter_by(username="jane").one().role == "Manager"

    def test_create_user_weak_password(self, runner, db_session):
        result = runner.invoke(args=[
            "users", "create",
            "--username", "jane", "--full-name", "Jane Doe", "--password", "weak",
        ])
        assert "FAIL" in result.output
        assert db_session.query(User).count() == 0

    def test_create_staff(self, runner, branch_a, db_session):
        result = runner.invoke(args=[
            "staff", "create",
            "--branch-id", str(branch_a.id), "--username", "cashier1",
            "--full-name", "Sam Lee", "--password", "Password123!", "--role", "Cashier",
        ])
        assert result.exit_code == 0
        assert db_session.query(Staff).filter_by(username="cashier1").one().branch_id == branch_a.id

    def test_list_staff(self, runner, staff_a):
        result = runner.invoke(args=["staff", "list"])
        assert "staff_a" in result.output


class TestApiKeyCommands:

    def test_create_list_revoke(self, runner, owner, db_session):
        result = runner.invoke(args=[
            "api-keys", "create", "--username", "owner", "--name", "Reporting",
            "--scope", "read:customers", "--scope", "read:dashboard",
        ])
        assert result.exit_code == 0
        assert "sk_" in result.output
        api_key = db_session.query(ApiKey).one()
        assert api_key.scopes == ["read:customers", "read:dashboard"]

        listing = runner.invoke(args=["api-keys", "list", "--username", "owner"])
        assert api_key.key_prefix in listing.output
        assert "active" in listing.output

        revoked = runner.invoke(args=["api-keys", "revoke", "--id", str(api_key.id)])
        assert "PASS Revoked" in revoked.output
        db_session.expire_all()
        assert db_session.get(ApiKey, api_key.id).is_active is False

    def test_unknown_user(self, runner, db_session):
        result = runner.invoke(args=["api-keys", "create", "--username", "ghost", "--name", "X", "--scope", "read:customers"])
        assert "FAIL User 'ghost' not found" in result.output

    def test_unknown_scope_rejected_by_cli(self, runner, owner):
        result = runner.invoke(args=["api-keys", "create", "--username", "owner", "--name", "X", "--scope", "root"])
        assert result.exit_code != 0

    def test_oversized_key_id_rejected_by_cli(self, runner, db_session):
        result = runner.invoke(args=["api-keys", "revoke", "--id", "99999999999999999999"])
        assert result.exit_code != 0
        assert "FAIL" not in result.output


class TestSecurityEventRetention:

    def test_cleanup_removes_only_old_events(self, db_session):
        now = utcnow()
        db_session.add_all([
            SecurityEvent(event_type="LOGIN_FAILED", success=False, occurred_at=now - timedelta(days=120)),
            SecurityEvent(event_type="LOGIN_FAILED", success=False, occurred_at=now - timedelta(days=91)),
            SecurityEvent(event_type="LOGIN_SUCCESS", success=True, occurred_at=now - timedelta(days=5)),
        ])
        db_session.commit()

        assert maintenance_service.cleanup_security_events(retention_days=90) == 2
        assert [e.event_type for e in db_session.query(SecurityEvent).all()] == ["LOGIN_SUCCESS"]

    def test_retention_must_be_positive(self, db_session):
        with pytest.raises(ValidationError):
            maintenance_service.cleanup_security_events(retention_days=0)

    def test_cleanup_command(self, runner, db_session):
        db_session.add(SecurityEvent(event_type="LOGIN_FAILED", success=False, occurred_at=utcnow() - timedelta(days=400)))
        db_session.commit()
        result = runner.invoke(args=["maintenance", "cleanup-security-events", "--retention-days", "30"])
        assert "Deleted 1 security events" in result.output
