"""Unit tests for auth/directory.py -- the user directory service.

Covers:
- register() creates a pending, creator-less customer; duplicates conflict
- login() error precedence: unknown -> 404, bad password -> 400,
  suspended / pending -> 403
- forgot / reset password flow, including token reuse and expiry
- create_user() role rules for admins and employees
- approve / suspend / update / delete scoped to the employee's own accounts
"""

from datetime import datetime, timedelta, timezone

import pytest

from auth.directory import UserDirectory
from auth.models import Actor
from auth.tokens import verify_password
from core.errors import (
    Conflict,
    Forbidden,
    InvalidCredentials,
    InvalidOrExpiredToken,
    NotFound,
    ValidationError,
)

# Every make_user account shares this password.
TEST_PASSWORD = "secret123"


@pytest.fixture
def directory(user_store, codec):
    return UserDirectory(user_store, codec, frontend_url="http://frontend.test/")


@pytest.fixture
def admin(make_user):
    return Actor.from_user(make_user("Root", role="admin"))


@pytest.fixture
def employee(make_user, admin):
    return Actor.from_user(make_user("Eve", role="employee", created_by=admin.id))


class TestRegister:
    def test_register_creates_pending_customer(self, directory):
        user = directory.register("Ann", "Ann@Example.com", "secret1", "5550001111")
        assert user.role == "customer"
        assert user.status == "pending"
        assert user.created_by is None
        assert user.email == "ann@example.com"
        assert verify_password("secret1", user.password_hash)

    def test_duplicate_email_conflicts(self, directory):
        directory.register("Ann", "ann@example.com", "secret1", "5550001111")
        with pytest.raises(Conflict) as exc_info:
            directory.register("Ann 2", "ANN@example.com", "secret1", "5550001111")
        assert exc_info.value.message == "User already exists"

    def test_short_password(self, directory):
        with pytest.raises(ValidationError):
            directory.register("Ann", "ann@example.com", "12345", "5550001111")


class TestLogin:
    def test_unknown_email(self, directory):
        with pytest.raises(NotFound):
            directory.login("ghost@example.com", TEST_PASSWORD)

    def test_wrong_password(self, directory, make_user):
        make_user("Ann")
        with pytest.raises(InvalidCredentials):
            directory.login("ann@example.com", "wrong-password")

    def test_wrong_password_checked_before_status(self, directory, make_user):
        make_user("Ann", status="suspended")
        with pytest.raises(InvalidCredentials):
            directory.login("ann@example.com", "wrong-password")

    def test_suspended(self, directory, make_user):
        make_user("Ann", status="suspended")
        with pytest.raises(Forbidden) as exc_info:
            directory.login("ann@example.com", TEST_PASSWORD)
        assert exc_info.value.message == "Your account has been suspended."

    def test_pending(self, directory, make_user):
        make_user("Ann", status="pending")
        with pytest.raises(Forbidden) as exc_info:
            directory.login("ann@example.com", TEST_PASSWORD)
        assert exc_info.value.message == "Your account is awaiting admin approval."

    def test_success_returns_verifiable_token(self, directory, make_user, codec):
        stored = make_user("Ann")
        token, user = directory.login("ANN@example.com", TEST_PASSWORD)
        assert user.id == stored.id
        assert codec.verify_access(token)["user_id"] == stored.id


class TestPasswordReset:
    def test_reset_flow(self, directory, make_user, user_store, caplog):
        user = make_user("Ann")
        with caplog.at_level("INFO", logger="autosales.directory"):
            token = directory.request_password_reset("ann@example.com")
        assert f"http://frontend.test/reset-password/{token}" in caplog.text

        directory.reset_password(token, "brand-new-pw")
        stored = user_store.get_by_id(user.id)
        assert verify_password("brand-new-pw", stored.password_hash)
        assert stored.reset_token is None
        assert stored.reset_token_expiry is None

    def test_token_is_single_use(self, directory, make_user):
        make_user("Ann")
        token = directory.request_password_reset("ann@example.com")
        directory.reset_password(token, "brand-new-pw")
        with pytest.raises(InvalidOrExpiredToken):
            directory.reset_password(token, "another-pw")

    def test_unknown_email(self, directory):
        with pytest.raises(NotFound):
            directory.request_password_reset("ghost@example.com")

    def test_superseded_token_is_rejected(self, directory, make_user):
        make_user("Ann")
        first = directory.request_password_reset("ann@example.com")
        directory.request_password_reset("ann@example.com")
        with pytest.raises(InvalidOrExpiredToken):
            directory.reset_password(first, "brand-new-pw")

    def test_stored_expiry_in_the_past(self, directory, make_user, user_store):
        user = make_user("Ann")
        token = directory.request_password_reset("ann@example.com")
        past = (datetime.now(timezone.utc) - timedelta(minutes=1)).isoformat()
        user_store.set_reset_token(user.id, token, past)
        with pytest.raises(InvalidOrExpiredToken):
            directory.reset_password(token, "brand-new-pw")

    def test_garbage_token(self, directory):
        with pytest.raises(InvalidOrExpiredToken):
            directory.reset_password("garbage", "brand-new-pw")

    def test_access_token_cannot_reset(self, directory, make_user, codec):
        user = make_user("Ann")
        with pytest.raises(InvalidOrExpiredToken):
            directory.reset_password(codec.issue_access(user.id, user.role), "brand-new-pw")


class TestCreateUser:
    def test_admin_creates_employee(self, directory, admin):
        created = directory.create_user(admin, "Emp", "emp@example.com", "secret1", "employee", "5550001111")
        assert created.role == "employee"
        assert created.status == "active"
        assert created.created_by == admin.id

    def test_employee_creates_customer(self, directory, employee):
        created = directory.create_user(employee, "Cus", "cus@example.com", "secret1", "customer", "5550001111")
        assert created.created_by == employee.id

    @pytest.mark.parametrize("role", ["admin", "employee", "wizard"])
    def test_employee_cannot_create_other_roles(self, directory, employee, role):
        with pytest.raises(ValidationError) as exc_info:
            directory.create_user(employee, "X", "x@example.com", "secret1", role, "5550001111")
        assert exc_info.value.errors[0]["msg"] == "Invalid role specified"

    def test_customer_is_forbidden(self, directory, make_user):
        customer = Actor.from_user(make_user("Cus"))
        with pytest.raises(Forbidden):
            directory.create_user(customer, "X", "x@example.com", "secret1", "customer", "5550001111")

    def test_duplicate_email(self, directory, admin, make_user):
        make_user("Ann")
        with pytest.raises(Conflict):
            directory.create_user(admin, "Ann", "ann@example.com", "secret1", "customer", "5550001111")


class TestListUsers:
    def test_admin_sees_everyone(self, directory, admin, employee, make_user):
        make_user("Walkin", status="pending")
        assert len(directory.list_users(admin)) == 3

    def test_employee_sees_own_accounts_only(self, directory, employee, admin, make_user):
        mine = make_user("Mine", created_by=employee.id)
        make_user("Theirs", created_by=admin.id)
        make_user("Walkin", status="pending")
        assert [u.id for u in directory.list_users(employee)] == [mine.id]

    def test_customer_is_forbidden(self, directory, make_user):
        with pytest.raises(Forbidden):
            directory.list_users(Actor.from_user(make_user("Cus")))

    def test_creators_of(self, directory, employee, make_user):
        mine = make_user("Mine", created_by=employee.id)
        walkin = make_user("Walkin")
        creators = directory.creators_of([mine, walkin])
        assert set(creators) == {employee.id}


class TestLifecycle:
    def test_admin_approves_self_registered(self, directory, admin):
        user = directory.register("Ann", "ann@example.com", "secret1", "5550001111")
        assert directory.approve(admin, user.id).status == "active"

    def test_employee_cannot_approve_self_registered(self, directory, employee):
        """Self-registered accounts have no creator, so no employee owns them."""
        user = directory.register("Ann", "ann@example.com", "secret1", "5550001111")
        with pytest.raises(NotFound):
            directory.approve(employee, user.id)

    def test_employee_suspends_own_customer(self, directory, employee, make_user):
        mine = make_user("Mine", created_by=employee.id)
        assert directory.suspend(employee, mine.id).status == "suspended"

    def test_employee_cannot_see_foreign_customer(self, directory, employee, admin, make_user):
        theirs = make_user("Theirs", created_by=admin.id)
        with pytest.raises(NotFound):
            directory.suspend(employee, theirs.id)
        with pytest.raises(NotFound):
            directory.update_user(employee, theirs.id, {"name": "Hijacked"})

    def test_missing_user(self, directory, admin):
        with pytest.raises(NotFound):
            directory.approve(admin, 9999)

    def test_cannot_suspend_self(self, directory, admin):
        with pytest.raises(ValidationError) as exc_info:
            directory.suspend(admin, admin.id)
        assert exc_info.value.errors[0]["location"] == "params"

    def test_delete_is_admin_only(self, directory, employee, make_user):
        mine = make_user("Mine", created_by=employee.id)
        with pytest.raises(Forbidden):
            directory.delete_user(employee, mine.id)

    def test_admin_deletes(self, directory, admin, make_user, user_store):
        target = make_user("Target")
        directory.delete_user(admin, target.id)
        assert user_store.get_by_id(target.id) is None
        with pytest.raises(NotFound):
            directory.delete_user(admin, target.id)

    def test_cannot_delete_self(self, directory, admin):
        with pytest.raises(ValidationError):
            directory.delete_user(admin, admin.id)


class TestUpdateUser:
    def test_partial_update_keeps_other_fields(self, directory, admin, make_user):
        target = make_user("Target")
        updated = directory.update_user(admin, target.id, {"phone": "5559998888"})
        assert updated.phone == "5559998888"
        assert updated.name == "Target"
        assert updated.email == target.email

    def test_password_is_rehashed(self, directory, admin, make_user, user_store):
        target = make_user("Target")
        directory.update_user(admin, target.id, {"password": "changed-pw"})
        assert verify_password("changed-pw", user_store.get_by_id(target.id).password_hash)

    def test_null_values_are_ignored(self, directory, admin, make_user):
        target = make_user("Target")
        assert directory.update_user(admin, target.id, {"name": None}).name == "Target"

    def test_employee_cannot_promote(self, directory, employee, make_user):
        mine = make_user("Mine", created_by=employee.id)
        with pytest.raises(ValidationError) as exc_info:
            directory.update_user(employee, mine.id, {"role": "admin"})
        assert exc_info.value.errors == [{"msg": "Invalid role specified", "param": "role", "location": "body"}]

    def test_admin_promotes_employee(self, directory, admin, employee):
        assert directory.update_user(admin, employee.id, {"role": "admin"}).role == "admin"

    @pytest.mark.parametrize("start, role", [("employee", "customer"), ("customer", "employee"), ("admin", "customer")])
    def test_role_cannot_cross_staff_customer_line(self, directory, admin, make_user, user_store, start, role):
        target = make_user("Target", role=start)
        with pytest.raises(ValidationError) as exc_info:
            directory.update_user(admin, target.id, {"role": role})
        assert exc_info.value.errors[0]["param"] == "role"
        assert user_store.get_by_id(target.id).role == start

    def test_cannot_change_own_role(self, directory, admin, user_store):
        with pytest.raises(ValidationError) as exc_info:
            directory.update_user(admin, admin.id, {"role": "employee"})
        assert exc_info.value.errors[0]["msg"] == "You cannot change your own role"
        assert user_store.get_by_id(admin.id).role == "admin"

    def test_resending_current_role_is_allowed(self, directory, admin):
        assert directory.update_user(admin, admin.id, {"role": "admin", "name": "Boss"}).name == "Boss"

    def test_role_patch_on_foreign_account_stays_hidden(self, directory, employee, admin, make_user):
        theirs = make_user("Theirs", created_by=admin.id)
        with pytest.raises(NotFound):
            directory.update_user(employee, theirs.id, {"role": "customer"})

    def test_collects_every_error(self, directory, employee, make_user):
        mine = make_user("Mine", created_by=employee.id)
        with pytest.raises(ValidationError) as exc_info:
            directory.update_user(employee, mine.id, {"role": "admin", "password": "123"})
        assert {e["param"] for e in exc_info.value.errors} == {"role", "password"}

    def test_cannot_suspend_self_via_update(self, directory, admin):
        with pytest.raises(ValidationError):
            directory.update_user(admin, admin.id, {"status": "suspended"})

    def test_email_collision(self, directory, admin, make_user):
        make_user("Ann")
        target = make_user("Target")
        with pytest.raises(Conflict):
            directory.update_user(admin, target.id, {"email": "ann@example.com"})
