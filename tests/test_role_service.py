import json

import pytest

from fleet_rbac.core.exceptions import ConflictError, NotFoundError, ValidationError
from fleet_rbac.db.session import atomic, insert_ignore
from fleet_rbac.models.audit_log import AuditLog
from fleet_rbac.models.permission import Permission
from fleet_rbac.models.role import Role, RolePermission
from fleet_rbac.services.permission_service import permission_service
from fleet_rbac.services.role_service import role_service
from fleet_rbac.services.user_service import user_service


def _bindings(db, role_id):
    db.expire_all()
    return sorted(
        rp.permission.key
        for rp in db.query(RolePermission).filter(RolePermission.role_id == role_id).all()
    )


def test_create_role_starts_empty(db):
    role = role_service.create(db, "dispatcher", "Dispatch desk")
    assert role.id is not None
    assert role.permission_keys == []


@pytest.mark.parametrize("name", ["", " ", "a", " b "])
def test_create_role_rejects_short_names(db, name):
    with pytest.raises(ValidationError):
        role_service.create(db, name)
    assert db.query(Role).count() == 0


def test_create_role_duplicate_name_conflicts(db):
    role_service.create(db, "dispatcher")
    with pytest.raises(ConflictError):
        role_service.create(db, "dispatcher")


def test_list_roles_by_name_with_keys(db):
    b = role_service.create(db, "viewer")
    a = role_service.create(db, "accountant")
    role_service.set_permissions(db, b.id, ["trucks.view", "dashboard.view"])

    roles = role_service.list_roles(db)
    assert [r.name for r in roles] == ["accountant", "viewer"]
    assert roles[0].id == a.id
    assert roles[0].permission_keys == []
    assert roles[1].permission_keys == ["dashboard.view", "trucks.view"]


def test_update_role(db, actor):
    role = role_service.create(db, "dispatcher", "Dispatch desk")
    updated = role_service.update(db, role.id, "dispatch", audit=actor)
    assert updated.name == "dispatch"
    assert updated.description == "Dispatch desk"

    entry = db.query(AuditLog).filter(AuditLog.action == "roles.update").one()
    assert json.loads(entry.details) == {"roleId": role.id}


def test_update_missing_role(db):
    with pytest.raises(NotFoundError):
        role_service.update(db, 404, "ghost")


def test_update_role_name_collision(db):
    role_service.create(db, "dispatcher")
    other = role_service.create(db, "driver")
    with pytest.raises(ConflictError):
        role_service.update(db, other.id, "dispatcher")


def test_set_permissions_auto_provisions_missing_keys(db):
    permission_service.create(db, "trucks.view")
    role = role_service.create(db, "dispatcher")

    result = role_service.set_permissions(db, role.id, ["trucks.view", "loads.create", "trips.view"])

    assert result.permission_keys == ["loads.create", "trips.view", "trucks.view"]
    assert db.query(Permission).count() == 3
    for key in ("loads.create", "trips.view", "trucks.view"):
        assert db.query(Permission).filter(Permission.key == key).count() == 1


def test_set_permissions_is_idempotent(db):
    role = role_service.create(db, "dispatcher")
    keys = ["trucks.view", "loads.create"]

    role_service.set_permissions(db, role.id, keys)
    first_rows = db.query(RolePermission).filter(RolePermission.role_id == role.id).count()
    first_permissions = db.query(Permission).count()

    role_service.set_permissions(db, role.id, keys)

    assert _bindings(db, role.id) == ["loads.create", "trucks.view"]
    assert db.query(RolePermission).filter(RolePermission.role_id == role.id).count() == first_rows == 2
    assert db.query(Permission).count() == first_permissions == 2


def test_set_permissions_replaces_whole_set(db):
    role = role_service.create(db, "dispatcher")
    role_service.set_permissions(db, role.id, ["trucks.view", "loads.create"])
    role_service.set_permissions(db, role.id, ["trips.view"])

    assert _bindings(db, role.id) == ["trips.view"]
    # replaced keys stay in the catalog
    assert db.query(Permission).filter(Permission.key == "trucks.view").count() == 1


def test_set_permissions_empty_clears_role(db):
    role = role_service.create(db, "dispatcher")
    role_service.set_permissions(db, role.id, ["trucks.view"])
    result = role_service.set_permissions(db, role.id, [])
    assert result.permission_keys == []
    assert _bindings(db, role.id) == []


def test_set_permissions_duplicate_keys_in_request(db):
    role = role_service.create(db, "dispatcher")
    result = role_service.set_permissions(db, role.id, ["trucks.view", "trucks.view"])
    assert result.permission_keys == ["trucks.view"]
    assert db.query(RolePermission).count() == 1


def test_set_permissions_does_not_touch_other_roles(db):
    a = role_service.create(db, "dispatcher")
    b = role_service.create(db, "driver")
    role_service.set_permissions(db, a.id, ["trucks.view"])
    role_service.set_permissions(db, b.id, ["trips.view"])
    role_service.set_permissions(db, a.id, ["loads.view"])
    assert _bindings(db, b.id) == ["trips.view"]


def test_set_permissions_invalid_key_changes_nothing(db):
    role = role_service.create(db, "dispatcher")
    role_service.set_permissions(db, role.id, ["trucks.view"])
    audit_before = db.query(AuditLog).count()

    with pytest.raises(ValidationError) as exc_info:
        role_service.set_permissions(db, role.id, ["loads.view", "Bad Key"])

    assert exc_info.value.errors[0]["field"].startswith("permissions[")
    assert _bindings(db, role.id) == ["trucks.view"]
    assert db.query(Permission).filter(Permission.key == "loads.view").count() == 0
    assert db.query(AuditLog).count() == audit_before


def test_set_permissions_missing_role_rolls_back(db):
    with pytest.raises(NotFoundError):
        role_service.set_permissions(db, 999, ["trucks.view"])
    assert db.query(Permission).count() == 0


def test_set_permissions_audit_entry(db, actor):
    role = role_service.create(db, "dispatcher")
    role_service.set_permissions(db, role.id, ["trucks.view", "loads.view"], audit=actor)

    entries = (
        db.query(AuditLog)
        .filter(AuditLog.action == "roles.permissions.set", AuditLog.user_id == actor.actor_id)
        .all()
    )
    assert len(entries) == 1
    assert json.loads(entries[0].details) == {
        "roleId": role.id,
        "permissions": ["trucks.view", "loads.view"],
    }


def test_concurrently_inserted_key_is_skipped(db):
    # Another transaction created "trucks.view" after our lookup: insert-or-skip
    # must neither fail nor duplicate it.
    with atomic(db):
        insert_ignore(db, Permission, [{"key": "trucks.view"}], ["key"])
    with atomic(db):
        insert_ignore(
            db, Permission, [{"key": "trucks.view"}, {"key": "loads.view"}], ["key"],
        )
    assert db.query(Permission).filter(Permission.key == "trucks.view").count() == 1
    assert db.query(Permission).count() == 2


def test_set_permissions_unresolvable_key_conflicts(db, monkeypatch):
    # Keys that cannot be resolved fail the update instead of being dropped.
    role = role_service.create(db, "dispatcher")
    role_service.set_permissions(db, role.id, ["trucks.view"])
    audit_before = db.query(AuditLog).count()
    monkeypatch.setattr(
        "fleet_rbac.services.role_service.insert_ignore", lambda *args, **kwargs: None
    )

    with pytest.raises(ConflictError):
        role_service.set_permissions(db, role.id, ["trucks.view", "loads.view"])

    assert _bindings(db, role.id) == ["trucks.view"]
    assert db.query(AuditLog).count() == audit_before


def test_two_roles_sharing_new_keys_create_each_once(db):
    a = role_service.create(db, "dispatcher")
    b = role_service.create(db, "driver")
    role_service.set_permissions(db, a.id, ["trucks.view", "loads.view"])
    role_service.set_permissions(db, b.id, ["loads.view", "trips.view"])

    keys = sorted(p.key for p in db.query(Permission).all())
    assert keys == ["loads.view", "trips.view", "trucks.view"]


def test_delete_role_cascades_bindings(db, actor):
    role = role_service.create(db, "dispatcher")
    role_service.set_permissions(db, role.id, ["trucks.view"])

    role_service.delete(db, role.id, audit=actor)

    assert db.query(Role).filter(Role.id == role.id).count() == 0
    assert db.query(RolePermission).filter(RolePermission.role_id == role.id).count() == 0
    assert db.query(Permission).filter(Permission.key == "trucks.view").count() == 1
    assert db.query(AuditLog).filter(AuditLog.action == "roles.delete").count() == 1


def test_delete_role_assigned_to_users_conflicts(db):
    role = role_service.create(db, "dispatcher")
    role_service.set_permissions(db, role.id, ["trucks.view"])
    user_service.create(db, "Dana Driver", "dana@example.com", role.id, password="secret123")

    with pytest.raises(ConflictError):
        role_service.delete(db, role.id)

    assert _bindings(db, role.id) == ["trucks.view"]


def test_delete_missing_role(db):
    with pytest.raises(NotFoundError):
        role_service.delete(db, 31337)
