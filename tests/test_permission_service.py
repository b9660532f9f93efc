import json

import pytest

from fleet_rbac.core.exceptions import ConflictError, NotFoundError, ValidationError
from fleet_rbac.models.audit_log import AuditLog
from fleet_rbac.models.permission import Permission
from fleet_rbac.models.role import RolePermission
from fleet_rbac.services.permission_service import permission_service
from fleet_rbac.services.role_service import role_service


@pytest.mark.parametrize(
    "key",
    ["", "ab", "users", "Users.manage", "users.Manage", "users.manage.all",
     "users-manage", "users.", ".manage", "trip_expenses.view", "users.view1"],
)
def test_create_rejects_malformed_keys(db, key):
    with pytest.raises(ValidationError) as exc_info:
        permission_service.create(db, key)
    assert exc_info.value.errors[0]["field"] == "key"
    assert db.query(Permission).count() == 0
    assert db.query(AuditLog).count() == 0


def test_create_and_list_ordered_by_key(db):
    permission_service.create(db, "trucks.view", "See trucks")
    permission_service.create(db, "loads.create")
    permission_service.create(db, "dashboard.view")

    keys = [p.key for p in permission_service.list_permissions(db)]
    assert keys == ["dashboard.view", "loads.create", "trucks.view"]


def test_create_duplicate_key_conflicts(db):
    permission_service.create(db, "trucks.view")
    with pytest.raises(ConflictError):
        permission_service.create(db, "trucks.view")
    assert db.query(Permission).count() == 1


def test_create_writes_audit_entry(db, actor):
    before = db.query(AuditLog).count()
    permission = permission_service.create(db, "trucks.view", audit=actor)

    entries = db.query(AuditLog).filter(AuditLog.action == "permissions.create").all()
    assert db.query(AuditLog).count() == before + 1
    assert len(entries) == 1
    assert entries[0].user_id == actor.actor_id
    assert entries[0].ip_address == "10.0.0.1"
    assert json.loads(entries[0].details) == {"permissionId": permission.id, "key": "trucks.view"}


def test_update_is_partial(db):
    permission = permission_service.create(db, "trucks.view", "See trucks")

    updated = permission_service.update(db, permission.id, description="List trucks")
    assert updated.key == "trucks.view"
    assert updated.description == "List trucks"

    renamed = permission_service.update(db, permission.id, key="vehicles.view")
    assert renamed.key == "vehicles.view"
    assert renamed.description == "List trucks"


def test_update_can_clear_description(db):
    permission = permission_service.create(db, "trucks.view", "See trucks")
    updated = permission_service.update(db, permission.id, description=None)
    assert updated.description is None


def test_update_revalidates_key(db):
    permission = permission_service.create(db, "trucks.view")
    with pytest.raises(ValidationError):
        permission_service.update(db, permission.id, key="Trucks View")
    db.expire_all()
    assert db.get(Permission, permission.id).key == "trucks.view"


def test_update_rename_onto_existing_key_conflicts(db):
    permission_service.create(db, "trucks.view")
    other = permission_service.create(db, "loads.view")
    with pytest.raises(ConflictError):
        permission_service.update(db, other.id, key="trucks.view")


def test_update_missing_permission(db):
    with pytest.raises(NotFoundError):
        permission_service.update(db, 999, description="nope")


def test_update_audit_entry(db, actor):
    permission = permission_service.create(db, "trucks.view")
    permission_service.update(db, permission.id, audit=actor, key="vehicles.view")
    entry = db.query(AuditLog).filter(AuditLog.action == "permissions.update").one()
    assert json.loads(entry.details)["permissionId"] == permission.id
    assert entry.user_id == actor.actor_id


def test_delete_unused_permission(db, actor):
    permission = permission_service.create(db, "trucks.view")
    permission_service.delete(db, permission.id, audit=actor)

    assert db.query(Permission).filter(Permission.key == "trucks.view").count() == 0
    entry = db.query(AuditLog).filter(AuditLog.action == "permissions.delete").one()
    assert json.loads(entry.details) == {"permissionId": permission.id}


def test_delete_missing_permission(db):
    with pytest.raises(NotFoundError):
        permission_service.delete(db, 12345)


def test_delete_in_use_conflicts_and_leaves_bindings(db):
    role = role_service.create(db, "dispatcher")
    role_service.set_permissions(db, role.id, ["trucks.view", "loads.view"])
    permission = db.query(Permission).filter(Permission.key == "trucks.view").one()

    bindings_before = sorted(
        (rp.id, rp.role_id, rp.permission_id) for rp in db.query(RolePermission).all()
    )
    audit_before = db.query(AuditLog).count()

    with pytest.raises(ConflictError):
        permission_service.delete(db, permission.id)

    db.expire_all()
    bindings_after = sorted(
        (rp.id, rp.role_id, rp.permission_id) for rp in db.query(RolePermission).all()
    )
    assert bindings_after == bindings_before
    assert db.get(Permission, permission.id) is not None
    assert db.query(AuditLog).count() == audit_before
