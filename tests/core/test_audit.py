from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.audit import ActivityAction, ActivityLog, ActivityLogService, ResourceType
from mams.modules.assets.models import AssetType
from mams.modules.assets.schemas import AssetCreate
from mams.modules.assets.service import AssetService


async def _entries(db_session: AsyncSession) -> list[ActivityLog]:
    result = await db_session.execute(select(ActivityLog).order_by(ActivityLog.id))
    return list(result.scalars().all())


class TestActivityLogService:
    async def test_record_with_principal(self, db_session: AsyncSession, principals):
        service = ActivityLogService(db_session)

        entry = await service.record(
            ActivityAction.CREATE,
            ResourceType.ASSET,
            7,
            details={"quantity": 5},
            principal=principals["log_one"],
        )

        assert entry is not None
        assert entry.user_id == principals["log_one"].user_id
        assert entry.username == "log_one"
        assert entry.action == "Create"
        assert entry.resource_type == "Asset"
        assert entry.details == {"quantity": 5}

    async def test_asset_creation_is_recorded(self, db_session: AsyncSession, principals):
        asset = await AssetService(db_session).create_asset(
            AssetCreate(name="Rifle", type=AssetType.WEAPON, base="Base One", opening_balance=10),
            principals["log_one"],
        )

        entries = [e for e in await _entries(db_session) if e.resource_type == "Asset"]
        assert len(entries) == 1
        assert entries[0].resource_id == asset.id
        assert entries[0].details["opening_balance"] == 10

    async def test_audit_failure_does_not_undo_movement(
        self, db_session: AsyncSession, principals
    ):
        await db_session.execute(text("DROP TABLE activity_logs"))
        await db_session.commit()

        asset = await AssetService(db_session).create_asset(
            AssetCreate(name="Truck", type=AssetType.VEHICLE, base="Base One", opening_balance=3),
            principals["admin"],
        )

        assert asset.id is not None
        assert asset.closing_balance == 3
        fetched = await AssetService(db_session).get_asset(asset.id, principals["admin"])
        assert fetched.available == 3


class TestActivityLogEndpoints:
    async def test_admin_can_list(self, client, auth_headers):
        headers = await auth_headers("admin")

        response = await client.get("/api/v1/activity-logs", headers=headers)

        assert response.status_code == 200
        items = response.json()["data"]["items"]
        assert any(item["action"] == "Login" for item in items)

    async def test_filter_by_action(self, client, auth_headers):
        headers = await auth_headers("admin")
        await client.post(
            "/api/v1/auth/login", json={"username": "admin", "password": "wrong-password"}
        )

        response = await client.get(
            "/api/v1/activity-logs", params={"action": "Failed Login"}, headers=headers
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 1
        assert data["items"][0]["action"] == "Failed Login"

    async def test_non_admin_forbidden(self, client, auth_headers):
        headers = await auth_headers("cmd_one")

        response = await client.get("/api/v1/activity-logs", headers=headers)

        assert response.status_code == 403
