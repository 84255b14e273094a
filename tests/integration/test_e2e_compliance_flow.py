"""端到端合规流程集成测试

创建任务 -> 分配 -> 被分配者收到通知 -> 完成 -> 报表统计。
"""

from httpx import AsyncClient

WORKER = {"X-User-Id": "worker-1", "X-Factory-Id": "factory-pp"}


class TestComplianceFlow:
    async def test_lifespan_state(self, integration_app):
        state = integration_app.state
        assert state.services is not None
        assert state.channel_config.mode == "log"
        assert state.store.supports_batch_write

    async def test_task_lifecycle(self, client: AsyncClient):
        resp = await client.post(
            "/api/tasks",
            json={
                "title": "Fire extinguisher inspection",
                "priority": "high",
                "assigned_to": "worker-1",
            },
        )
        assert resp.status_code == 201
        task_id = resp.json()["task_id"]

        # 被分配者收到 high 优先级通知：in_app + email + sms
        resp = await client.get("/api/notifications", headers=WORKER)
        body = resp.json()
        assert body["unread_count"] == 1
        notification = body["notifications"][0]
        assert notification["message"] == (
            "You have been assigned a new task: Fire extinguisher inspection"
        )
        assert {d["channel"] for d in notification["deliveries"]} == {"in_app", "email", "sms"}
        assert notification["delivery_attempts"] == 3

        resp = await client.post(
            f"/api/tasks/{task_id}/progress",
            json={"progress": 100, "hours_spent": 1.5},
            headers=WORKER,
        )
        assert resp.json()["status"] == "completed"

        report = (await client.get("/api/reports/tasks")).json()
        assert report["summary"]["total_tasks"] == 1
        assert report["summary"]["completed_tasks"] == 1
        assert report["summary"]["overdue_tasks"] == 0

    async def test_bulk_assign_single_notification(self, client: AsyncClient):
        ids = []
        for title in ("Boiler check", "First aid kit", "Exit signage"):
            ids.append((await client.post("/api/tasks", json={"title": title})).json()["task_id"])

        resp = await client.post(
            "/api/tasks/bulk-assign", json={"task_ids": ids, "assignee_id": "worker-1"}
        )
        assert resp.status_code == 200

        notifications = (await client.get("/api/notifications", headers=WORKER)).json()
        assert [n["message"] for n in notifications["notifications"]] == [
            "You have been assigned 3 new tasks"
        ]

    async def test_calendar_invite_and_export(self, client: AsyncClient):
        resp = await client.post(
            "/api/calendar/events",
            json={
                "title": "Buyer audit",
                "start": "2031-03-10T01:00:00Z",
                "end": "2031-03-10T05:00:00Z",
                "attendees": ["worker-1"],
            },
        )
        event_id = resp.json()["event_id"]

        notifications = (await client.get("/api/notifications", headers=WORKER)).json()
        assert notifications["notifications"][0]["message"] == (
            "You have been invited to: Buyer audit"
        )

        document = (await client.get("/api/calendar/export.ics")).text
        assert document.startswith("BEGIN:VCALENDAR")
        assert f"UID:{event_id}" in document
