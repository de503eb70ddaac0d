from datetime import datetime

from ghorer_khabar.models import OrderStatus, UserRole
from ghorer_khabar.services import ExcelManager
from ghorer_khabar.services.admin_stats import dashboard_stats, report_data

from conftest import auth_headers


def test_export_writes_all_sheets():
    when = datetime(2026, 3, 1, 9, 30)
    result = ExcelManager.export_admin_report(
        summary={"total_orders": 2, "total_revenue": 1250.0},
        status_counts={"COMPLETED": 1, "PENDING": 1},
        orders=[
            {"order_id": 1, "kitchen": "Ammu's Kitchen", "customer": "Sadia", "status": "COMPLETED", "total": 635},
            {"order_id": 2, "kitchen": "Ammu's Kitchen", "customer": "Rafiq", "status": "PENDING", "total": 615},
        ],
        kitchens=[{"kitchen_id": 1, "name": "Ammu's Kitchen", "revenue": 635.0}],
        when=when,
    )

    assert result["success"], result["message"]
    assert result["path"].endswith("admin-report-2026-03-01-093000-000000.xlsx")

    orders = ExcelManager.read_sheet(result["path"], "Orders")
    assert [row["order_id"] for row in orders] == [1, 2]
    assert list(orders[0]) == ExcelManager.ORDER_COLUMNS

    summary = {row["metric"]: row["value"] for row in ExcelManager.read_sheet(result["path"], "Summary")}
    assert summary["orders_completed"] == "1 (50.00%)"


def test_each_export_gets_its_own_file():
    when = datetime(2026, 3, 2, 18, 0)
    first = ExcelManager.export_admin_report(
        summary={"total_orders": 1},
        status_counts={"PENDING": 1},
        orders=[{"order_id": 7, "kitchen": "Ammu's Kitchen", "status": "PENDING", "total": 335}],
        kitchens=[],
        when=when,
    )
    second = ExcelManager.export_admin_report(
        summary={"total_orders": 0},
        status_counts={},
        orders=[],
        kitchens=[],
        when=when,
    )

    assert first["success"] and second["success"]
    assert first["path"] != second["path"]
    assert second["path"].endswith("admin-report-2026-03-02-180000-000000-1.xlsx")
    orders = ExcelManager.read_sheet(first["path"], "Orders")
    assert [row["order_id"] for row in orders] == [7]


async def test_report_data_counts_completed_revenue(factory, db):
    kitchen = await factory.kitchen()
    dish = await factory.menu_item(kitchen, price=300)
    buyer = await factory.user()
    await factory.order(buyer, kitchen, [(dish, 2)])
    await factory.order(buyer, kitchen, [(dish, 1)], status=OrderStatus.CANCELLED)

    data = await report_data(db)

    assert data["summary"]["total_orders"] == 2
    assert data["summary"]["total_revenue"] == 625
    assert data["status_counts"]["COMPLETED"] == 1
    assert data["kitchens"][0]["name"] == kitchen.name


async def test_dashboard_stats(factory, db):
    kitchen = await factory.kitchen()
    await factory.kitchen(verified=False, active=False)
    dish = await factory.menu_item(kitchen)
    buyer = await factory.user()
    await factory.order(buyer, kitchen, [(dish, 1)])

    stats = await dashboard_stats(db)

    assert stats["total_sellers"] == 2
    assert stats["active_sellers"] == 1
    assert stats["pending_onboarding"] == 1
    assert stats["total_orders"] == 1
    assert len(stats["weekly_data"]) == 4


async def test_export_endpoint(client, factory):
    admin = await factory.user(UserRole.ADMIN)
    buyer = await factory.user()

    response = await client.get("/api/admin/export", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )

    response = await client.get("/api/admin/export", headers=auth_headers(buyer))
    assert response.status_code == 403
