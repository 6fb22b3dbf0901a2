from datetime import date
from decimal import Decimal

import pytest

from settlement.domain.models import SettlementStatus

BASE = "/api/v1/admin/settlements"
TARGET = "2026-10-18"


async def seed_two_sellers(seed):
    s1 = await seed.seller("S001")
    await seed.order(s1.id, ["100000.00"])
    s2 = await seed.seller("S002")
    await seed.order(s2.id, ["10333.33"])
    return s1, s2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health_and_ready(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}

    resp = await client.get("/ready")
    assert resp.status_code == 200
    assert resp.json()["db_connected"] is True


@pytest.mark.asyncio
@pytest.mark.integration
async def test_trigger_batch_and_read_execution(client, seed):
    await seed_two_sellers(seed)

    resp = await client.post(f"{BASE}/batch/trigger", json={"target_date": TARGET})
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "COMPLETED"
    assert data["success_count"] == 2
    assert data["failure_count"] == 0
    assert data["execution_id"] is not None

    resp = await client.get(f"{BASE}/executions/{TARGET}")
    assert resp.status_code == 200
    execution = resp.json()
    assert execution["status"] == "COMPLETED"
    assert execution["total_sellers"] == 2
    assert execution["success_count"] == 2
    assert execution["success_rate"] == 100.0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_trigger_future_date_is_400(client):
    resp = await client.post(f"{BASE}/batch/trigger", json={"target_date": "2026-10-20"})
    assert resp.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_trigger_when_running_is_409(client, trigger_service):
    trigger_service._running.add(date(2026, 10, 18))

    resp = await client.post(f"{BASE}/batch/trigger", json={"target_date": TARGET})
    assert resp.status_code == 409


@pytest.mark.asyncio
@pytest.mark.integration
async def test_execution_not_found_is_404(client):
    resp = await client.get(f"{BASE}/executions/2026-01-01")
    assert resp.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_get_and_statistics(client, seed):
    s1, s2 = await seed_two_sellers(seed)
    await client.post(f"{BASE}/batch/trigger", json={"target_date": TARGET})

    resp = await client.get(BASE, params={"start": TARGET, "end": TARGET, "page": 0, "size": 10})
    assert resp.status_code == 200
    page = resp.json()
    assert len(page["items"]) == 2
    by_seller = {item["seller_id"]: item for item in page["items"]}
    assert Decimal(by_seller[s1.id]["payout_amount"]) == Decimal("89000.00")
    assert Decimal(by_seller[s2.id]["payout_amount"]) == Decimal("9196.67")

    settlement_id = by_seller[s2.id]["id"]
    resp = await client.get(f"{BASE}/{settlement_id}")
    assert resp.status_code == 200
    detail = resp.json()
    assert detail["status"] == SettlementStatus.PENDING.value
    assert len(detail["items"]) == 1
    assert Decimal(detail["items"][0]["commission_amount"]) == Decimal("1033.33")

    resp = await client.get(f"{BASE}/statistics", params={"start": TARGET, "end": TARGET})
    assert resp.status_code == 200
    stats = resp.json()
    assert stats["total_count"] == 2
    assert stats["status_counts"]["PENDING"] == 2
    assert Decimal(stats["totals"]["payout_amount"]) == Decimal("98196.67")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_settlement_not_found_is_404(client):
    resp = await client.get(f"{BASE}/999")
    assert resp.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_inverted_period_is_400(client):
    resp = await client.get(BASE, params={"start": "2026-10-18", "end": "2026-10-01"})
    assert resp.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_without_period_returns_all(client, seed):
    await seed_two_sellers(seed)
    await client.post(f"{BASE}/batch/trigger", json={"target_date": TARGET})

    resp = await client.get(BASE)
    assert resp.status_code == 200
    assert len(resp.json()["items"]) == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_with_only_start_is_400(client):
    resp = await client.get(BASE, params={"start": TARGET})
    assert resp.status_code == 400


SELLER_BASE = "/api/v1/settlements"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_seller_sees_only_own_settlements(client, seed):
    s1, s2 = await seed_two_sellers(seed)
    await client.post(f"{BASE}/batch/trigger", json={"target_date": TARGET})

    resp = await client.get(SELLER_BASE, headers={"X-Seller-Id": str(s1.id)})
    assert resp.status_code == 200
    items = resp.json()["items"]
    assert [item["seller_id"] for item in items] == [s1.id]

    settlement_id = items[0]["id"]
    resp = await client.get(f"{SELLER_BASE}/{settlement_id}", headers={"X-Seller-Id": str(s1.id)})
    assert resp.status_code == 200
    detail = resp.json()
    assert Decimal(detail["payout_amount"]) == Decimal("89000.00")
    assert Decimal(detail["total_deduction_amount"]) == Decimal("11000.00")
    assert len(detail["items"]) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_other_sellers_settlement_is_403(client, seed):
    s1, s2 = await seed_two_sellers(seed)
    await client.post(f"{BASE}/batch/trigger", json={"target_date": TARGET})

    resp = await client.get(SELLER_BASE, headers={"X-Seller-Id": str(s2.id)})
    other_id = resp.json()["items"][0]["id"]

    resp = await client.get(f"{SELLER_BASE}/{other_id}", headers={"X-Seller-Id": str(s1.id)})
    assert resp.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_seller_settlement_not_found_is_404(client):
    resp = await client.get(f"{SELLER_BASE}/999", headers={"X-Seller-Id": "1"})
    assert resp.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_seller_id_header_is_required(client):
    resp = await client.get(SELLER_BASE)
    assert resp.status_code == 422
