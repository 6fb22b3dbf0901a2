import os

# Must be set before settlement modules create the engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./settlement_test.db")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("TIMEZONE", "Asia/Seoul")

from datetime import date, datetime
from decimal import Decimal
from itertools import count
from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from settlement.api.routes import health, seller_settlements, settlements
from settlement.domain.models import OrderStatus, RefundStatus, SellerStatus
from settlement.infrastructure.db.database import Base, get_db
from settlement.infrastructure.db.models import (
    OrderItemModel,
    OrderModel,
    RefundModel,
    SellerModel,
)
from settlement.services.batch_trigger_service import (
    BatchTriggerService,
    get_batch_trigger_service,
)

TARGET_DATE = date(2026, 10, 18)
TODAY = date(2026, 10, 19)


@pytest.fixture()
async def db_engine(tmp_path):
    db_path = tmp_path / "test.db"
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        future=True,
        echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
def trigger_service(session_factory) -> BatchTriggerService:
    return BatchTriggerService(
        session_factory,
        job_name="dailySettlementJob",
        chunk_size=2,
        seller_page_size=3,
        today=lambda: TODAY,
    )


@pytest.fixture()
async def app(session_factory, trigger_service) -> FastAPI:
    app = FastAPI()
    app.include_router(health.router, tags=["Health"])
    app.include_router(settlements.router, prefix="/api/v1/admin/settlements", tags=["Settlement Admin"])
    app.include_router(seller_settlements.router, prefix="/api/v1/settlements", tags=["Seller Settlements"])

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_batch_trigger_service] = lambda: trigger_service
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# -------------------------------------------------------------------
# Source data builders
# -------------------------------------------------------------------

class SeedData:
    """Inserts sellers, orders and refunds and commits immediately"""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._seq = count(1)

    async def _add(self, model):
        async with self.session_factory() as session:
            session.add(model)
            await session.commit()
            return model

    async def seller(
        self,
        code: str,
        commission_rate: str = "0.1000",
        status: SellerStatus = SellerStatus.ACTIVE,
    ) -> SellerModel:
        return await self._add(SellerModel(
            seller_code=code,
            seller_name=f"Seller {code}",
            commission_rate=Decimal(commission_rate),
            status=status,
        ))

    async def order(
        self,
        seller_id: int,
        amounts,
        order_date: datetime = datetime(2026, 10, 18, 12, 0, 0),
        status: OrderStatus = OrderStatus.DELIVERED,
    ) -> OrderModel:
        n = next(self._seq)
        items = [
            OrderItemModel(
                product_name=f"Product {n}-{i}",
                unit_price=Decimal(amount),
                quantity=1,
                total_amount=Decimal(amount),
            )
            for i, amount in enumerate(amounts)
        ]
        return await self._add(OrderModel(
            order_no=f"ORD-{n:06d}",
            seller_id=seller_id,
            order_status=status,
            order_date=order_date,
            total_amount=sum((Decimal(a) for a in amounts), Decimal("0")),
            order_items=items,
        ))

    async def refund(
        self,
        order_item_id: int,
        amount: str,
        refunded_at: datetime = datetime(2026, 10, 18, 15, 0, 0),
        status: RefundStatus = RefundStatus.COMPLETED,
    ) -> RefundModel:
        return await self._add(RefundModel(
            order_item_id=order_item_id,
            refund_amount=Decimal(amount),
            refund_status=status,
            refunded_at=refunded_at,
        ))


@pytest.fixture()
def seed(session_factory) -> SeedData:
    return SeedData(session_factory)
