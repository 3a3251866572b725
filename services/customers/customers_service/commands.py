"""
Customers Service - コマンドハンドラ (Write 側)

顧客の登録・更新・論理削除。メールアドレスは一意。
"""

from datetime import datetime, timezone

from sqlalchemy import insert, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from service_common.errors import Conflict, NotFound

from .queries import load_customer
from .schemas import CreateCustomerRequest, Customer, UpdateCustomerRequest
from .tables import customers


class CustomerNotFound(NotFound):
    code = "CUSTOMER_NOT_FOUND"

    def __init__(self, customer_id: int) -> None:
        self.customer_id = customer_id
        super().__init__("Customer not found.", customer_id=customer_id)


class DuplicateEmail(Conflict):
    code = "DUPLICATE_EMAIL"
    default_message = "The email address is already registered."


async def create_customer(session: AsyncSession, req: CreateCustomerRequest) -> Customer:
    now = datetime.now(timezone.utc)
    try:
        async with session.begin():
            result = await session.execute(
                insert(customers).values(
                    **req.model_dump(), created_at=now, updated_at=now
                )
            )
            customer = await load_customer(session, result.inserted_primary_key[0])
    except IntegrityError as e:
        raise DuplicateEmail() from e
    return customer


async def update_customer(
    session: AsyncSession, customer_id: int, req: UpdateCustomerRequest
) -> Customer:
    """部分更新。論理削除済みの顧客は更新できない。"""
    changes = req.model_dump(exclude_unset=True)
    try:
        async with session.begin():
            result = await session.execute(
                update(customers)
                .where(customers.c.id == customer_id)
                .where(customers.c.deleted_at.is_(None))
                .values(**changes, updated_at=datetime.now(timezone.utc))
            )
            if result.rowcount == 0:
                raise CustomerNotFound(customer_id)
            customer = await load_customer(session, customer_id)
    except IntegrityError as e:
        raise DuplicateEmail() from e
    return customer


async def delete_customer(session: AsyncSession, customer_id: int) -> None:
    """論理削除 (deleted_at をセット)。"""
    now = datetime.now(timezone.utc)
    async with session.begin():
        result = await session.execute(
            update(customers)
            .where(customers.c.id == customer_id)
            .where(customers.c.deleted_at.is_(None))
            .values(deleted_at=now, updated_at=now)
        )
        if result.rowcount == 0:
            raise CustomerNotFound(customer_id)
