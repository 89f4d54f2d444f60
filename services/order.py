from datetime import datetime
from uuid import uuid4
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import session_rollback
from enums.cart_item_type import CartItemType
from enums.order_status import OrderStatus
from enums.payment_status import PaymentStatus
from exceptions.order import OrderHeaderWriteException, OrderItemsWriteException
from models.cart_line import CartLine
from models.order import OrderDTO, OrderResultDTO
from models.orderItem import OrderItemDTO
from repositories.order import OrderRepository
from repositories.orderItem import OrderItemRepository
from services.cart import CartStore
from services.checkout import CheckoutGate
from services.payment import PaymentService

logger = logging.getLogger(__name__)


class OrderFinalizer:
    """
    Persists exactly one order for one checkout attempt.

    The confirmation view that triggers finalization can be mounted again
    (re-render, route re-entry) while the first write is still running,
    so the finalizer keeps its own single-flight state:

    - a finished order is remembered and returned on every later call
    - a running write is joined, never started twice
    - both checks happen before the first await

    Order of operations:
    1. Re-check the checkout gate (no I/O when payment is unverified)
    2. Write the order header
    3. Write one order item per snapshot line, prices frozen from the snapshot
    4. Clear the cart

    The two writes are independent commits. A failed header write leaves
    nothing behind and the next finalize() starts over. A failed items write
    leaves a header without items: OrderItemsWriteException carries its id
    and the next finalize() retries only the items against that header.
    """

    def __init__(self, gate: CheckoutGate, cart_store: CartStore, session: AsyncSession):
        self._gate = gate
        self._cart_store = cart_store
        self._session = session
        self._task: asyncio.Task | None = None
        self._result: OrderResultDTO | None = None
        self._order_id: str | None = None
        self._order_number: str | None = None
        self._header_attempts = 0
        self._items_attempts = 0

    @property
    def result(self) -> OrderResultDTO | None:
        return self._result

    @property
    def order_id(self) -> str | None:
        return self._order_id

    @property
    def is_in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    async def finalize(self) -> OrderResultDTO:
        """
        Create the order for this checkout attempt, or return the one already created.

        Returns:
            OrderResultDTO of the single order of this checkout attempt

        Raises:
            UnverifiedPaymentException: Payment not verified, nothing was written
            OrderHeaderWriteException: Header write failed, safe to retry
            OrderItemsWriteException: Header exists without items, retry completes it
        """
        if self._result is not None:
            logger.debug(f"Checkout {self._gate.checkout_id} already finalized as order {self._result.order_id}")
            return self._result

        if self._task is None:
            self._gate.ensure_verified()
            self._task = asyncio.ensure_future(self._run())
            self._task.add_done_callback(self._on_done)
        else:
            logger.info(f"Checkout {self._gate.checkout_id} finalization already in flight, joining it")

        # Shielded: a cancelled caller must not abandon a header write halfway
        return await asyncio.shield(self._task)

    async def retry_items(self) -> OrderResultDTO:
        """Complete an order whose items failed to write. Same single-flight rules as finalize()."""
        return await self.finalize()

    def _on_done(self, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is not None:
            # Failed attempts may be retried by the next finalize()
            self._task = None

    async def _run(self) -> OrderResultDTO:
        context = self._gate.context

        if self._order_id is None:
            self._order_id, self._order_number = await self._write_header()
        else:
            logger.info(f"Retrying items for existing order {self._order_id} (checkout {context.checkout_id})")

        item_count = await self._write_items(self._order_id, context.cart_snapshot)

        self._cart_store.clear()
        PaymentService.forget(context.checkout_id)
        self._result = OrderResultDTO(
            order_id=self._order_id,
            order_number=self._order_number,
            item_count=item_count,
            total=self._gate.totals.total
        )
        logger.info(
            f"✅ Order {self._order_number} ({self._order_id}) finalized for checkout {context.checkout_id}: "
            f"{item_count} item(s), total {self._result.total} {config.CURRENCY.value}"
        )
        return self._result

    async def _write_header(self) -> tuple[str, str]:
        context = self._gate.context
        totals = self._gate.totals
        verified = context.payment_verified
        order_dto = OrderDTO(
            id=uuid4().hex,
            order_number=OrderFinalizer._generate_order_number(),
            checkout_id=context.checkout_id,
            user_id=context.user_id,
            status=OrderStatus.CONFIRMED if verified else OrderStatus.PENDING,
            payment_status=PaymentStatus.COMPLETED if verified else PaymentStatus.PENDING,
            payment_method=context.payment_method,
            payment_reference=context.payment_reference,
            currency=config.CURRENCY,
            subtotal=totals.subtotal,
            discount=totals.discount,
            total=totals.total,
            coupon_code=totals.coupon_code,
            address_id=context.address_id,
            scheduled_date=context.scheduled_date,
            scheduled_time_slot=context.scheduled_time_slot
        )

        try:
            # A header commit that failed ambiguously may still have landed
            if self._header_attempts > 0:
                existing = await OrderRepository.get_by_checkout_id(context.checkout_id, self._session)
                if existing is not None:
                    logger.warning(f"Found order {existing.id} from an earlier attempt of checkout {context.checkout_id}, reusing it")
                    return existing.id, existing.order_number

            self._header_attempts += 1
            order_id = await OrderRepository.create(order_dto, self._session)
        except Exception as e:
            await self._rollback()
            logger.error(f"❌ Order header write failed for checkout {context.checkout_id}: {e}")
            raise OrderHeaderWriteException(context.checkout_id, str(e)) from e

        logger.info(f"Order header {order_id} written (status={order_dto.status.value}, total={totals.total})")
        return order_id, order_dto.order_number

    async def _write_items(self, order_id: str, lines: list[CartLine]) -> int:
        context = self._gate.context
        order_items = [OrderFinalizer._to_order_item(order_id, line) for line in lines]

        try:
            # Same for an items commit: never insert a second set
            if self._items_attempts > 0:
                existing = await OrderItemRepository.get_by_order_id(order_id, self._session)
                if existing:
                    logger.warning(f"Found {len(existing)} item(s) of order {order_id} from an earlier attempt, reusing them")
                    return len(existing)

            self._items_attempts += 1
            await OrderItemRepository.create_many(order_items, self._session)
        except Exception as e:
            await self._rollback()
            logger.error(
                f"❌ CRITICAL: Order {order_id} has no items, items write failed for checkout "
                f"{context.checkout_id}: {e}"
            )
            raise OrderItemsWriteException(context.checkout_id, order_id, str(e)) from e

        return len(order_items)

    async def _rollback(self) -> None:
        try:
            await session_rollback(self._session)
        except Exception as rollback_error:
            logger.critical(f"Failed to rollback session: {rollback_error}")

    @staticmethod
    def _to_order_item(order_id: str, line: CartLine) -> OrderItemDTO:
        return OrderItemDTO(
            order_id=order_id,
            test_id=line.catalog_id if line.item_type == CartItemType.TEST else None,
            package_id=line.catalog_id if line.item_type == CartItemType.PACKAGE else None,
            name=line.name,
            quantity=line.quantity,
            price=line.unit_price,
            family_member_id=line.family_member_id
        )

    @staticmethod
    def _generate_order_number() -> str:
        return f"ORD{datetime.now().strftime('%y%m%d')}{uuid4().hex[:6].upper()}"
