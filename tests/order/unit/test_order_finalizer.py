"""
OrderFinalizer Unit Tests

Tests the payment gate check, the single-flight guard and the two-step
header/items write protocol. Persistence is mocked except in the
end-to-end cash scenario, which uses in-memory SQLite.

Run with:
    pytest tests/order/unit/test_order_finalizer.py -v
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from enums.cart_item_type import CartItemType
from enums.currency import Currency
from enums.order_status import OrderStatus
from enums.payment_status import PaymentStatus
from exceptions import OrderHeaderWriteException, OrderItemsWriteException, UnverifiedPaymentException
from models.order import OrderDTO
from models.orderItem import OrderItemDTO
from repositories.order import OrderRepository
from repositories.orderItem import OrderItemRepository
from services.cart import CartStore
from services.checkout import CheckoutGate
from services.order import OrderFinalizer
from services.payment import PaymentService


@pytest.fixture
def cart(make_test_line, make_package_line, make_service_line):
    store = CartStore()
    store.add_item(make_test_line("cbc", "lal", price=300))
    store.add_item(make_test_line("cbc", "lal", price=300))
    store.add_item(make_package_line("pkg1", price=1499, provider_id="lal"))
    store.add_item(make_service_line("ecg", price=500))
    return store


@pytest.fixture
def cash_gate(cart):
    gate = CheckoutGate.begin(cart, user_id="user-1", address_id="addr-1",
                              scheduled_date="2026-10-20", scheduled_time_slot="07:00-09:00")
    gate.select_method("cash")
    return gate


@pytest.fixture
def mock_session():
    return AsyncMock()


async def delayed_create(order_dto, session):
    await asyncio.sleep(0.01)
    return order_dto.id


class TestPaymentGate:
    """Unverified payments never reach persistence"""

    @pytest.mark.asyncio
    async def test_unverified_upi_writes_nothing(self, cart, mock_session):
        gate = CheckoutGate.begin(cart)
        gate.select_method("upi")
        finalizer = OrderFinalizer(gate, cart, mock_session)

        with patch.object(OrderRepository, "create", new=AsyncMock()) as create_mock, \
                patch.object(OrderItemRepository, "create_many", new=AsyncMock()) as create_many_mock:
            with pytest.raises(UnverifiedPaymentException):
                await finalizer.finalize()

        create_mock.assert_not_awaited()
        create_many_mock.assert_not_awaited()
        assert finalizer.is_in_flight is False
        assert cart.item_count == 4

    @pytest.mark.asyncio
    async def test_no_method_selected_writes_nothing(self, cart, mock_session):
        finalizer = OrderFinalizer(CheckoutGate.begin(cart), cart, mock_session)

        with patch.object(OrderRepository, "create", new=AsyncMock()) as create_mock:
            with pytest.raises(UnverifiedPaymentException):
                await finalizer.finalize()

        create_mock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upi_finalizes_after_confirmation(self, cart, mock_session):
        gate = CheckoutGate.begin(cart)
        gate.select_method("upi")
        gate.confirm_payment("pay_123")
        finalizer = OrderFinalizer(gate, cart, mock_session)

        with patch.object(OrderRepository, "create", new=AsyncMock(side_effect=delayed_create)) as create_mock, \
                patch.object(OrderItemRepository, "create_many", new=AsyncMock()):
            await finalizer.finalize()

        order_dto = create_mock.await_args.args[0]
        assert order_dto.payment_reference == "pay_123"
        assert order_dto.status == OrderStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_finalized_checkout_leaves_payment_registry(self, cart, mock_session):
        gate = CheckoutGate.begin(cart, user_id="user-1")
        PaymentService.select_payment_method(gate, "upi")
        gate.confirm_payment("pay_123")
        finalizer = OrderFinalizer(gate, cart, mock_session)

        with patch.object(OrderRepository, "create", new=AsyncMock(side_effect=delayed_create)), \
                patch.object(OrderItemRepository, "create_many", new=AsyncMock()):
            await finalizer.finalize()

        assert gate.checkout_id not in PaymentService.awaiting_confirmation
        assert gate.checkout_id not in PaymentService._registered_at


class TestCashCheckoutEndToEnd:
    """Cash checkout persists header, items and clears the cart"""

    @pytest.mark.asyncio
    async def test_cash_order_is_written(self, cart, cash_gate, test_session):
        finalizer = OrderFinalizer(cash_gate, cart, test_session)

        result = await finalizer.finalize()

        order = await OrderRepository.get_by_id(result.order_id, test_session)
        assert order.status == OrderStatus.CONFIRMED
        assert order.payment_status == PaymentStatus.COMPLETED
        assert order.checkout_id == cash_gate.checkout_id
        assert order.total == 600 + 1499 + 500
        assert order.order_number == result.order_number
        assert order.scheduled_time_slot == "07:00-09:00"
        assert order.currency == Currency.INR

        items = await OrderItemRepository.get_by_order_id(result.order_id, test_session)
        assert len(items) == len(cash_gate.context.cart_snapshot) == 3
        assert result.item_count == 3

        by_name = {item.name: item for item in items}
        assert by_name["CBC"].test_id == "cbc"
        assert by_name["CBC"].quantity == 2
        assert by_name["CBC"].price == 300
        assert by_name["Full Body Checkup"].package_id == "pkg1"
        assert by_name["Full Body Checkup"].test_id is None
        assert by_name["ECG"].test_id is None and by_name["ECG"].package_id is None

        assert cart.item_count == 0
        assert cart.is_empty

    @pytest.mark.asyncio
    async def test_coupon_is_stored_on_order(self, cart, test_session):
        gate = CheckoutGate.begin(cart, coupon_code="health100")
        gate.select_method("cash")

        result = await OrderFinalizer(gate, cart, test_session).finalize()

        order = await OrderRepository.get_by_id(result.order_id, test_session)
        assert order.subtotal == 2599
        assert order.discount == 100
        assert order.total == 2499
        assert order.coupon_code == "HEALTH100"


class TestSingleFlight:
    """Repeated and concurrent finalize() calls create one order"""

    @pytest.mark.asyncio
    async def test_concurrent_calls_share_one_write(self, cart, cash_gate, mock_session):
        finalizer = OrderFinalizer(cash_gate, cart, mock_session)

        with patch.object(OrderRepository, "create", new=AsyncMock(side_effect=delayed_create)) as create_mock, \
                patch.object(OrderItemRepository, "create_many", new=AsyncMock()) as create_many_mock:
            results = await asyncio.gather(finalizer.finalize(), finalizer.finalize(), finalizer.finalize())

        assert create_mock.await_count == 1
        assert create_many_mock.await_count == 1
        assert len({result.order_id for result in results}) == 1

    @pytest.mark.asyncio
    async def test_call_after_completion_returns_same_result(self, cart, cash_gate, mock_session):
        finalizer = OrderFinalizer(cash_gate, cart, mock_session)

        with patch.object(OrderRepository, "create", new=AsyncMock(side_effect=delayed_create)) as create_mock, \
                patch.object(OrderItemRepository, "create_many", new=AsyncMock()):
            first = await finalizer.finalize()
            second = await finalizer.finalize()

        assert first == second
        assert finalizer.result == first
        assert create_mock.await_count == 1

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_abort_write(self, cart, cash_gate, mock_session):
        finalizer = OrderFinalizer(cash_gate, cart, mock_session)

        with patch.object(OrderRepository, "create", new=AsyncMock(side_effect=delayed_create)), \
                patch.object(OrderItemRepository, "create_many", new=AsyncMock()):
            caller = asyncio.ensure_future(finalizer.finalize())
            await asyncio.sleep(0)
            assert finalizer.is_in_flight is True
            caller.cancel()

            result = await finalizer.finalize()

        assert result.item_count == 3
        assert finalizer.is_in_flight is False


class TestWriteFailures:
    """Header and items failures are distinguishable and recoverable"""

    @pytest.mark.asyncio
    async def test_header_failure_is_retryable(self, cart, cash_gate, mock_session):
        finalizer = OrderFinalizer(cash_gate, cart, mock_session)
        create_mock = AsyncMock(side_effect=[RuntimeError("database is locked"), "order-1"])

        with patch.object(OrderRepository, "create", new=create_mock), \
                patch.object(OrderRepository, "get_by_checkout_id", new=AsyncMock(return_value=None)) as lookup_mock, \
                patch.object(OrderItemRepository, "create_many", new=AsyncMock()) as create_many_mock:
            with pytest.raises(OrderHeaderWriteException) as exc_info:
                await finalizer.finalize()

            assert exc_info.value.retryable is True
            assert finalizer.order_id is None
            assert finalizer.is_in_flight is False
            create_many_mock.assert_not_awaited()
            mock_session.rollback.assert_awaited()
            assert cart.item_count == 4

            result = await finalizer.finalize()

        assert result.order_id == "order-1"
        assert create_mock.await_count == 2
        lookup_mock.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_header_retry_reuses_landed_header(self, cart, cash_gate, mock_session):
        finalizer = OrderFinalizer(cash_gate, cart, mock_session)
        landed = OrderDTO(id="order-9", order_number="ORD261020ABC123")

        with patch.object(OrderRepository, "create", new=AsyncMock(side_effect=RuntimeError("timeout"))) as create_mock, \
                patch.object(OrderRepository, "get_by_checkout_id", new=AsyncMock(return_value=landed)), \
                patch.object(OrderItemRepository, "create_many", new=AsyncMock()):
            with pytest.raises(OrderHeaderWriteException):
                await finalizer.finalize()

            result = await finalizer.finalize()

        assert create_mock.await_count == 1
        assert result.order_id == "order-9"
        assert result.order_number == "ORD261020ABC123"

    @pytest.mark.asyncio
    async def test_items_failure_then_retry_writes_only_items(self, cart, cash_gate, mock_session):
        finalizer = OrderFinalizer(cash_gate, cart, mock_session)
        create_many_mock = AsyncMock(side_effect=[RuntimeError("disk I/O error"), None])

        with patch.object(OrderRepository, "create", new=AsyncMock(return_value="order-1")) as create_mock, \
                patch.object(OrderItemRepository, "get_by_order_id", new=AsyncMock(return_value=[])), \
                patch.object(OrderItemRepository, "create_many", new=create_many_mock):
            with pytest.raises(OrderItemsWriteException) as exc_info:
                await finalizer.finalize()

            assert exc_info.value.order_id == "order-1"
            assert exc_info.value.retryable is False
            assert finalizer.order_id == "order-1"
            assert cart.item_count == 4

            result = await finalizer.retry_items()

        assert create_mock.await_count == 1
        assert create_many_mock.await_count == 2
        assert result.order_id == "order-1"
        assert cart.is_empty

    @pytest.mark.asyncio
    async def test_failed_header_lookup_is_a_header_failure(self, cart, cash_gate, mock_session):
        finalizer = OrderFinalizer(cash_gate, cart, mock_session)
        lookup_mock = AsyncMock(side_effect=[RuntimeError("db still down"), None])

        with patch.object(OrderRepository, "create",
                          new=AsyncMock(side_effect=[RuntimeError("db down"), "order-1"])) as create_mock, \
                patch.object(OrderRepository, "get_by_checkout_id", new=lookup_mock), \
                patch.object(OrderItemRepository, "create_many", new=AsyncMock()):
            with pytest.raises(OrderHeaderWriteException):
                await finalizer.finalize()

            with pytest.raises(OrderHeaderWriteException) as exc_info:
                await finalizer.finalize()

            assert "db still down" in exc_info.value.reason
            assert create_mock.await_count == 1
            assert finalizer.is_in_flight is False

            result = await finalizer.finalize()

        assert result.order_id == "order-1"
        assert create_mock.await_count == 2

    @pytest.mark.asyncio
    async def test_items_retry_reuses_landed_items(self, cart, cash_gate, mock_session):
        finalizer = OrderFinalizer(cash_gate, cart, mock_session)
        create_many_mock = AsyncMock(side_effect=RuntimeError("commit timeout"))
        landed = [OrderItemDTO(id=i, order_id="order-1") for i in range(1, 4)]

        with patch.object(OrderRepository, "create", new=AsyncMock(return_value="order-1")), \
                patch.object(OrderItemRepository, "get_by_order_id", new=AsyncMock(return_value=landed)) as lookup_mock, \
                patch.object(OrderItemRepository, "create_many", new=create_many_mock):
            with pytest.raises(OrderItemsWriteException):
                await finalizer.finalize()

            result = await finalizer.retry_items()

        assert create_many_mock.await_count == 1
        lookup_mock.assert_awaited_once_with("order-1", mock_session)
        assert result.item_count == 3
        assert cart.is_empty

    @pytest.mark.asyncio
    async def test_failed_items_lookup_is_an_items_failure(self, cart, cash_gate, mock_session):
        finalizer = OrderFinalizer(cash_gate, cart, mock_session)

        with patch.object(OrderRepository, "create", new=AsyncMock(return_value="order-1")), \
                patch.object(OrderItemRepository, "get_by_order_id",
                             new=AsyncMock(side_effect=RuntimeError("db still down"))), \
                patch.object(OrderItemRepository, "create_many",
                             new=AsyncMock(side_effect=RuntimeError("db down"))):
            with pytest.raises(OrderItemsWriteException):
                await finalizer.finalize()

            with pytest.raises(OrderItemsWriteException) as exc_info:
                await finalizer.retry_items()

        assert exc_info.value.order_id == "order-1"
        assert "db still down" in exc_info.value.reason


class TestSnapshotIsolation:
    """Cart changes after checkout started never reach the order"""

    @pytest.mark.asyncio
    async def test_items_come_from_snapshot(self, cart, cash_gate, mock_session, make_test_line):
        cart.update_quantity("cbc-lal", 5)
        cart.add_item(make_test_line("lft", "lal", price=450))
        finalizer = OrderFinalizer(cash_gate, cart, mock_session)

        with patch.object(OrderRepository, "create", new=AsyncMock(side_effect=delayed_create)) as create_mock, \
                patch.object(OrderItemRepository, "create_many", new=AsyncMock()) as create_many_mock:
            result = await finalizer.finalize()

        order_items = create_many_mock.await_args.args[0]
        assert len(order_items) == 3
        assert {item.name: item.quantity for item in order_items}["CBC"] == 2
        assert create_mock.await_args.args[0].total == 2599
        assert result.total == 2599
