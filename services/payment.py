from datetime import datetime, timedelta
import logging

import config
from enums.checkout_state import CheckoutState
from enums.payment_method import PaymentMethod
from exceptions.payment import CheckoutNotFoundException
from services.checkout import CheckoutGate

logger = logging.getLogger(__name__)

PROVIDER_STATUS_SUCCEEDED = "succeeded"


class PaymentService:
    """
    Bridges asynchronous payment provider signals to checkout gates.

    Gates waiting for an online payment are registered under their
    checkout_id. The provider callback (see web/payment_webhook.py) looks
    the gate up and confirms it. Registration is in-process.

    A gate leaves the registry when:
    - the provider confirms it, or the order is finalized
    - the user switches to cash
    - the same user starts waiting on another checkout
    - it waited longer than PAYMENT_CONFIRMATION_TIMEOUT_MINUTES (swept on every registration)
    """

    awaiting_confirmation: dict[str, CheckoutGate] = {}
    _registered_at: dict[str, datetime] = {}

    @staticmethod
    def select_payment_method(gate: CheckoutGate, method: PaymentMethod | str) -> CheckoutState:
        """
        Select a payment method on the gate and track it while it waits for the provider.

        Returns:
            The gate state after selection
        """
        state = gate.select_method(method)
        if state == CheckoutState.PENDING_VERIFICATION:
            PaymentService.expire_stale()
            PaymentService._forget_abandoned_by_user(gate)
            PaymentService.awaiting_confirmation[gate.checkout_id] = gate
            PaymentService._registered_at[gate.checkout_id] = datetime.now()
            logger.info(f"Checkout {gate.checkout_id} awaiting {gate.context.payment_method.value} confirmation")
        else:
            PaymentService.forget(gate.checkout_id)
        return state

    @staticmethod
    def handle_provider_event(checkout_id: str, status: str, reference: str | None = None) -> bool:
        """
        Apply a payment provider status update to the waiting checkout.

        Only "succeeded" verifies the gate. Any other status (failed,
        processing, ...) leaves it pending so the user can retry or switch
        method.

        Returns:
            True if the checkout is now verified

        Raises:
            CheckoutNotFoundException: If no checkout with this id is waiting
        """
        gate = PaymentService.awaiting_confirmation.get(checkout_id)
        if gate is None:
            raise CheckoutNotFoundException(checkout_id)

        if status != PROVIDER_STATUS_SUCCEEDED:
            logger.info(f"Payment for checkout {checkout_id} reported '{status}', still awaiting confirmation")
            return False

        gate.confirm_payment(reference)
        PaymentService.forget(checkout_id)
        logger.info(f"✅ Payment confirmed for checkout {checkout_id}")
        return True

    @staticmethod
    def expire_stale(now: datetime | None = None) -> int:
        """
        Drop checkouts that waited longer than PAYMENT_CONFIRMATION_TIMEOUT_MINUTES.

        Returns:
            Number of checkouts dropped
        """
        cutoff = (now or datetime.now()) - timedelta(minutes=config.PAYMENT_CONFIRMATION_TIMEOUT_MINUTES)
        stale = [
            checkout_id for checkout_id, registered_at in PaymentService._registered_at.items()
            if registered_at < cutoff
        ]
        for checkout_id in stale:
            PaymentService.forget(checkout_id)
        if stale:
            logger.info(f"Expired {len(stale)} checkout(s) that never received a payment confirmation")
        return len(stale)

    @staticmethod
    def forget(checkout_id: str) -> None:
        PaymentService.awaiting_confirmation.pop(checkout_id, None)
        PaymentService._registered_at.pop(checkout_id, None)

    @staticmethod
    def _forget_abandoned_by_user(gate: CheckoutGate) -> None:
        user_id = gate.context.user_id
        if user_id is None:
            return
        abandoned = [
            checkout_id for checkout_id, waiting in PaymentService.awaiting_confirmation.items()
            if checkout_id != gate.checkout_id and waiting.context.user_id == user_id
        ]
        for checkout_id in abandoned:
            logger.info(f"Checkout {checkout_id} abandoned by user {user_id} for {gate.checkout_id}")
            PaymentService.forget(checkout_id)
