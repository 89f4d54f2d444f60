import logging

from enums.checkout_state import CheckoutState
from enums.payment_method import PaymentMethod
from exceptions.cart import EmptyCartException
from exceptions.checkout import InvalidCheckoutStateException
from exceptions.payment import PaymentMethodNotSelectedException, UnverifiedPaymentException
from models.checkout import CheckoutContext, OrderTotalsDTO
from services.cart import CartStore
from services.pricing import PricingService
from utils.checkout_state_machine import CheckoutStateMachine

logger = logging.getLogger(__name__)


class CheckoutGate:
    """
    The single authority on whether an order may be written for a checkout attempt.

    Cash is trusted as soon as it is selected. Every other method waits in
    PENDING_VERIFICATION until the payment provider confirms it through
    confirm_payment(). Only VERIFIED lets the order finalizer proceed.
    """

    def __init__(self, context: CheckoutContext):
        self.context = context
        self._state = CheckoutState.AWAITING_METHOD

    @classmethod
    def begin(
        cls,
        cart_store: CartStore,
        user_id: str | None = None,
        address_id: str | None = None,
        scheduled_date: str | None = None,
        scheduled_time_slot: str | None = None,
        coupon_code: str | None = None
    ) -> "CheckoutGate":
        """
        Start a checkout attempt from the current cart.

        The cart is snapshotted here, later cart changes do not reach this attempt.

        Raises:
            EmptyCartException: If the cart has no lines
        """
        if cart_store.is_empty:
            raise EmptyCartException(user_id)

        context = CheckoutContext(
            user_id=user_id,
            cart_snapshot=cart_store.snapshot(),
            address_id=address_id,
            scheduled_date=scheduled_date,
            scheduled_time_slot=scheduled_time_slot,
            coupon_code=coupon_code
        )
        logger.info(
            f"Checkout {context.checkout_id} started: {len(context.cart_snapshot)} line(s), "
            f"subtotal {cart_store.subtotal}"
        )
        return cls(context)

    @property
    def checkout_id(self) -> str:
        return self.context.checkout_id

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def is_verified(self) -> bool:
        return self._state == CheckoutState.VERIFIED and self.context.payment_verified

    @property
    def totals(self) -> OrderTotalsDTO:
        return PricingService.calculate_totals(self.context.cart_snapshot, self.context.coupon_code)

    def select_method(self, method: PaymentMethod | str) -> CheckoutState:
        """
        Record the user's payment method.

        Switching methods is allowed until the payment is verified, after
        that the method is frozen.

        Raises:
            InvalidCheckoutStateException: If the payment is already verified
            ValueError: If method is not a known payment method
        """
        method = PaymentMethod(method)
        if CheckoutStateMachine.is_final_state(self._state):
            raise InvalidCheckoutStateException(
                self.checkout_id, self._state.value, CheckoutState.PENDING_VERIFICATION.value
            )

        self._transition(CheckoutState.METHOD_SELECTED)
        self.context.payment_method = method
        self.context.payment_verified = False
        self.context.payment_reference = None

        if method.requires_verification():
            self._transition(CheckoutState.PENDING_VERIFICATION)
        else:
            self._transition(CheckoutState.VERIFIED)
            self.context.payment_verified = True
        return self._state

    def confirm_payment(self, reference: str | None = None) -> bool:
        """
        External confirmation signal from the payment provider.

        Returns:
            True if the gate moved to VERIFIED, False if it already was

        Raises:
            PaymentMethodNotSelectedException: If no method was chosen yet
        """
        if CheckoutStateMachine.is_final_state(self._state):
            logger.debug(f"Duplicate payment confirmation for checkout {self.checkout_id} ignored")
            return False
        if self._state == CheckoutState.AWAITING_METHOD:
            raise PaymentMethodNotSelectedException(self.checkout_id)

        self._transition(CheckoutState.VERIFIED)
        self.context.payment_verified = True
        self.context.payment_reference = reference
        return True

    def ensure_verified(self) -> None:
        """
        Raises:
            UnverifiedPaymentException: Unless the gate is VERIFIED
        """
        if not self.is_verified:
            logger.warning(f"Order blocked for checkout {self.checkout_id}: payment state '{self._state.value}'")
            raise UnverifiedPaymentException(self.checkout_id, self._state.value)

    def _transition(self, to_state: CheckoutState) -> None:
        if not CheckoutStateMachine.validate_and_log_transition(self.checkout_id, self._state, to_state):
            required = "|".join(state.value for state in CheckoutStateMachine.get_source_states(to_state))
            raise InvalidCheckoutStateException(self.checkout_id, self._state.value, required)
        self._state = to_state
