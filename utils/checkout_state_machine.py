"""
Checkout State Machine for validating payment-gate transitions.

This module implements a finite state machine to ensure a checkout attempt
only reaches VERIFIED through a trusted path, and provides audit logging
for every transition.
"""

import logging
from typing import Dict, List, Set

from enums.checkout_state import CheckoutState

logger = logging.getLogger(__name__)


class CheckoutStateTransition:
    """Represents a valid state transition with metadata"""

    def __init__(self, from_state: CheckoutState, to_state: CheckoutState, description: str = ""):
        self.from_state = from_state
        self.to_state = to_state
        self.description = description

    def __repr__(self):
        return f"{self.from_state.value} -> {self.to_state.value}"


class CheckoutStateMachine:
    """
    Finite state machine for checkout gate transitions with validation and audit logging.

    Valid transitions:
    - AWAITING_METHOD -> METHOD_SELECTED (user picks a payment method)
    - METHOD_SELECTED -> VERIFIED (cash, trusted immediately)
    - METHOD_SELECTED -> PENDING_VERIFICATION (online payment started)
    - METHOD_SELECTED -> METHOD_SELECTED (user switches method)
    - PENDING_VERIFICATION -> VERIFIED (payment provider confirmed)
    - PENDING_VERIFICATION -> METHOD_SELECTED (user switches method)

    VERIFIED is final.
    """

    VALID_TRANSITIONS: List[CheckoutStateTransition] = [
        CheckoutStateTransition(
            CheckoutState.AWAITING_METHOD,
            CheckoutState.METHOD_SELECTED,
            description="Payment method selected"
        ),
        CheckoutStateTransition(
            CheckoutState.METHOD_SELECTED,
            CheckoutState.VERIFIED,
            description="Cash on collection, trusted without external confirmation"
        ),
        CheckoutStateTransition(
            CheckoutState.METHOD_SELECTED,
            CheckoutState.PENDING_VERIFICATION,
            description="Online payment started, waiting for provider confirmation"
        ),
        CheckoutStateTransition(
            CheckoutState.PENDING_VERIFICATION,
            CheckoutState.VERIFIED,
            description="Payment confirmed by provider"
        ),
        CheckoutStateTransition(
            CheckoutState.PENDING_VERIFICATION,
            CheckoutState.METHOD_SELECTED,
            description="Payment method changed before confirmation"
        ),
    ]

    _transition_map: Dict[CheckoutState, Set[CheckoutState]] = {}
    _transition_descriptions: Dict[tuple, str] = {}

    @classmethod
    def _build_transition_map(cls):
        """Build internal transition maps for performance"""
        if cls._transition_map:
            return

        for transition in cls.VALID_TRANSITIONS:
            cls._transition_map.setdefault(transition.from_state, set()).add(transition.to_state)
            cls._transition_descriptions[(transition.from_state, transition.to_state)] = transition.description

    @classmethod
    def is_valid_transition(cls, from_state: CheckoutState, to_state: CheckoutState) -> bool:
        """
        Check if a state transition is valid according to the state machine.

        Staying in METHOD_SELECTED is allowed (the user picks another method),
        every other self-transition is not.
        """
        cls._build_transition_map()

        if from_state == to_state:
            return from_state == CheckoutState.METHOD_SELECTED

        return to_state in cls._transition_map.get(from_state, set())

    @classmethod
    def get_source_states(cls, to_state: CheckoutState) -> List[CheckoutState]:
        """States from which to_state can be reached."""
        cls._build_transition_map()
        return [state for state, destinations in cls._transition_map.items() if to_state in destinations]

    @classmethod
    def get_transition_description(cls, from_state: CheckoutState, to_state: CheckoutState) -> str:
        cls._build_transition_map()
        return cls._transition_descriptions.get(
            (from_state, to_state),
            f"Transition from {from_state.value} to {to_state.value}"
        )

    @classmethod
    def is_final_state(cls, state: CheckoutState) -> bool:
        return state == CheckoutState.VERIFIED

    @classmethod
    def validate_and_log_transition(cls, checkout_id: str, from_state: CheckoutState,
                                    to_state: CheckoutState) -> bool:
        """
        Validate a state transition and write the audit log line.

        Args:
            checkout_id: ID of the checkout attempt
            from_state: Current gate state
            to_state: Desired new state

        Returns:
            True if transition is valid and logged, False otherwise
        """
        if not cls.is_valid_transition(from_state, to_state):
            logger.error(f"Invalid checkout transition for {checkout_id}: {from_state.value} -> {to_state.value}")
            return False

        transition_desc = cls.get_transition_description(from_state, to_state)
        logger.info(f"CHECKOUT_TRANSITION: {checkout_id} {from_state.value} -> {to_state.value}: {transition_desc}")
        return True
