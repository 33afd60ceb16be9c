"""Unit tests for the order status state machine"""

import pytest

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from orders.status import (
    OrderStatus,
    OWNER_TARGETS,
    StateTransitionError,
    can_transition,
    get_allowed_transitions,
    validate_transition,
)


class TestTransitions:

    @pytest.mark.parametrize("current,target", [
        (OrderStatus.PENDING, OrderStatus.PAID),
        (OrderStatus.PENDING, OrderStatus.CANCELLED),
        (OrderStatus.PAID, OrderStatus.SHIPPED),
        (OrderStatus.PAID, OrderStatus.CANCELLED),
        (OrderStatus.SHIPPED, OrderStatus.COMPLETED),
    ])
    def test_allowed(self, current, target):
        validate_transition(current, target)
        assert can_transition(current, target) is True

    @pytest.mark.parametrize("current,target", [
        (OrderStatus.PENDING, OrderStatus.SHIPPED),
        (OrderStatus.PENDING, OrderStatus.COMPLETED),
        (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
        (OrderStatus.COMPLETED, OrderStatus.CANCELLED),
        (OrderStatus.CANCELLED, OrderStatus.PAID),
        (OrderStatus.PAID, OrderStatus.PAID),
    ])
    def test_forbidden(self, current, target):
        with pytest.raises(StateTransitionError, match="Invalid transition"):
            validate_transition(current, target)
        assert can_transition(current, target) is False

    def test_terminal_states(self):
        assert get_allowed_transitions(OrderStatus.COMPLETED) == []
        assert get_allowed_transitions(OrderStatus.CANCELLED) == []
        assert get_allowed_transitions(OrderStatus.PENDING) == [OrderStatus.PAID, OrderStatus.CANCELLED]

    def test_error_names_allowed_targets(self):
        with pytest.raises(StateTransitionError, match=r"\['COMPLETED'\]"):
            validate_transition(OrderStatus.SHIPPED, OrderStatus.CANCELLED)

    def test_shipping_is_not_an_owner_target(self):
        assert OrderStatus.SHIPPED not in OWNER_TARGETS
        assert OWNER_TARGETS == {OrderStatus.PAID, OrderStatus.COMPLETED, OrderStatus.CANCELLED}
