"""Tests for the order state machine table."""

import pytest
from ordering.order.order import (
    CANCELLABLE_STATES,
    INTENT_STATES,
    PAYABLE_STATES,
    SETTLED_STATES,
    OrderStatus,
    can_transition,
)

S = OrderStatus


class TestTransitionTable:
    @pytest.mark.parametrize(
        "current,target",
        [
            (S.CREATED, S.PAYMENT_INTENT_CREATED),
            (S.CREATED, S.CANCELLED),
            (S.PAYMENT_INTENT_CREATED, S.PAYMENT_INTENT_CREATED),
            (S.PAYMENT_INTENT_CREATED, S.PAID),
            (S.PAYMENT_INTENT_CREATED, S.CANCELLED),
            (S.PAID, S.SHIPPED),
            (S.SHIPPED, S.DELIVERED),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target) is True

    @pytest.mark.parametrize(
        "current,target",
        [
            (S.CREATED, S.PAID),
            (S.PAID, S.CANCELLED),
            (S.PAID, S.CREATED),
            (S.CANCELLED, S.PAID),
            (S.CANCELLED, S.CREATED),
            (S.DELIVERED, S.CANCELLED),
            (S.SHIPPED, S.PAID),
            (S.CREATED, S.SHIPPED),
        ],
    )
    def test_forbidden(self, current, target):
        assert can_transition(current, target) is False

    def test_terminal_states(self):
        for status in OrderStatus:
            if status in (S.DELIVERED, S.CANCELLED):
                assert not any(can_transition(status, target) for target in OrderStatus)


class TestStateGroups:
    def test_cancellable(self):
        assert CANCELLABLE_STATES == {S.CREATED, S.PAYMENT_INTENT_CREATED}

    def test_payable(self):
        assert PAYABLE_STATES == {S.PAYMENT_INTENT_CREATED}

    def test_intent_states(self):
        assert INTENT_STATES == {S.CREATED, S.PAYMENT_INTENT_CREATED}

    def test_settled(self):
        assert SETTLED_STATES == {S.PAID, S.SHIPPED, S.DELIVERED}
