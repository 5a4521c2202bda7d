"""Authorization Policy — exhaustive role-pair truth table.

Tests cover:
    - ORDINARY → ORDINARY is the only denied pairing
    - Every pairing involving PRIVILEGED is allowed, in both directions
"""

import itertools

import pytest

from relay.core.domain_types import Role
from relay.core.policy import is_allowed


def test_ordinary_to_ordinary_is_denied():
    assert is_allowed(Role.ORDINARY, Role.ORDINARY) is False


@pytest.mark.parametrize("sender, target", [
    (Role.ORDINARY, Role.PRIVILEGED),
    (Role.PRIVILEGED, Role.ORDINARY),
    (Role.PRIVILEGED, Role.PRIVILEGED),
])
def test_pairings_with_a_privileged_party_are_allowed(sender, target):
    assert is_allowed(sender, target) is True


def test_exactly_one_pairing_is_denied():
    denied = [
        pair for pair in itertools.product(Role, repeat=2)
        if not is_allowed(*pair)
    ]
    assert denied == [(Role.ORDINARY, Role.ORDINARY)]
