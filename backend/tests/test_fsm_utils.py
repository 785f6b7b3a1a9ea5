from bazaar_auth.errors import InvalidTransition
from bazaar_auth.services.profile_resolution import (
    AUTHENTICATING, FAILED, IDLE, NO_BRANCH, PRIMARY_LOADED, READY, RESOLUTION_FSM, STAFF_BRANCH, VENDOR_BRANCH,
)
from bazaar_auth.utils.fsm import TransitionValidator
import pytest


def test_transition_validator_allows_valid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    assert fsm.assert_can_transition('A', 'B') is True


def test_transition_validator_blocks_invalid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()}, field_name='phase')
    with pytest.raises(InvalidTransition) as exc:
        fsm.assert_can_transition('A', 'C')
    assert exc.value.current == 'A' and exc.value.target == 'C'
    assert 'phase' in str(exc.value)


def test_with_reset_to_adds_edges_without_touching_original():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    reset = fsm.with_reset_to('A')
    assert reset.can_transition('B', 'A')
    assert not fsm.can_transition('B', 'A')


def test_resolution_graph_shape():
    assert RESOLUTION_FSM.can_transition(IDLE, AUTHENTICATING)
    assert RESOLUTION_FSM.can_transition(AUTHENTICATING, FAILED)
    assert RESOLUTION_FSM.can_transition(PRIMARY_LOADED, FAILED)
    for branch in (VENDOR_BRANCH, STAFF_BRANCH, NO_BRANCH):
        assert RESOLUTION_FSM.can_transition(PRIMARY_LOADED, branch)
        assert RESOLUTION_FSM.can_transition(branch, READY)
        # sub-profile trouble never fails the chain
        assert not RESOLUTION_FSM.can_transition(branch, FAILED)
    assert not RESOLUTION_FSM.can_transition(IDLE, READY)


def test_sign_out_reaches_idle_from_everywhere():
    for state in RESOLUTION_FSM.states:
        assert RESOLUTION_FSM.can_transition(state, IDLE)
