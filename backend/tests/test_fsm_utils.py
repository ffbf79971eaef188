from enum import Enum
import pytest
from repairdesk.errors import InvalidTransition
from repairdesk.models.repair_ticket import TicketStatus
from repairdesk.services.context import TransitionPolicy
from repairdesk.services.tickets import ticket_fsm
from repairdesk.utils.fsm import TransitionValidator


class Light(str, Enum):
    RED = 'RED'
    GREEN = 'GREEN'
    OFF = 'OFF'


def _lights():
    return TransitionValidator('Light', {Light.RED: {Light.GREEN}, Light.GREEN: {Light.RED, Light.OFF}, Light.OFF: set()})


def test_transition_validator_allows_valid():
    assert _lights().assert_can_transition(Light.RED, Light.GREEN) is True


def test_transition_validator_blocks_invalid():
    with pytest.raises(InvalidTransition) as exc:
        _lights().assert_can_transition(Light.RED, Light.OFF)
    assert 'RED -> OFF' in exc.value.message


def test_terminal_state_reason():
    fsm = _lights()
    assert fsm.terminal_states() == [Light.OFF]
    with pytest.raises(InvalidTransition) as exc:
        fsm.assert_can_transition(Light.OFF, Light.RED)
    assert exc.value.message.endswith('terminal state')


def test_transition_table_must_be_exhaustive():
    with pytest.raises(ValueError):
        TransitionValidator('Light', {Light.RED: {Light.GREEN}, Light.GREEN: set()})


def test_strict_ticket_policy_is_adjacent_plus_cancel():
    fsm = ticket_fsm(TransitionPolicy.STRICT)
    assert fsm.allowed_from(TicketStatus.RECEIVED) == {TicketStatus.DIAGNOSED, TicketStatus.CANCELLED}
    assert fsm.allowed_from(TicketStatus.IN_REPAIR) == {TicketStatus.WAITING_PARTS, TicketStatus.QA, TicketStatus.CANCELLED}
    assert fsm.allowed_from(TicketStatus.READY_FOR_PICKUP) == {TicketStatus.QA, TicketStatus.COMPLETE, TicketStatus.CANCELLED}
    assert not fsm.can_transition(TicketStatus.RECEIVED, TicketStatus.COMPLETE)
    assert set(fsm.terminal_states()) == {TicketStatus.COMPLETE, TicketStatus.CANCELLED}


def test_open_ticket_policy_allows_jumps_but_keeps_terminals():
    fsm = ticket_fsm(TransitionPolicy.OPEN)
    assert fsm.can_transition(TicketStatus.RECEIVED, TicketStatus.COMPLETE)
    assert fsm.can_transition(TicketStatus.QA, TicketStatus.RECEIVED)
    assert not fsm.can_transition(TicketStatus.QA, TicketStatus.QA)
    assert fsm.is_terminal(TicketStatus.COMPLETE)
    assert fsm.is_terminal(TicketStatus.CANCELLED)
