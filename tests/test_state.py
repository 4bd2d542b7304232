"""Tests for the round phase state machine."""

from cruise.core.state import RoundPhase, StateMachine


def test_happy_path():
    sm = StateMachine()
    assert sm.phase == RoundPhase.IDLE

    assert sm.transition(RoundPhase.BETTING)
    assert sm.transition(RoundPhase.RUNNING)
    assert sm.transition(RoundPhase.CRASHED)
    assert sm.transition(RoundPhase.BETTING)
    assert sm.transition(RoundPhase.RUNNING)
    assert sm.transition(RoundPhase.LIFEBOAT)
    assert sm.transition(RoundPhase.BETTING)


def test_invalid_transitions_are_refused():
    sm = StateMachine()
    assert not sm.transition(RoundPhase.RUNNING)
    assert sm.phase == RoundPhase.IDLE

    sm.transition(RoundPhase.BETTING)
    sm.transition(RoundPhase.RUNNING)
    assert not sm.transition(RoundPhase.BETTING)
    assert not sm.transition(RoundPhase.CASHED_OUT)
    assert not sm.transition(RoundPhase.IDLE)
    assert sm.phase == RoundPhase.RUNNING


def test_betting_can_reopen():
    sm = StateMachine(RoundPhase.BETTING)
    assert sm.can_transition(RoundPhase.BETTING)


def test_listeners_notified():
    sm = StateMachine()
    seen = []
    sm.add_listener(lambda old, new: seen.append((old, new)))

    sm.transition(RoundPhase.BETTING)
    sm.transition(RoundPhase.RUNNING)

    assert seen == [
        (RoundPhase.IDLE, RoundPhase.BETTING),
        (RoundPhase.BETTING, RoundPhase.RUNNING),
    ]


def test_listener_errors_do_not_block_transition():
    sm = StateMachine()
    seen = []

    def broken(old, new):
        raise RuntimeError("renderer went away")

    sm.add_listener(broken)
    sm.add_listener(lambda old, new: seen.append(new))

    assert sm.transition(RoundPhase.BETTING)
    assert seen == [RoundPhase.BETTING]

    sm.remove_listener(broken)
    sm.transition(RoundPhase.RUNNING)
    assert seen == [RoundPhase.BETTING, RoundPhase.RUNNING]


def test_terminal_phases():
    assert RoundPhase.CRASHED.is_terminal
    assert RoundPhase.LIFEBOAT.is_terminal
    assert not RoundPhase.RUNNING.is_terminal
    assert not RoundPhase.CASHED_OUT.is_terminal
