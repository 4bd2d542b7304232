"""Tests for the multiplier sequencer."""

import random

from cruise.engine.sequencer import EARLY_CAP, MultiplierSequencer, SequencerState, plan_next

from conftest import ScriptedUniform


def generate(seed: int, length: int = 12):
    seq = MultiplierSequencer(random.Random(seed))
    return [seq.next() for _ in range(length)]


def test_first_multiplier_in_opening_range():
    for seed in range(500):
        first = generate(seed, 1)[0]
        assert 1.10 <= first <= 1.30


def check_shape(values):
    for i in range(1, 5):  # 2nd..5th
        prev, cur = values[i - 1], values[i]
        assert cur <= EARLY_CAP
        if prev < EARLY_CAP:
            assert cur > prev
        else:
            assert cur == EARLY_CAP

    for i in range(5, len(values)):  # 6th onwards
        assert values[i] - values[i - 1] >= 1.00 - 1e-9


def test_sequence_shape():
    for seed in range(200):
        check_shape(generate(seed))


def test_values_are_rounded_to_cents():
    for value in generate(7, 20):
        assert round(value, 2) == value


def test_scripted_plan():
    # 1.20, then +0.30 until the 2.10 cap holds, then +2.00
    rng = ScriptedUniform([0.5, 1.0, 1.0, 1.0, 1.0, 0.5])
    state = SequencerState()
    values = []
    for _ in range(6):
        value, state = plan_next(state, rng)
        values.append(value)

    assert values == [1.20, 1.50, 1.80, 2.10, 2.10, 4.10]
    assert state == SequencerState(next_index=7, last_planned=4.10)


def test_plan_next_is_pure():
    state = SequencerState(next_index=3, last_planned=1.40)
    first, _ = plan_next(state, ScriptedUniform([0.0]))
    second, _ = plan_next(state, ScriptedUniform([0.0]))
    assert first == second == 1.45
    assert state == SequencerState(next_index=3, last_planned=1.40)


def test_reset_restarts_plan():
    seq = MultiplierSequencer(random.Random(3))
    for _ in range(8):
        seq.next()
    seq.reset()
    assert seq.state == SequencerState(1, 1.0)
    assert 1.10 <= seq.next() <= 1.30


def test_default_random_source():
    seq = MultiplierSequencer()
    assert 1.10 <= seq.next() <= 1.30
    assert seq.state.next_index == 2
