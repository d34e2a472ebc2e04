import random

import pytest

from fingerpicker.exceptions import InvalidStateTransition, InvalidWinnerCount
from fingerpicker.models import FreezePolicy, Phase, TouchPoint
from fingerpicker.services.picker.engine import RoundEngine


def points(*ids):
    return [TouchPoint(i, float(i * 10), float(i * 20)) for i in ids]


@pytest.fixture()
def updates():
    return []


@pytest.fixture()
def engine(scheduler, updates):
    return RoundEngine(
        scheduler,
        countdown=2.0,
        spin=2.0,
        elimination_interval=0.5,
        rng=random.Random(3),
        on_change=updates.append,
    )


def test_initial_state(engine):
    state = engine.snapshot()
    assert state['phase'] == 'setup'
    assert state['touches'] == []
    assert state['winner_ids'] == []
    assert state['eliminated_ids'] == []
    assert state['countdown_running'] is False
    assert state['max_winners_allowed'] == 10


def test_touches_ignored_outside_collecting(engine, scheduler):
    assert not engine.handle_touches(points(1, 2))
    scheduler.advance(10)
    assert engine.phase is Phase.SETUP
    assert engine.snapshot()['touches'] == []


def test_end_to_end_round(engine, scheduler):
    engine.start()
    assert engine.snapshot()['waiting_reason'] == 'not_enough_participants'
    engine.handle_touches(points(5, 12, 7))
    state = engine.snapshot()
    assert state['countdown_running'] is True
    assert state['countdown_deadline'] == pytest.approx(scheduler.now() + 2.0)
    assert state['waiting_reason'] is None

    scheduler.advance(2.0)
    state = engine.snapshot()
    assert state['phase'] == 'spinning'
    assert state['participant_ids'] == [5, 12, 7]
    assert [t['id'] for t in state['touches']] == [5, 12, 7]
    assert state['winner_ids'] == []

    scheduler.advance(2.0)
    state = engine.snapshot()
    assert state['phase'] == 'eliminating'
    assert len(state['winner_ids']) == 1
    assert state['eliminated_ids'] == []

    scheduler.advance(0.5)
    assert len(engine.snapshot()['eliminated_ids']) == 1
    assert engine.phase is Phase.ELIMINATING

    scheduler.advance(0.5)
    state = engine.snapshot()
    assert state['phase'] == 'result'
    assert len(state['winner_ids']) == 1
    assert len(state['eliminated_ids']) == 2
    assert set(state['winner_ids']) | set(state['eliminated_ids']) == {5, 12, 7}
    assert scheduler.pending == 0


def test_debounce_restart_delays_freeze(engine, scheduler):
    engine.start()
    engine.handle_touches(points(1, 2))
    scheduler.advance(1.5)
    engine.handle_touches(points(1, 2, 3))
    scheduler.advance(1.9)
    assert engine.phase is Phase.COLLECTING
    scheduler.advance(0.1)
    assert engine.phase is Phase.SPINNING
    assert engine.round.participants.ids == [1, 2, 3]


def test_moves_do_not_restart_countdown(engine, scheduler):
    engine.start()
    engine.handle_touches(points(1, 2))
    scheduler.advance(1.0)
    engine.handle_touches([TouchPoint(1, 99.0, 99.0), TouchPoint(2, 5.0, 5.0)])
    scheduler.advance(1.0)
    assert engine.phase is Phase.SPINNING
    frozen = engine.snapshot()['touches']
    assert frozen[0] == {'id': 1, 'x': 99.0, 'y': 99.0}


def test_zero_touches_aborts_countdown(engine, scheduler):
    engine.start()
    engine.handle_touches(points(1, 2))
    scheduler.advance(1.0)
    engine.handle_touches([])
    assert engine.snapshot()['countdown_running'] is False
    scheduler.advance(5.0)
    assert engine.phase is Phase.COLLECTING
    assert engine.snapshot()['waiting_reason'] == 'not_enough_participants'
    assert scheduler.pending == 0


def test_lifted_finger_is_not_frozen(engine, scheduler):
    engine.start()
    engine.handle_touches(points(1, 2, 3))
    engine.handle_touches(points(1, 3))
    scheduler.advance(2.0)
    assert engine.round.participants.ids == [1, 3]


def test_elimination_is_monotonic(engine, scheduler):
    engine.start()
    engine.handle_touches(points(1, 2, 3, 4, 5))
    scheduler.advance(4.0)
    assert engine.phase is Phase.ELIMINATING
    lengths = []
    for _ in range(4):
        scheduler.advance(0.5)
        lengths.append(len(engine.round.eliminated_ids))
    assert lengths == [1, 2, 3, 4]
    assert engine.phase is Phase.RESULT
    scheduler.advance(5.0)
    assert len(engine.round.eliminated_ids) == 4
    assert not set(engine.round.eliminated_ids) & set(engine.round.winner_ids)


def test_single_participant_goes_straight_to_result(engine, scheduler):
    engine.start()
    engine.handle_touches(points(8))
    scheduler.advance(2.0)
    scheduler.advance(2.0)
    state = engine.snapshot()
    assert state['phase'] == 'result'
    assert state['winner_ids'] == [8]
    assert state['eliminated_ids'] == []


def test_winner_count_clamped_to_participants(engine, scheduler):
    engine.set_winner_count(5)
    engine.start()
    engine.handle_touches(points(1, 2, 3))
    scheduler.advance(4.0)
    assert len(engine.round.winner_ids) == 3
    assert engine.phase is Phase.RESULT


def test_winner_count_captured_at_freeze(engine, scheduler):
    engine.set_winner_count(2)
    engine.start()
    engine.handle_touches(points(1, 2, 3, 4))
    scheduler.advance(2.0)
    engine.set_winner_count(1)
    scheduler.advance(2.0)
    assert len(engine.round.winner_ids) == 2
    assert engine.winner_count == 1


def test_set_winner_count_clamps_and_rejects(engine):
    assert engine.set_winner_count(0) == 1
    assert engine.set_winner_count('4') == 4
    assert engine.set_winner_count(3.0) == 3
    assert engine.set_winner_count(50) == 10
    for bad in ('many', 2.5, True, None):
        with pytest.raises(InvalidWinnerCount):
            engine.set_winner_count(bad)
    assert engine.winner_count == 10


def test_max_winners_follows_known_participants(engine, scheduler):
    engine.start()
    engine.handle_touches(points(1, 2, 3))
    assert engine.max_winners_allowed() == 3
    assert engine.set_winner_count(7) == 3


def test_start_only_from_setup(engine, scheduler):
    engine.start()
    with pytest.raises(InvalidStateTransition):
        engine.start()
    engine.handle_touches(points(1, 2))
    scheduler.advance(10.0)
    assert engine.phase is Phase.RESULT
    with pytest.raises(InvalidStateTransition):
        engine.start()


@pytest.mark.parametrize('elapsed', [0.0, 1.0, 2.0, 3.0, 4.25, 10.0])
def test_reset_from_any_point_silences_timers(engine, scheduler, updates, elapsed):
    engine.set_winner_count(2)
    engine.start()
    engine.handle_touches(points(1, 2, 3, 4))
    scheduler.advance(elapsed)

    state = engine.reset()
    assert state['phase'] == 'setup'
    assert state['touches'] == []
    assert state['winner_ids'] == []
    assert state['eliminated_ids'] == []
    assert scheduler.pending == 0

    seen = len(updates)
    scheduler.advance(30.0)
    assert len(updates) == seen
    assert engine.snapshot() == state
    assert engine.reset() == state
    assert engine.winner_count == 2


def test_close_makes_pending_timers_no_ops(engine, scheduler, updates):
    engine.start()
    engine.handle_touches(points(1, 2))
    engine.close()
    seen = len(updates)
    scheduler.advance(30.0)
    assert engine.phase is Phase.COLLECTING
    assert len(updates) == seen
    assert not engine.handle_touches(points(1))


def test_new_round_after_reset_starts_clean(engine, scheduler):
    engine.start()
    engine.handle_touches(points(1, 2))
    scheduler.advance(10.0)
    engine.reset()
    engine.start()
    state = engine.snapshot()
    assert state['phase'] == 'collecting'
    assert state['participant_ids'] == []
    assert state['round'] == 1


def test_listener_sees_every_phase(engine, scheduler, updates):
    engine.start()
    engine.handle_touches(points(1, 2))
    scheduler.advance(10.0)
    phases = []
    for state in updates:
        if not phases or phases[-1] != state['phase']:
            phases.append(state['phase'])
    assert phases == ['collecting', 'spinning', 'eliminating', 'result']


def test_release_policy_freezes_everyone_seen(scheduler):
    engine = RoundEngine(
        scheduler,
        spin=2.0,
        elimination_interval=0.5,
        freeze_policy=FreezePolicy.ON_RELEASE,
        rng=random.Random(11),
    )
    engine.start()
    engine.handle_touches(points(1, 2))
    engine.handle_touches(points(2))
    engine.handle_touches(points(2, 3))
    assert engine.snapshot()['countdown_running'] is False
    scheduler.advance(10.0)
    assert engine.phase is Phase.COLLECTING

    engine.handle_touches([])
    assert engine.phase is Phase.SPINNING
    assert engine.round.participants.ids == [1, 2, 3]
    scheduler.advance(3.0)
    assert engine.phase is Phase.RESULT


def test_release_policy_waits_for_first_touch(scheduler):
    engine = RoundEngine(scheduler, freeze_policy='on_release')
    engine.start()
    engine.handle_touches([])
    assert engine.phase is Phase.COLLECTING
    assert engine.snapshot()['waiting_reason'] == 'not_enough_participants'


def test_from_config_reads_timings(scheduler):
    config = {
        'COUNTDOWN_MS': 1500,
        'SPIN_MS': 1000,
        'ELIMINATION_MS': 250,
        'DEFAULT_WINNER_COUNT': 2,
        'WINNER_COUNT_FALLBACK_MAX': 6,
        'FREEZE_POLICY': 'stable_delay',
        'RANDOM_SEED': 5,
    }
    engine = RoundEngine.from_config(config, scheduler, name='T1')
    assert engine.debouncer.delay == 1.5
    assert engine.spin_delay == 1.0
    assert engine.elimination_interval == 0.25
    assert engine.winner_count == 2
    assert engine.max_winners_allowed() == 6


def test_closed_engine_ignores_winner_count(engine, updates):
    engine.set_winner_count(3)
    engine.close()
    seen = len(updates)
    assert engine.set_winner_count(6) == 3
    assert engine.winner_count == 3
    assert len(updates) == seen
