import logging
import random
import threading
from typing import Any, Callable, Dict, List, Optional

from fingerpicker.exceptions import InvalidStateTransition, InvalidWinnerCount
from fingerpicker.models import FreezePolicy, ParticipantSet, Phase, RoundState, TouchPoint
from .debounce import CountdownDebouncer
from .elimination import EliminationSequencer
from .selection import select_winners
from .touches import TouchTracker

logger = logging.getLogger(__name__)

COUNTDOWN = 'countdown'
SPIN = 'spin'
REVEAL = 'reveal'


def coerce_winner_count(value) -> int:
    """Accept ints, integral floats and numeric strings; reject anything else."""
    if isinstance(value, bool):
        raise InvalidWinnerCount(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise InvalidWinnerCount(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise InvalidWinnerCount(value) from None
    raise InvalidWinnerCount(value)


class RoundEngine:
    """Phase machine for one shared touch surface.

    SETUP -> COLLECTING -> SPINNING -> ELIMINATING -> RESULT, and back to
    SETUP on reset. The engine owns every timer it arms. Each phase change
    cancels all of them before a new one is armed, and each timer remembers
    the phase and epoch it was armed under so a late fire is ignored.
    """

    def __init__(
        self,
        scheduler,
        countdown: float = 2.2,
        spin: float = 2.0,
        elimination_interval: float = 0.55,
        winner_count: int = 1,
        fallback_max_winners: int = 10,
        freeze_policy=FreezePolicy.STABLE_DELAY,
        rng=None,
        on_change: Optional[Callable[[Dict[str, Any]], None]] = None,
        name: str = 'table',
    ):
        self.name = name
        self.scheduler = scheduler
        self.spin_delay = spin
        self.elimination_interval = elimination_interval
        self.fallback_max_winners = fallback_max_winners
        self.freeze_policy = FreezePolicy(freeze_policy)
        self.rng = rng or random
        self.on_change = on_change

        self.phase = Phase.SETUP
        self.winner_count = max(1, coerce_winner_count(winner_count))
        self.rounds_played = 0
        self.tracker = TouchTracker(accumulate=self.freeze_policy is FreezePolicy.ON_RELEASE)
        self.debouncer = CountdownDebouncer(countdown)
        self.round = RoundState()
        self._sequencer: Optional[EliminationSequencer] = None
        self._timers: Dict[str, tuple] = {}
        self._epoch = 0
        self._closed = False
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config, scheduler, **kwargs) -> 'RoundEngine':
        seed = config.get('RANDOM_SEED')
        return cls(
            scheduler,
            countdown=int(config.get('COUNTDOWN_MS', 2200)) / 1000.0,
            spin=int(config.get('SPIN_MS', 2000)) / 1000.0,
            elimination_interval=int(config.get('ELIMINATION_MS', 550)) / 1000.0,
            winner_count=config.get('DEFAULT_WINNER_COUNT', 1),
            fallback_max_winners=int(config.get('WINNER_COUNT_FALLBACK_MAX', 10)),
            freeze_policy=config.get('FREEZE_POLICY', FreezePolicy.STABLE_DELAY.value),
            rng=random.Random(seed) if seed is not None else None,
            **kwargs
        )

    # ---- commands ----

    def start(self) -> Dict[str, Any]:
        with self._lock:
            if self._closed:
                return self.snapshot()
            if self.phase is not Phase.SETUP:
                raise InvalidStateTransition('start a round', self.phase)
            self._clear_round()
            self._enter(Phase.COLLECTING)
            self.debouncer.reset(waiting=True)
            self._notify()
            return self.snapshot()

    def reset(self) -> Dict[str, Any]:
        with self._lock:
            if self._closed:
                return self.snapshot()
            self._clear_round()
            self._enter(Phase.SETUP)
            self._notify()
            return self.snapshot()

    def set_winner_count(self, value) -> int:
        """Clamp and store the winner count; it applies from the next freeze."""
        requested = coerce_winner_count(value)
        with self._lock:
            if self._closed:
                return self.winner_count
            effective = max(1, min(requested, self.max_winners_allowed()))
            if effective != requested:
                logger.info(f"[winner-count] table={self.name} requested={requested} clamped={effective}")
            self.winner_count = effective
            self._notify()
            return effective

    def handle_touches(self, touches: List[TouchPoint]) -> bool:
        """Replace the live touches; return True when the set of ids changed.

        Only the collecting phase listens. Moves are rendered but never
        restart the countdown.
        """
        with self._lock:
            if self._closed or self.phase is not Phase.COLLECTING:
                return False
            changed = self.tracker.update(touches)
            if changed:
                if self.freeze_policy is FreezePolicy.ON_RELEASE:
                    self._freeze_if_released()
                else:
                    self._restart_countdown()
            self._notify()
            return changed

    def close(self) -> None:
        """Tear down: cancel every timer and ignore anything that comes later."""
        with self._lock:
            self._cancel_all()
            self._closed = True
            self._epoch += 1
            logger.info(f"[close] table={self.name} phase={self.phase.value}")

    @property
    def closed(self) -> bool:
        return self._closed

    # ---- queries ----

    def max_winners_allowed(self) -> int:
        if self.round.participants:
            known = len(self.round.participants)
        else:
            known = len(self.tracker.live)
        return max(1, known or self.fallback_max_winners)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            if self.phase is Phase.COLLECTING:
                touches = self.tracker.live
            elif self.phase is Phase.SETUP or not self.round.participants:
                touches = []
            else:
                touches = list(self.round.participants.touches)

            countdown_running = self.phase is Phase.COLLECTING and self.debouncer.running
            data = {
                'phase': self.phase.value,
                'touches': [t.to_dict() for t in touches],
                'countdown_running': countdown_running,
                'countdown_deadline': self.debouncer.deadline if countdown_running else None,
                'waiting_reason': self._waiting_reason(),
                'winner_count': self.winner_count,
                'max_winners_allowed': self.max_winners_allowed(),
                'freeze_policy': self.freeze_policy.value,
                'round': self.rounds_played,
            }
            data.update(self.round.to_dict())
            return data

    def _waiting_reason(self) -> Optional[str]:
        if self.phase is not Phase.COLLECTING:
            return None
        if self.freeze_policy is FreezePolicy.ON_RELEASE:
            waiting = not self.tracker.known
        else:
            waiting = self.debouncer.waiting_for_participants
        return 'not_enough_participants' if waiting else None

    # ---- transitions ----

    def _restart_countdown(self) -> None:
        if self.debouncer.touch_set_changed(len(self.tracker.live), self.scheduler.now()):
            self._arm(COUNTDOWN, self.debouncer.delay, self._countdown_elapsed)
        else:
            self._cancel(COUNTDOWN)
            logger.info(f"[countdown-cancel] table={self.name} no touches left")

    def _countdown_elapsed(self) -> None:
        logger.debug(f"[countdown-fire] table={self.name} live={self.tracker.live_ids}")
        participants = self.debouncer.settle(self.tracker.live)
        if participants is None:
            logger.info(f"[freeze-abort] table={self.name} surface emptied before the countdown ended")
            return
        self._freeze(participants)

    def _freeze_if_released(self) -> None:
        if self.tracker.live or not self.tracker.known:
            return
        self._freeze(ParticipantSet(self.tracker.known))

    def _freeze(self, participants: ParticipantSet) -> None:
        self.round = RoundState(participants, winner_count=self.winner_count)
        self.rounds_played += 1
        logger.info(
            f"[freeze] table={self.name} round={self.rounds_played} "
            f"participants={participants.ids} winner_count={self.winner_count}"
        )
        self._enter(Phase.SPINNING)
        self._arm(SPIN, self.spin_delay, self._spin_elapsed)

    def _spin_elapsed(self) -> None:
        winners, losers = select_winners(self.round.participants.ids, self.round.winner_count, self.rng)
        self.round.winner_ids = winners
        self._sequencer = EliminationSequencer(losers)
        logger.info(f"[select] table={self.name} winners={winners} loss_order={losers}")
        self._enter(Phase.ELIMINATING)
        self._schedule_reveal()

    def _schedule_reveal(self) -> None:
        if self._sequencer.exhausted:
            self._enter(Phase.RESULT)
            return
        self._arm(REVEAL, self.elimination_interval, self._reveal_next)

    def _reveal_next(self) -> None:
        touch_id = self._sequencer.reveal_next()
        self.round.record_eliminated(touch_id)
        logger.info(
            f"[reveal] table={self.name} eliminated={touch_id} remaining={self._sequencer.remaining}"
        )
        self._schedule_reveal()

    def _clear_round(self) -> None:
        self.tracker.clear()
        self.debouncer.reset()
        self.round = RoundState()
        self._sequencer = None

    def _enter(self, phase: Phase) -> None:
        self._cancel_all()
        previous = self.phase
        self.phase = phase
        self._epoch += 1
        logger.info(f"[phase] table={self.name} {previous.value} -> {phase.value}")

    # ---- timers ----

    def _arm(self, kind: str, delay: float, callback: Callable[[], None]) -> None:
        self._cancel(kind)
        token = object()
        phase, epoch = self.phase, self._epoch
        handle = self.scheduler.call_later(
            delay, lambda: self._on_timer(kind, token, phase, epoch, callback)
        )
        self._timers[kind] = (token, handle)
        logger.debug(f"[timer-set] table={self.name} kind={kind} phase={phase.value} delay={delay:.3f}s")

    def _on_timer(self, kind: str, token, phase: Phase, epoch: int, callback: Callable[[], None]) -> None:
        with self._lock:
            current = self._timers.get(kind)
            if (
                self._closed
                or current is None
                or current[0] is not token
                or self.phase is not phase
                or self._epoch != epoch
            ):
                logger.info(
                    f"[timer-abort] table={self.name} kind={kind} expected_phase={phase.value} "
                    f"actual_phase={self.phase.value}"
                )
                return
            del self._timers[kind]
            logger.debug(f"[timer-fire] table={self.name} kind={kind} phase={phase.value}")
            callback()
            self._notify()

    def _cancel(self, kind: str) -> None:
        entry = self._timers.pop(kind, None)
        if entry is not None:
            entry[1].cancel()

    def _cancel_all(self) -> None:
        for kind in list(self._timers):
            self._cancel(kind)

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.snapshot())
