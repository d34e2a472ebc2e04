import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Round timers (milliseconds)
    COUNTDOWN_MS = int(os.environ.get('COUNTDOWN_MS', '2200'))
    SPIN_MS = int(os.environ.get('SPIN_MS', '2000'))
    ELIMINATION_MS = int(os.environ.get('ELIMINATION_MS', '550'))
    # Winners kept when a table is created; preserved across resets
    DEFAULT_WINNER_COUNT = int(os.environ.get('DEFAULT_WINNER_COUNT', '1'))
    # Upper bound for the winner count while no participants are known
    WINNER_COUNT_FALLBACK_MAX = int(os.environ.get('WINNER_COUNT_FALLBACK_MAX', '10'))
    # 'stable_delay' freezes held fingers after COUNTDOWN_MS without changes,
    # 'on_release' freezes every finger seen once all fingers are lifted
    FREEZE_POLICY = os.environ.get('FREEZE_POLICY', 'stable_delay')
    # Optional: seed the selection RNG (reproducible rounds). Empty = system randomness.
    RANDOM_SEED = os.environ.get('RANDOM_SEED') or None
