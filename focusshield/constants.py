APP_SLUG = 'focus-timer-app'
APP_NAME = 'FocusShield'

# Single key under which the local document is persisted
LOCAL_STORAGE_KEY = 'focusshield:v1'

# Timer presets in seconds (custom is chosen by the user)
TIMER_DURATIONS = {
    'pomodoro': 25 * 60,
    'long': 50 * 60,
    'custom': 0,
}

MIN_SHIP_NOTE_LENGTH = 10

FREE_TIER_REPORT_WEEKS = 2
REPORT_WEEKS = 12

PLANS = {
    'free': {
        'name': 'Free',
        'price': 0,
        'features': [
            'Unlimited focus sessions',
            'Ship notes after each session',
            'Manual meeting block tracking',
            f'Weekly report ({FREE_TIER_REPORT_WEEKS} weeks history)',
        ],
    },
    'pro': {
        'name': 'Pro',
        'price': 9,
        'features': [
            'Everything in Free',
            'Unlimited report history',
            'Cloud sync across devices',
        ],
    },
    'pro_plus': {
        'name': 'Pro+',
        'price': 19,
        'features': [
            'Everything in Pro',
            'Team analytics dashboard',
            'Priority support',
        ],
    },
}
