"""Static challenge definitions, parameterized by session duration."""

import math
from dataclasses import dataclass
from typing import Dict, List, Tuple


BEGINNER = 'beginner'
INTERMEDIATE = 'intermediate'
ADVANCED = 'advanced'

TIME_OPTIONS = [
    {'time': 120, 'label': '2 mins', 'difficulty': BEGINNER},
    {'time': 300, 'label': '5 mins', 'difficulty': INTERMEDIATE},
    {'time': 600, 'label': '10 mins', 'difficulty': ADVANCED},
]

DURATION_TIERS = {opt['time']: opt['difficulty'] for opt in TIME_OPTIONS}

REQUIRED_TASKS = {BEGINNER: 1, INTERMEDIATE: 3, ADVANCED: 6}

PENALTY_KEYS = (
    'DisabilityAct',
    'LawsOfTort_Validation',
    'LawsOfTort_Database',
    'Bankruptcy',
    'PrivacyBreach',
    'SecurityNegligence',
)


@dataclass(frozen=True)
class Challenge:
    id: str
    penalty_key: str
    initial_message: str
    urgent_message: str
    penalty_message: str
    initial_time: int
    urgent_time: int
    penalty_time: int

    def offsets(self) -> Tuple[int, int, int]:
        return (self.initial_time, self.urgent_time, self.penalty_time)


# id -> (penalty_key, initial, urgent, penalty)
_SCENARIOS = {
    'accessibility_disability_act': (
        'DisabilityAct',
        'Accessibility issue detected! The image in your homepage is missing its alt text. '
        'Add a descriptive alt attribute before the client sues for breaking the Disability Act!',
        'URGENT: Fix alt in img1 - Accessibility violation!',
        'You are fined for breaking the Disability Act. Accessibility is not optional!',
    ),
    'input_validation_tort': (
        'LawsOfTort_Validation',
        'Validation issue detected! Your form accepts any text as an email. '
        'Add proper validation or risk violating the Laws of Tort for negligence!',
        'URGENT: Fix input validation - Tort violation!',
        'You are fined for breaking the Laws of Tort. User data validation was missing!',
    ),
    'user_login_bankruptcy': (
        'Bankruptcy',
        "Your login button doesn't work! Customers can't access their accounts. "
        'Fix this before your company declares bankruptcy!',
        'URGENT: Fix user login - Bankruptcy risk!',
        'You have been declared bankrupt! No one can log in, and your app has gone out of business.',
    ),
    'secure_database_tort': (
        'LawsOfTort_Database',
        'Security alert! Your database connection is insecure. '
        'Encrypt passwords and secure the database before you get hacked!',
        'URGENT: Fix secure database - Security breach!',
        'You got hacked and have broken the Laws of Tort for failing to secure your database.',
    ),
    'data_privacy_breach': (
        'PrivacyBreach',
        "Privacy alert! Your API response is leaking user passwords. "
        "Fix it immediately before you're sued for a privacy breach!",
        'URGENT: Fix data exposure - Privacy violation!',
        'You violated user privacy and are fined for leaking sensitive data under the Data Protection Act!',
    ),
    'commented_security_negligence': (
        'SecurityNegligence',
        'Developer negligence detected! The login authentication code has been commented out. '
        'Uncomment it before unauthorized users exploit your system!',
        'URGENT: Uncomment authentication - Security risk!',
        'You have been charged with negligence: authentication checks were disabled!',
    ),
}

# tier -> ordered [(scenario id, (initial, urgent, penalty) fractions)]
_TIER_PACING = {
    BEGINNER: [
        ('accessibility_disability_act', (0.25, 0.50, 0.75)),
    ],
    INTERMEDIATE: [
        ('accessibility_disability_act', (0.10, 0.20, 0.30)),
        ('input_validation_tort', (0.25, 0.35, 0.45)),
        ('user_login_bankruptcy', (0.50, 0.60, 0.70)),
    ],
    ADVANCED: [
        ('accessibility_disability_act', (0.10, 0.15, 0.20)),
        ('input_validation_tort', (0.20, 0.25, 0.30)),
        ('user_login_bankruptcy', (0.30, 0.35, 0.40)),
        ('secure_database_tort', (0.40, 0.45, 0.50)),
        ('data_privacy_breach', (0.50, 0.55, 0.60)),
        ('commented_security_negligence', (0.60, 0.65, 0.70)),
    ],
}

DISTRACTION_MESSAGES = [
    {'source': 'Family', 'text': 'Can you pick up the kids after work? I have a late meeting.'},
    {'source': 'Boss', 'text': 'Are you done with sprint 1? The client is asking for a demo.'},
    {'source': 'Agile', 'text': 'Fix: change Title colour to Red per product owner request.'},
    {'source': 'Family', 'text': "Don't forget about dinner tonight!"},
    {'source': 'Boss', 'text': 'The deadline is approaching, how is the project going?'},
    {'source': 'Agile', 'text': 'We need to update the user interface design.'},
]


def _offset(duration: int, fraction: float) -> int:
    # 300 * 0.35 must floor to 105, not 104
    return math.floor(round(duration * fraction, 6))


def _build(duration: int, pacing) -> List[Challenge]:
    challenges = []
    for scenario_id, (f_initial, f_urgent, f_penalty) in pacing:
        key, initial, urgent, penalty = _SCENARIOS[scenario_id]
        challenges.append(Challenge(
            id=scenario_id,
            penalty_key=key,
            initial_message=initial,
            urgent_message=urgent,
            penalty_message=penalty,
            initial_time=_offset(duration, f_initial),
            urgent_time=_offset(duration, f_urgent),
            penalty_time=_offset(duration, f_penalty),
        ))
    return challenges


def get_challenges(duration: int) -> Dict[str, List[Challenge]]:
    """Return the challenge list of every tier for a session of ``duration`` seconds."""
    return {tier: _build(duration, pacing) for tier, pacing in _TIER_PACING.items()}


def tier_for_duration(duration: int) -> str:
    try:
        return DURATION_TIERS[int(duration)]
    except (KeyError, TypeError, ValueError):
        raise ValueError(f"Unsupported duration {duration!r}; expected one of {sorted(DURATION_TIERS)}")


def challenges_for_duration(duration: int) -> List[Challenge]:
    return get_challenges(duration)[tier_for_duration(duration)]


def required_tasks(tier: str) -> int:
    return REQUIRED_TASKS.get(tier, 0)


def distraction_frequency(tier: str, duration: int) -> Tuple[int, int]:
    """Return ``(interval, max_count)`` for distraction messages."""
    if tier == BEGINNER:
        return max(20, _offset(duration, 0.33)), 2
    if tier == INTERMEDIATE:
        return max(12, _offset(duration, 0.08)), duration // 15
    if tier == ADVANCED:
        return max(7, _offset(duration, 0.025)), duration // 8
    return 15, 5
