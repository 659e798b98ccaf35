"""
Challenge personalization

Turns what a visitor says they care about into a challenge record. This is a
template fill: the same input always yields the same title, description and
steps, in the same order. Nothing here touches storage.

Step count:
    base  = min(duration, len(pool))
    final = min(base + DIFFICULTY_BONUS[difficulty], len(pool))
The first ``final`` steps of the category's pool are used.
"""

from typing import Dict, List

from schemas import ChallengeCreate, ChallengeInput

DIFFICULTY_BONUS: Dict[str, int] = {
    "Easy": 0,
    "Medium": 2,
    "Hard": 4,
}

# {interest} is the visitor's first interest.
STEP_POOLS: Dict[str, List[str]] = {
    "Productivity": [
        "Create a priority system for your tasks",
        "Implement time blocking for {interest} activities",
        "Use the Pomodoro technique for focused work",
        "Eliminate distractions in your workspace",
        "Plan your day the night before",
        "Batch similar tasks together",
        "Take regular breaks to maintain energy",
        "Track your productivity patterns",
        "Say no to low-priority requests",
        "Reflect on your daily accomplishments",
    ],
    "Mindset": [
        "Practice 10 minutes of mindfulness meditation",
        "Write down three things you're grateful for",
        "Challenge a limiting belief",
        "Visualize achieving your goals",
        "Read content that inspires personal growth",
        "Practice positive self-talk",
        "Keep a thought journal",
        "Take a digital detox for one hour",
        "Practice mindful breathing when stressed",
        "Reflect on your personal values",
    ],
    "Health": [
        "Drink 8 glasses of water daily",
        "Take a 30-minute walk",
        "Try a new healthy recipe",
        "Stretch for 10 minutes after waking up",
        "Get 7-8 hours of sleep",
        "Take the stairs instead of the elevator",
        "Have a meat-free day",
        "Do a 7-minute high-intensity workout",
        "Practice deep breathing for 5 minutes",
        "Schedule regular screen breaks",
    ],
    "Success": [
        "Define what success means to you personally",
        "Set a SMART goal related to your interests",
        "Identify potential obstacles and plan around them",
        "Find a mentor or role model in your field",
        "Learn something new related to your goals",
        "Network with people in your area of interest",
        "Track your progress with measurable metrics",
        "Celebrate small wins on your journey",
        "Read about successful people in your field",
        "Reflect on lessons learned from setbacks",
    ],
}

TITLE_TEMPLATES: Dict[str, str] = {
    "Productivity": "{duration}-Day {goal} Productivity Challenge",
    "Mindset": "Transform Your Mindset: {goal} in {duration} Days",
    "Health": "{goal} Health Challenge",
    "Success": "{duration}-Day Journey to {goal}",
}

DESCRIPTION_TEMPLATE = (
    "A personalized {duration}-day challenge designed specifically for someone "
    "interested in {interests}. This {difficulty} difficulty challenge will help "
    "you {goals}."
)


def step_count(duration: int, difficulty: str, pool_size: int) -> int:
    base = min(duration, pool_size)
    return min(base + DIFFICULTY_BONUS[difficulty], pool_size)


def select_steps(challenge_input: ChallengeInput) -> List[str]:
    pool = STEP_POOLS[challenge_input.category]
    count = step_count(challenge_input.duration, challenge_input.difficulty, len(pool))
    interest = challenge_input.interests[0]
    return [step.format(interest=interest) for step in pool[:count]]


def build_challenge(challenge_input: ChallengeInput) -> ChallengeCreate:
    """Synthesize the challenge to store for a validated input."""
    goal = challenge_input.goals[0]
    title = TITLE_TEMPLATES[challenge_input.category].format(
        duration=challenge_input.duration, goal=goal
    )
    description = DESCRIPTION_TEMPLATE.format(
        duration=challenge_input.duration,
        interests=" and ".join(challenge_input.interests[:2]),
        difficulty=challenge_input.difficulty.lower(),
        goals=" and ".join(challenge_input.goals),
    )
    return ChallengeCreate(
        title=title,
        description=description,
        category=challenge_input.category,
        difficulty=challenge_input.difficulty,
        duration=challenge_input.duration,
        steps=select_steps(challenge_input),
    )
