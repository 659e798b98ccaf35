"""Starter content for a fresh store."""

import logging

logger = logging.getLogger(__name__)

SAMPLE_QUOTES = [
    {"text": "The journey of a thousand miles begins with a single step.", "author": "Lao Tzu", "featured": True},
    {"text": "You are never too old to set another goal or to dream a new dream.", "author": "C.S. Lewis", "featured": False},
    {"text": "Success is not final, failure is not fatal: It is the courage to continue that counts.", "author": "Winston Churchill", "featured": False},
    {"text": "The only way to do great work is to love what you do.", "author": "Steve Jobs", "featured": False},
    {"text": "Believe you can and you're halfway there.", "author": "Theodore Roosevelt", "featured": False},
]

SAMPLE_TIPS = [
    {"title": "Pomodoro Technique", "content": "Work in focused 25-minute intervals with 5-minute breaks. After 4 intervals, take a longer break of 15-30 minutes.", "category": "Productivity"},
    {"title": "Eisenhower Matrix", "content": "Prioritize tasks by organizing them into four categories: urgent/important, important/not urgent, urgent/not important, and neither.", "category": "Productivity"},
    {"title": "Two-Minute Rule", "content": "If a task takes less than two minutes to complete, do it immediately instead of putting it off for later.", "category": "Productivity"},
    {"title": "Growth Mindset", "content": "Embrace challenges, persist in the face of setbacks, and view effort as the path to mastery.", "category": "Mindset"},
    {"title": "Gratitude Practice", "content": "Write down three things you're grateful for each day to increase positivity and resilience.", "category": "Mindset"},
    {"title": "Morning Exercise", "content": "Start your day with 20 minutes of physical activity to boost mood and energy levels.", "category": "Health"},
    {"title": "Hydration Habit", "content": "Drink a glass of water first thing in the morning and keep a water bottle with you throughout the day.", "category": "Health"},
    {"title": "Goal Setting Framework", "content": "Create SMART goals: Specific, Measurable, Achievable, Relevant, and Time-bound.", "category": "Success"},
    {"title": "Feedback Loop", "content": "Regularly seek feedback from trusted sources to identify blind spots and areas for improvement.", "category": "Success"},
]

_VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
_UNSPLASH = "https://images.unsplash.com/{}?ixlib=rb-4.0.3&auto=format&fit=crop&w=500&q=80"

SAMPLE_MEDIA = [
    {
        "title": "5 Mindfulness Practices for Daily Life",
        "description": "Learn simple techniques to stay present and reduce stress throughout your day.",
        "type": "video", "url": _VIDEO_URL, "duration": "5:20", "duration_seconds": 320,
        "thumbnail": _UNSPLASH.format("photo-1501139083538-0139583c060f"),
        "featured": True, "category": "Mindfulness",
    },
    {
        "title": "Productivity Hacks for Working From Home",
        "description": "Tips to maintain focus and efficiency in a home office environment.",
        "type": "video", "url": _VIDEO_URL, "duration": "10:25", "duration_seconds": 625,
        "thumbnail": _UNSPLASH.format("photo-1483058712412-4245e9b90334"),
        "featured": False, "category": "Productivity",
    },
    {
        "title": "Journaling for Mental Clarity",
        "description": "How to use journaling to process emotions and gain perspective.",
        "type": "video", "url": _VIDEO_URL, "duration": "7:18", "duration_seconds": 438,
        "thumbnail": _UNSPLASH.format("photo-1464132692293-0c0c7a51d532"),
        "featured": False, "category": "Mental Health",
    },
    {
        "title": "Morning Routine for Success",
        "description": "Start your day with purpose using this effective morning routine.",
        "type": "video", "url": _VIDEO_URL, "duration": "15:40", "duration_seconds": 940,
        "thumbnail": _UNSPLASH.format("photo-1434494878577-86c23bcb06b9"),
        "featured": False, "category": "Productivity",
    },
    {
        "title": "Guided Meditation for Focus", "description": "10 minute practice",
        "type": "audio", "url": "https://example.com/audio/meditation.mp3",
        "duration": "10:00", "duration_seconds": 600, "featured": True, "category": "Meditation",
    },
    {
        "title": "Positive Affirmations for Confidence", "description": "Daily Practice",
        "type": "audio", "url": "https://example.com/audio/affirmations.mp3",
        "duration": "5:20", "duration_seconds": 320, "featured": False, "category": "Confidence",
    },
    {
        "title": "Evening Relaxation Technique", "description": "Sleep Better",
        "type": "audio", "url": "https://example.com/audio/relaxation.mp3",
        "duration": "7:45", "duration_seconds": 465, "featured": False, "category": "Sleep",
    },
    {
        "title": "Overcoming Self-Doubt", "description": "Motivation",
        "type": "audio", "url": "https://example.com/audio/self-doubt.mp3",
        "duration": "12:30", "duration_seconds": 750, "featured": False, "category": "Confidence",
    },
    {
        "title": "Focus Enhancement Exercise", "description": "Productivity",
        "type": "audio", "url": "https://example.com/audio/focus.mp3",
        "duration": "8:15", "duration_seconds": 495, "featured": False, "category": "Productivity",
    },
]

SAMPLE_CHALLENGES = [
    {
        "title": "30-Day Productivity Boost",
        "description": "Transform your productivity with daily actionable tasks designed to help you work smarter and accomplish more.",
        "category": "Productivity", "difficulty": "Medium", "duration": 30,
        "steps": [
            "Create a priority-based to-do list system",
            "Implement time blocking in your calendar",
            "Practice the Pomodoro Technique",
            "Declutter your workspace",
            "Establish a morning routine",
            "Set up digital boundaries (notifications, email times)",
            "Learn keyboard shortcuts for your most-used programs",
        ],
    },
    {
        "title": "Mindfulness Starter Pack",
        "description": "Begin your mindfulness journey with this gentle introduction to present-moment awareness practices.",
        "category": "Mindset", "difficulty": "Easy", "duration": 14,
        "steps": [
            "Practice 5 minutes of focused breathing",
            "Perform a body scan meditation",
            "Try mindful eating for one meal",
            "Take a mindful walking break",
            "Practice gratitude journaling",
            "Do a digital detox for one hour",
            "Observe thoughts without judgment",
        ],
    },
    {
        "title": "Fitness Foundation Builder",
        "description": "Create a sustainable fitness routine with graduated challenges suitable for beginners.",
        "category": "Health", "difficulty": "Medium", "duration": 21,
        "steps": [
            "Walk 10,000 steps daily",
            "Complete a beginner's stretching routine",
            "Try a 7-minute high-intensity workout",
            "Take the stairs instead of elevators",
            "Do a beginner's yoga session",
            "Incorporate 3 strength training sessions per week",
            "Schedule active recovery days",
        ],
    },
    {
        "title": "Goal-Setting Mastery",
        "description": "Learn the art and science of effective goal setting to achieve your dreams with greater clarity and purpose.",
        "category": "Success", "difficulty": "Hard", "duration": 28,
        "steps": [
            "Define your core values and long-term vision",
            "Create SMART goals for 3 life areas",
            "Break down goals into actionable tasks",
            "Establish tracking metrics for each goal",
            "Implement weekly review sessions",
            "Create accountability mechanisms",
            "Learn to pivot when strategies aren't working",
        ],
    },
]


def seed_storage(storage) -> None:
    """Load the starter content through the store's own create calls."""
    for quote in SAMPLE_QUOTES:
        storage.create_quote(quote)
    for tip in SAMPLE_TIPS:
        storage.create_tip(tip)
    for item in SAMPLE_MEDIA:
        storage.create_media(item)
    for challenge in SAMPLE_CHALLENGES:
        storage.create_challenge(challenge)
    logger.info(
        "Seeded %s quotes, %s tips, %s media items, %s challenges",
        len(SAMPLE_QUOTES), len(SAMPLE_TIPS), len(SAMPLE_MEDIA), len(SAMPLE_CHALLENGES),
    )
