# ============================================================================
# Seed Catalogue Data
# ============================================================================
"""
Script to seed demo courses, practice problems, reading content and
achievements into the database.

Usage:
    python scripts/seed_courses.py
"""

import asyncio
import sys
import os

# Ensure the project root is in the python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from learnquest.config import get_settings
from learnquest.core.database import Base, build_engine, build_session_maker
from learnquest.models.course import Course, CourseSection, Lesson
from learnquest.models.practice import PracticeProblem, Difficulty
from learnquest.models.content import Content, ContentType
from learnquest.models.achievement import Achievement
from sqlalchemy import select

COURSES = [
    {
        "title": "Python Foundations",
        "slug": "python-foundations",
        "difficulty": "BEGINNER",
        "sections": [
            {"title": "Getting Started", "lessons": ["Installing Python", "The REPL", "Your First Script"]},
            {"title": "Core Types", "lessons": ["Numbers", "Strings", "Lists and Tuples", "Dictionaries"]},
            {"title": "Control Flow", "lessons": ["Conditionals", "Loops", "Functions"]},
        ]
    },
    {
        "title": "Async Python in Practice",
        "slug": "async-python",
        "difficulty": "ADVANCED",
        "sections": [
            {"title": "Event Loops", "lessons": ["Coroutines", "Tasks", "Cancellation"]},
            {"title": "Real Services", "lessons": ["HTTP Clients", "Database Sessions"]},
        ]
    },
]

# Difficulty labels as authored by content editors
PROBLEMS = [
    {"title": "Two Sum", "slug": "two-sum", "difficulty": "Beginner"},
    {"title": "Balanced Brackets", "slug": "balanced-brackets", "difficulty": "Intermediate"},
    {"title": "LRU Cache", "slug": "lru-cache", "difficulty": "Expert"},
]

CONTENTS = [
    {"title": "Why Python Reads Like English", "slug": "why-python-reads-like-english", "type": ContentType.ARTICLE},
    {"title": "Virtual Environments Explained", "slug": "virtual-environments", "type": ContentType.ARTICLE},
    {"title": "Build a CLI Todo App", "slug": "cli-todo-app", "type": ContentType.TUTORIAL},
    {"title": "Debugging with pdb", "slug": "debugging-with-pdb", "type": ContentType.VIDEO},
]

# Unlock conditions evaluated by AchievementSystem
ACHIEVEMENTS = [
    {
        "slug": "first-lesson", "name": "First Steps", "icon": "👣", "category": "learning",
        "description": "Complete your first lesson", "xp_reward": 10,
        "condition": {"type": "first", "metric": "lessons_completed"},
    },
    {
        "slug": "lesson-marathon", "name": "Lesson Marathon", "icon": "🏃", "category": "learning",
        "description": "Complete 25 lessons", "xp_reward": 50,
        "condition": {"type": "count", "metric": "lessons_completed", "target": 25},
    },
    {
        "slug": "course-graduate", "name": "Graduate", "icon": "🎓", "category": "learning",
        "description": "Complete a whole course", "xp_reward": 100,
        "condition": {"type": "complete", "metric": "courses_completed", "target": 1},
    },
    {
        "slug": "problem-solver", "name": "Problem Solver", "icon": "🧩", "category": "practice",
        "description": "Solve 10 practice problems", "xp_reward": 50,
        "condition": {"type": "count", "metric": "problems_solved", "target": 10},
    },
    {
        "slug": "bookworm", "name": "Bookworm", "icon": "📚", "category": "reading",
        "description": "Read 10 articles", "xp_reward": 30,
        "condition": {"type": "count", "metric": "articles_read", "target": 10},
    },
    {
        "slug": "week-streak", "name": "On Fire", "icon": "🔥", "category": "streak",
        "description": "Keep a 7 day streak", "xp_reward": 50,
        "condition": {"type": "streak", "metric": "current", "target": 7},
    },
    {
        "slug": "level-five", "name": "Rising Star", "icon": "⭐", "category": "level",
        "description": "Reach level 5", "xp_reward": 0,
        "condition": {"type": "level", "target": 5},
    },
    {
        "slug": "night-owl", "name": "Dedicated", "icon": "🦉", "category": "streak",
        "description": "Meet your daily goal 30 times", "xp_reward": 100, "is_secret": True,
        "condition": {"type": "count", "metric": "daily_goals_met", "target": 30},
    },
]

async def seed_catalogue():
    """Seed the catalogue data"""
    settings = get_settings()
    engine = build_engine(settings.DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with build_session_maker(engine)() as db:
        print("Starting catalogue seeding...")

        for course_data in COURSES:
            result = await db.execute(select(Course).where(Course.slug == course_data["slug"]))
            if result.scalar_one_or_none():
                print(f"  [SKIP] Course '{course_data['title']}' exists.")
                continue

            course = Course(
                title=course_data["title"],
                slug=course_data["slug"],
                difficulty=Difficulty.parse(course_data["difficulty"]).value,
                description=f"{course_data['title']} course"
            )
            db.add(course)
            await db.flush()  # Flush to get the ID

            lessons_added = 0
            for s_idx, section_data in enumerate(course_data["sections"]):
                section = CourseSection(course_id=course.id, title=section_data["title"], order_index=s_idx)
                db.add(section)
                await db.flush()
                for l_idx, title in enumerate(section_data["lessons"]):
                    db.add(Lesson(section_id=section.id, title=title, order_index=l_idx, duration_minutes=10))
                    lessons_added += 1

            print(f"  [CREATE] Course '{course.title}' with {lessons_added} lessons.")

        for problem_data in PROBLEMS:
            result = await db.execute(select(PracticeProblem).where(PracticeProblem.slug == problem_data["slug"]))
            if result.scalar_one_or_none():
                print(f"  [SKIP] Problem '{problem_data['title']}' exists.")
                continue

            db.add(PracticeProblem(
                title=problem_data["title"],
                slug=problem_data["slug"],
                difficulty=Difficulty.parse(problem_data["difficulty"]),
                test_cases=[],
            ))
            print(f"  [CREATE] Problem '{problem_data['title']}'.")

        for content_data in CONTENTS:
            result = await db.execute(select(Content).where(Content.slug == content_data["slug"]))
            if result.scalar_one_or_none():
                print(f"  [SKIP] Content '{content_data['title']}' exists.")
                continue

            db.add(Content(
                title=content_data["title"],
                slug=content_data["slug"],
                content_type=content_data["type"],
            ))
            print(f"  [CREATE] {content_data['type'].value.title()} '{content_data['title']}'.")

        for order_index, achievement_data in enumerate(ACHIEVEMENTS):
            result = await db.execute(select(Achievement).where(Achievement.slug == achievement_data["slug"]))
            if result.scalar_one_or_none():
                print(f"  [SKIP] Achievement '{achievement_data['name']}' exists.")
                continue

            db.add(Achievement(order_index=order_index, **achievement_data))
            print(f"  [CREATE] Achievement '{achievement_data['name']}'.")

        await db.commit()
        print("\nCatalogue seeding completed successfully!")

    await engine.dispose()

if __name__ == "__main__":
    asyncio.run(seed_catalogue())
