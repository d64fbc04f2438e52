from learnquest.models.user import User
from learnquest.models.course import Course, CourseSection, Lesson
from learnquest.models.content import Content, ContentType, ContentProgress
from learnquest.models.practice import (
    PracticeProblem, PracticeSubmission, Difficulty, SubmissionStatus, ProblemState
)
from learnquest.models.gamification import (
    XPAction, UserXP, XPTransaction, UserStreak, UserDailyProgress, DailyGoal
)
from learnquest.models.achievement import Achievement, UserAchievement
from learnquest.models.progress import LessonProgress, CourseEnrollment
from learnquest.models.activity import ActivityEvent, ActivityEventType

__all__ = [
    "User", "Course", "CourseSection", "Lesson", "Content", "ContentType",
    "ContentProgress", "PracticeProblem", "PracticeSubmission", "Difficulty",
    "SubmissionStatus", "ProblemState", "XPAction", "UserXP", "XPTransaction",
    "UserStreak", "UserDailyProgress", "DailyGoal", "Achievement",
    "UserAchievement", "LessonProgress", "CourseEnrollment", "ActivityEvent",
    "ActivityEventType"
]
