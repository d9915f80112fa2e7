"""模型集合。"""

from .enrollment import ChapterCompletion, Enrollment
from .lesson import Chapter, Lesson
from .user import User

__all__ = ["User", "Lesson", "Chapter", "Enrollment", "ChapterCompletion"]
