# Import all models so Alembic can discover them via Base.metadata
from .course import Course
from .enrollment import Enrollment
from .review import Review, ReviewVote
from .shortlist import Shortlist, ShortlistItem
from .user import User

__all__ = [
    "Course",
    "Enrollment",
    "Review",
    "ReviewVote",
    "Shortlist",
    "ShortlistItem",
    "User",
]
