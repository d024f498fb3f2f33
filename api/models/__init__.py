"""
API data models. Single import surface for DB entities.

DB entities (api.models.models):
- User, Quiz, Attempt, Certificate
"""

from api.models.models import (
    User,
    Quiz,
    Attempt,
    Certificate,
)

__all__ = [
    "User",
    "Quiz",
    "Attempt",
    "Certificate",
]
