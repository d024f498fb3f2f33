"""
Quiz schemas. The quiz definition served to clients is the engine's own model.
"""

from proctor.core.types import Question, QuestionOption, QuizDefinition

QuizResponse = QuizDefinition

__all__ = ["Question", "QuestionOption", "QuizDefinition", "QuizResponse"]
