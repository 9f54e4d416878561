from .quiz import QuizApp, QuestionView, TextualScheduler, option_style

__all__ = ["QuizApp", "QuestionView", "TextualScheduler", "option_style"]
