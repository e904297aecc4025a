"""
QuizHub: хранение квизов и попыток, таблица лидеров и сверка профилей.
"""

__version__ = "1.0.0"
