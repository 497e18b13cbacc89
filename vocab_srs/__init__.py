"""
vocab_srs - spaced repetition scheduling for vocabulary cards and quiz questions.

Subpackages:
- fsrs: decay model, card/quiz schedulers, record models and persistence
- session_builders: due-queue construction policies
- analytics: study statistics and progress summaries
"""

__version__ = "0.1.0"
