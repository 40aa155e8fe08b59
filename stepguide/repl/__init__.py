"""
Interactive REPL for step-by-step tutorials.
"""

from .session import TutorialREPL

__all__ = ['TutorialREPL']
