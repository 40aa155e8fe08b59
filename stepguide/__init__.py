"""
stepguide - Step-by-Step Coding Tutor

A client for guided, step-by-step coding tutorials. Streams one step of
guidance at a time from the tutorial service and lets you advance, ask for
hints, or restart without losing the conversation.
"""

__version__ = "0.1.0"
