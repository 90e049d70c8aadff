"""Repository harvesting and LLM grading pipeline for challenge submissions."""

__version__ = "0.1.0"
