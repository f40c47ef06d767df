"""
Utility functions for the Exam Engine.
"""

from exam_engine.utils.env_loader import load_env
from exam_engine.utils.logging_config import setup_logging

__all__ = ["load_env", "setup_logging"]
