"""
classgrade - Classroom assignment grading backend.

This package manages courses, assignments, questions, submissions and
grades, and grades PDF submissions with a generative AI model through a
validated, transactional pipeline.
"""

__version__ = "1.0.0"
__author__ = "classgrade Team"
