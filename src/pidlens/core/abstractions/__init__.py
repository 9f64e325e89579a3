"""
Core abstractions: the classifier contract every identifier family implements.
"""

from .classifier import RECOVERABLE_ERRORS, SHAPE_ERRORS, ClassifierContext, IdentifierClassifier

__all__ = [
    "ClassifierContext",
    "IdentifierClassifier",
    "RECOVERABLE_ERRORS",
    "SHAPE_ERRORS",
]
