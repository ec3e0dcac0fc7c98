"""MedPost: role-gated doctor post submission."""

__version__ = "0.1.0"

# Export commonly used types
from medpost.errors import SubmissionError
from medpost.models.identity import Identity
from medpost.models.post import DraftPost, Post

__all__ = [
    "DraftPost",
    "Identity",
    "Post",
    "SubmissionError",
    "__version__",
]
