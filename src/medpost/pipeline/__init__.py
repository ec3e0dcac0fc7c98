"""Submission pipeline."""

from medpost.pipeline.core import SubmissionPipeline
from medpost.pipeline.form import SUCCESS_MESSAGE, PostForm

__all__ = ["PostForm", "SUCCESS_MESSAGE", "SubmissionPipeline"]
