"""
Database models module
"""
from leadpulse.database.models.base import Base
from leadpulse.database.models.submission import Submission, SubmissionStatus  # Import all models here

__all__ = ["Base", "Submission", "SubmissionStatus"]
