"""
Custom exception classes
"""
from typing import Any
from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """Exception raised when a request is rejected before touching the store"""
    def __init__(self, detail: Any, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)


class NotFoundError(HTTPException):
    """Exception raised when a referenced submission does not exist"""
    def __init__(self, detail: str = "Submission not found", status_code: int = status.HTTP_404_NOT_FOUND):
        super().__init__(status_code=status_code, detail=detail)


class NoDataError(HTTPException):
    """Exception raised when an export filter matches no submissions"""
    def __init__(self, detail: str = "No data found for export", status_code: int = status.HTTP_404_NOT_FOUND):
        super().__init__(status_code=status_code, detail=detail)


class DatabaseError(HTTPException):
    """Exception raised for database errors"""
    def __init__(self, detail: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(status_code=status_code, detail=detail)
