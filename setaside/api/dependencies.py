"""Dependency injection for FastAPI endpoints"""

from datetime import date
from typing import Optional

from fastapi import Header, Query, Request


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_user_id(x_user_id: str = Header(..., min_length=1, description="Acting user identifier")) -> str:
    """Acting user; authentication happens upstream of this service"""
    return x_user_id


def get_as_of(
    as_of: Optional[date] = Query(None, description="Evaluation date, defaults to today"),
) -> date:
    return as_of or date.today()
