"""
Pydantic schemas for stats, tags and account endpoints.
"""

from typing import List

from pydantic import BaseModel


class AccountStats(BaseModel):
    """Counts shown on the dashboard."""

    total_content: int = 0
    videos: int = 0
    articles: int = 0
    books: int = 0
    pending: int = 0
    completed: int = 0
    lists: int = 0
    tags: int = 0


class TagWithCount(BaseModel):
    id: int
    name: str
    count: int


class AccountDeletionResponse(BaseModel):
    success: bool = True
    message: str = "Account deleted"
    skipped_steps: List[str] = []

