"""
Pydantic schemas for blog endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class BlogPostCreate(BaseModel):
    # Every field is optional; the slug falls back to the title.
    title: str | None = Field(default=None, max_length=300)
    slug: str | None = Field(default=None, max_length=300)
    excerpt: str | None = Field(default=None, max_length=2000)
    content: str | None = None
    author: str | None = Field(default=None, max_length=200)
    tags: list[str] | None = None
    video_url: str | None = Field(default=None, max_length=2000)
    cover_image: str | None = Field(default=None, max_length=2000)


class BlogPostUpdate(BlogPostCreate):
    """
    Same fields as create; only fields present in the request are written.
    """


class BulkUpdateRequest(BaseModel):
    ids: list[int] = Field(..., min_length=1)
    updates: BlogPostUpdate


class BulkDeleteRequest(BaseModel):
    ids: list[int] = Field(..., min_length=1)
