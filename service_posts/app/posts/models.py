"""
Post data models for the Posts service.
"""

import re
from typing import Dict, Any, Optional, List
from datetime import datetime

from pydantic import BaseModel, Field

from shared.errors import ValidationError


SLUG_PATTERN = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")
MAX_TITLE_LENGTH = 255
MAX_SLUG_LENGTH = 255


class Post(BaseModel):
    """A stored post."""
    id: int = Field(..., description="Post ID assigned by the durable store")
    title: str = Field(..., description="Unique post title")
    slug: str = Field(..., description="Unique URL-safe key")
    content: str = Field("", description="Post body")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")


class NewPost(BaseModel):
    """Write payload for inserting a post."""
    title: str
    slug: str
    content: str


class PostUpdate(BaseModel):
    """Write payload for updating a post; unset fields are left alone."""
    id: int
    title: Optional[str] = None
    slug: Optional[str] = None
    content: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"id"}, exclude_none=True)


def _check_title(title: Optional[str], errors: List[str]) -> None:
    if title is None or not title.strip():
        errors.append("title must not be empty")
    elif len(title.strip()) > MAX_TITLE_LENGTH:
        errors.append(f"title must be at most {MAX_TITLE_LENGTH} characters")


def _check_slug(slug: Optional[str], errors: List[str]) -> None:
    if not slug:
        errors.append("slug must not be empty")
    elif len(slug) > MAX_SLUG_LENGTH:
        errors.append(f"slug must be at most {MAX_SLUG_LENGTH} characters")
    elif not SLUG_PATTERN.fullmatch(slug):
        errors.append("slug must be lowercase words separated by single hyphens")


def _check_content(content: Optional[str], errors: List[str]) -> None:
    if content is None or not content.strip():
        errors.append("content must not be empty")


def _check_id(post_id: Optional[int], errors: List[str]) -> None:
    if post_id is None or post_id <= 0:
        errors.append("id must be a positive integer")


def _raise_if_invalid(errors: List[str], request_type: str) -> None:
    if errors:
        raise ValidationError(
            f"Invalid {request_type}: {'; '.join(errors)}",
            details={"errors": errors},
        )


class PostCreateRequest(BaseModel):
    """Request model for creating a post."""
    title: str = Field(..., description="Post title")
    slug: str = Field(..., description="URL-safe slug")
    content: str = Field(..., description="Post body")

    def validate_input(self) -> None:
        errors: List[str] = []
        _check_title(self.title, errors)
        _check_slug(self.slug, errors)
        _check_content(self.content, errors)
        _raise_if_invalid(errors, "create request")

    def to_post(self) -> NewPost:
        return NewPost(title=self.title.strip(), slug=self.slug, content=self.content)


class PostUpdateRequest(BaseModel):
    """Request model for updating a post."""
    id: int = Field(..., description="Post ID")
    title: Optional[str] = Field(None, description="New title")
    slug: Optional[str] = Field(None, description="New slug")
    content: Optional[str] = Field(None, description="New body")

    def validate_input(self) -> None:
        errors: List[str] = []
        _check_id(self.id, errors)
        if self.title is None and self.slug is None and self.content is None:
            errors.append("at least one of title, slug or content is required")
        if self.title is not None:
            _check_title(self.title, errors)
        if self.slug is not None:
            _check_slug(self.slug, errors)
        if self.content is not None:
            _check_content(self.content, errors)
        _raise_if_invalid(errors, "update request")

    def to_update(self) -> PostUpdate:
        return PostUpdate(
            id=self.id,
            title=self.title.strip() if self.title is not None else None,
            slug=self.slug,
            content=self.content,
        )


class PostUpdateBody(BaseModel):
    """HTTP body for updating a post; the id comes from the path."""
    title: Optional[str] = Field(None, description="New title")
    slug: Optional[str] = Field(None, description="New slug")
    content: Optional[str] = Field(None, description="New body")

    def for_post(self, post_id: int) -> PostUpdateRequest:
        return PostUpdateRequest(id=post_id, **self.model_dump())


class PostIDRequest(BaseModel):
    """Lookup or delete by post ID."""
    id: int

    def validate_input(self) -> None:
        errors: List[str] = []
        _check_id(self.id, errors)
        _raise_if_invalid(errors, "post id")

    @property
    def cache_key(self) -> str:
        return str(self.id)


class PostTitleRequest(BaseModel):
    """Lookup by post title."""
    title: str

    def validate_input(self) -> None:
        errors: List[str] = []
        _check_title(self.title, errors)
        _raise_if_invalid(errors, "post title")

    @property
    def cache_key(self) -> str:
        return self.title.strip()


class PostSlugRequest(BaseModel):
    """Lookup by post slug."""
    slug: str

    def validate_input(self) -> None:
        errors: List[str] = []
        _check_slug(self.slug, errors)
        _raise_if_invalid(errors, "post slug")

    @property
    def cache_key(self) -> str:
        return self.slug


class MessageResponse(BaseModel):
    """Response model for mutations without a payload."""
    message: str
