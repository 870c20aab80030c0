"""Article and category schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    slug: str
    name_en: str
    name_sq: str
    description_en: str | None
    description_sq: str | None


class ArticleSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    slug: str
    title_en: str
    title_sq: str
    excerpt_en: str | None
    excerpt_sq: str | None
    featured_image_url: str | None
    published_at: datetime | None
    view_count: int
    reading_time_minutes: int | None
    category: CategoryResponse | None


class ArticleDetail(ArticleSummary):
    content_en: str
    content_sq: str
    meta_title_en: str | None
    meta_title_sq: str | None
    meta_description_en: str | None
    meta_description_sq: str | None


class AdminArticle(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    slug: str
    category_id: uuid.UUID | None
    title_en: str
    title_sq: str
    published: bool
    published_at: datetime | None
    view_count: int
    reading_time_minutes: int | None
    created_at: datetime
    updated_at: datetime


class ArticleCreate(BaseModel):
    slug: str | None = Field(default=None, max_length=256, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    category_id: uuid.UUID | None = None
    title_en: str = Field(..., min_length=1, max_length=256)
    title_sq: str = Field(..., min_length=1, max_length=256)
    content_en: str = Field(..., min_length=1)
    content_sq: str = Field(..., min_length=1)
    excerpt_en: str | None = None
    excerpt_sq: str | None = None
    meta_title_en: str | None = Field(default=None, max_length=256)
    meta_title_sq: str | None = Field(default=None, max_length=256)
    meta_description_en: str | None = Field(default=None, max_length=512)
    meta_description_sq: str | None = Field(default=None, max_length=512)
    featured_image_url: str | None = Field(default=None, max_length=2048)
    published: bool = False


class ArticleUpdate(BaseModel):
    slug: str | None = Field(default=None, max_length=256, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    category_id: uuid.UUID | None = None
    title_en: str | None = Field(default=None, min_length=1, max_length=256)
    title_sq: str | None = Field(default=None, min_length=1, max_length=256)
    content_en: str | None = Field(default=None, min_length=1)
    content_sq: str | None = Field(default=None, min_length=1)
    excerpt_en: str | None = None
    excerpt_sq: str | None = None
    meta_title_en: str | None = Field(default=None, max_length=256)
    meta_title_sq: str | None = Field(default=None, max_length=256)
    meta_description_en: str | None = Field(default=None, max_length=512)
    meta_description_sq: str | None = Field(default=None, max_length=512)
    featured_image_url: str | None = Field(default=None, max_length=2048)
    published: bool | None = None


class CategoryCreate(BaseModel):
    slug: str | None = Field(default=None, max_length=128, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    name_en: str = Field(..., min_length=1, max_length=128)
    name_sq: str = Field(..., min_length=1, max_length=128)
    description_en: str | None = None
    description_sq: str | None = None


class CategoryUpdate(BaseModel):
    slug: str | None = Field(default=None, max_length=128, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    name_en: str | None = Field(default=None, min_length=1, max_length=128)
    name_sq: str | None = Field(default=None, min_length=1, max_length=128)
    description_en: str | None = None
    description_sq: str | None = None


class RecordViewRequest(BaseModel):
    fingerprint: str = Field(..., min_length=1, max_length=128)


class RecordViewResponse(BaseModel):
    counted: bool


class StatsResponse(BaseModel):
    articles: int
    categories: int
    total_views: int
    total_reading_minutes: int


ArticleSort = Literal["latest", "most-read"]
