"""
Articles and categories: public reads, view counting, admin CRUD.

``view_count`` only moves through :func:`record_view`, one increment per
(article, fingerprint) pair.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError

from mysteria.db.models import Article, ArticleView, Category
from mysteria.errors import DuplicateError, InputValidationError, NotFoundError
from mysteria.timeutils import utcnow
from mysteria.validation import reading_time_minutes, sanitize_html, sanitize_plain_text, slugify

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

SEARCH_MIN_LENGTH = 2
_SEARCH_COLUMNS = (
    Article.title_en,
    Article.title_sq,
    Article.excerpt_en,
    Article.excerpt_sq,
    Article.content_en,
    Article.content_sq,
)


@dataclass(frozen=True)
class SiteStats:
    articles: int
    categories: int
    total_views: int
    total_reading_minutes: int


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------


def _published():
    return select(Article).where(Article.published.is_(True))


async def list_articles(
    db: AsyncSession,
    *,
    sort: str = "latest",
    category_slug: str | None = None,
    limit: int = 12,
    offset: int = 0,
) -> list[Article]:
    query = _published()
    if category_slug:
        query = query.join(Category, Article.category_id == Category.id).where(Category.slug == category_slug)
    if sort == "most-read":
        query = query.order_by(Article.view_count.desc(), Article.published_at.desc())
    else:
        query = query.order_by(Article.published_at.desc(), Article.created_at.desc())
    result = await db.execute(query.limit(limit).offset(offset))
    return list(result.unique().scalars())


async def get_article_by_slug(db: AsyncSession, slug: str) -> Article:
    result = await db.execute(_published().where(Article.slug == slug))
    article = result.unique().scalar_one_or_none()
    if article is None:
        msg = "Article not found"
        raise NotFoundError(msg)
    return article


async def search_articles(db: AsyncSession, term: str, limit: int = 20) -> list[Article]:
    """Case-insensitive match in either language's title, excerpt or body."""
    cleaned = sanitize_plain_text(term)
    if len(cleaned) < SEARCH_MIN_LENGTH:
        msg = f"Search query must be at least {SEARCH_MIN_LENGTH} characters"
        raise InputValidationError(msg)
    escaped = cleaned.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    query = (
        _published()
        .where(or_(*(column.ilike(pattern, escape="\\") for column in _SEARCH_COLUMNS)))
        .order_by(Article.published_at.desc())
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.unique().scalars())


async def list_categories(db: AsyncSession) -> list[Category]:
    result = await db.execute(select(Category).order_by(Category.name_en.asc()))
    return list(result.scalars())


async def get_stats(db: AsyncSession) -> SiteStats:
    row = (
        await db.execute(
            select(
                func.count(Article.id),
                func.coalesce(func.sum(Article.view_count), 0),
                func.coalesce(func.sum(Article.reading_time_minutes), 0),
            ).where(Article.published.is_(True))
        )
    ).one()
    categories = await db.scalar(select(func.count(Category.id)))
    return SiteStats(
        articles=int(row[0]),
        categories=int(categories or 0),
        total_views=int(row[1]),
        total_reading_minutes=int(row[2]),
    )


async def record_view(db: AsyncSession, article_id: uuid.UUID, fingerprint: str, ip: str | None) -> bool:
    """Count a read. Returns False when this fingerprint already read the article."""
    fingerprint = fingerprint.strip()
    if not fingerprint or len(fingerprint) > 128:
        msg = "Invalid fingerprint"
        raise InputValidationError(msg)
    article = await db.get(Article, article_id)
    if article is None or not article.published:
        msg = "Article not found"
        raise NotFoundError(msg)

    try:
        db.add(ArticleView(article_id=article_id, fingerprint=fingerprint, ip_address=ip))
        await db.flush()
    except IntegrityError:
        await db.rollback()
        return False

    await db.execute(
        update(Article)
        .where(Article.id == article_id)
        .values(view_count=Article.view_count + 1)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return True


# ---------------------------------------------------------------------------
# Admin: articles
# ---------------------------------------------------------------------------


async def admin_list_articles(db: AsyncSession) -> list[Article]:
    result = await db.execute(select(Article).order_by(Article.created_at.desc()))
    return list(result.unique().scalars())


async def get_article(db: AsyncSession, article_id: uuid.UUID) -> Article:
    article = await db.get(Article, article_id)
    if article is None:
        msg = "Article not found"
        raise NotFoundError(msg)
    return article


def _apply_article_fields(article: Article, fields: dict[str, Any]) -> None:
    for key in ("content_en", "content_sq"):
        if fields.get(key) is not None:
            fields[key] = sanitize_html(fields[key])
    for key in ("title_en", "title_sq", "excerpt_en", "excerpt_sq", "meta_title_en", "meta_title_sq"):
        if fields.get(key) is not None:
            fields[key] = sanitize_plain_text(fields[key])
    for key, value in fields.items():
        setattr(article, key, value)

    if not article.slug:
        article.slug = slugify(article.title_en)
    if "content_en" in fields or article.reading_time_minutes is None:
        article.reading_time_minutes = reading_time_minutes(article.content_en)
    if article.published and article.published_at is None:
        article.published_at = utcnow()


async def _commit_unique_slug(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        msg = "An article with this slug already exists"
        raise DuplicateError(msg) from e


async def create_article(db: AsyncSession, fields: dict[str, Any]) -> Article:
    article = Article(view_count=0)
    _apply_article_fields(article, dict(fields))
    db.add(article)
    await _commit_unique_slug(db)
    await db.refresh(article)
    logger.info("article_created", article_id=str(article.id), slug=article.slug)
    return article


async def update_article(db: AsyncSession, article_id: uuid.UUID, fields: dict[str, Any]) -> Article:
    article = await get_article(db, article_id)
    _apply_article_fields(article, dict(fields))
    await _commit_unique_slug(db)
    await db.refresh(article)
    logger.info("article_updated", article_id=str(article.id))
    return article


async def delete_article(db: AsyncSession, article_id: uuid.UUID) -> None:
    article = await get_article(db, article_id)
    await db.delete(article)
    await db.commit()
    logger.info("article_deleted", article_id=str(article_id))


# ---------------------------------------------------------------------------
# Admin: categories
# ---------------------------------------------------------------------------


async def get_category(db: AsyncSession, category_id: uuid.UUID) -> Category:
    category = await db.get(Category, category_id)
    if category is None:
        msg = "Category not found"
        raise NotFoundError(msg)
    return category


async def create_category(db: AsyncSession, fields: dict[str, Any]) -> Category:
    values = {k: sanitize_plain_text(v) if isinstance(v, str) else v for k, v in fields.items()}
    if not values.get("slug"):
        values["slug"] = slugify(values["name_en"])
    category = Category(**values)
    db.add(category)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        msg = "A category with this slug already exists"
        raise DuplicateError(msg) from e
    logger.info("category_created", slug=category.slug)
    return category


async def update_category(db: AsyncSession, category_id: uuid.UUID, fields: dict[str, Any]) -> Category:
    category = await get_category(db, category_id)
    for key, value in fields.items():
        setattr(category, key, sanitize_plain_text(value) if isinstance(value, str) else value)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        msg = "A category with this slug already exists"
        raise DuplicateError(msg) from e
    return category


async def delete_category(db: AsyncSession, category_id: uuid.UUID) -> None:
    """Delete a category; its articles stay, uncategorised."""
    category = await get_category(db, category_id)
    await db.execute(
        update(Article)
        .where(Article.category_id == category_id)
        .values(category_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.delete(category)
    await db.commit()
    logger.info("category_deleted", category_id=str(category_id))
