"""Public article endpoints and the admin content back office."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from mysteria.articles.schemas import (
    AdminArticle,
    ArticleCreate,
    ArticleDetail,
    ArticleSort,
    ArticleSummary,
    ArticleUpdate,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    RecordViewRequest,
    RecordViewResponse,
    StatsResponse,
)
from mysteria.articles.service import (
    admin_list_articles,
    create_article,
    create_category,
    delete_article,
    delete_category,
    get_article_by_slug,
    get_stats,
    list_articles,
    list_categories,
    record_view,
    search_articles,
    update_article,
    update_category,
)
from mysteria.auth.dependencies import require_admin
from mysteria.auth.ip_allowlist import client_ip
from mysteria.comments.schemas import SuccessResponse
from mysteria.database import get_session
from mysteria.validation import parse_uuid

router = APIRouter(prefix="/api/v1", tags=["Articles"])


@router.get("/articles", response_model=list[ArticleSummary])
async def articles(
    sort: ArticleSort = Query("latest"),
    category: str | None = Query(default=None, max_length=128),
    limit: int = Query(12, ge=1, le=50),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> Any:
    return await list_articles(db, sort=sort, category_slug=category, limit=limit, offset=offset)


@router.get("/articles/{slug}", response_model=ArticleDetail)
async def article_detail(slug: str, db: AsyncSession = Depends(get_session)) -> Any:  # noqa: B008
    return await get_article_by_slug(db, slug)


@router.post("/articles/{article_id}/views", response_model=RecordViewResponse)
async def article_view(
    article_id: str,
    body: RecordViewRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> RecordViewResponse:
    counted = await record_view(db, parse_uuid(article_id, "Invalid article ID"), body.fingerprint, client_ip(request))
    return RecordViewResponse(counted=counted)


@router.get("/search", response_model=list[ArticleSummary])
async def search(
    q: str = Query("", max_length=200),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> Any:
    return await search_articles(db, q)


@router.get("/categories", response_model=list[CategoryResponse])
async def categories(db: AsyncSession = Depends(get_session)) -> Any:  # noqa: B008
    return await list_categories(db)


@router.get("/stats", response_model=StatsResponse)
async def stats(db: AsyncSession = Depends(get_session)) -> StatsResponse:  # noqa: B008
    return StatsResponse(**asdict(await get_stats(db)))


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.get("/admin/articles", response_model=list[AdminArticle])
async def admin_articles(
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> Any:
    return await admin_list_articles(db)


@router.post("/admin/articles", response_model=AdminArticle, status_code=201)
async def admin_create_article(
    body: ArticleCreate,
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> Any:
    return await create_article(db, body.model_dump())


@router.patch("/admin/articles/{article_id}", response_model=AdminArticle)
async def admin_update_article(
    article_id: str,
    body: ArticleUpdate,
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> Any:
    return await update_article(db, parse_uuid(article_id, "Invalid article ID"), body.model_dump(exclude_unset=True))


@router.delete("/admin/articles/{article_id}", response_model=SuccessResponse)
async def admin_delete_article(
    article_id: str,
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> SuccessResponse:
    await delete_article(db, parse_uuid(article_id, "Invalid article ID"))
    return SuccessResponse(message="Article deleted")


@router.post("/admin/categories", response_model=CategoryResponse, status_code=201)
async def admin_create_category(
    body: CategoryCreate,
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> Any:
    return await create_category(db, body.model_dump())


@router.patch("/admin/categories/{category_id}", response_model=CategoryResponse)
async def admin_update_category(
    category_id: str,
    body: CategoryUpdate,
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> Any:
    return await update_category(
        db, parse_uuid(category_id, "Invalid category ID"), body.model_dump(exclude_unset=True)
    )


@router.delete("/admin/categories/{category_id}", response_model=SuccessResponse)
async def admin_delete_category(
    category_id: str,
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> SuccessResponse:
    await delete_category(db, parse_uuid(category_id, "Invalid category ID"))
    return SuccessResponse(message="Category deleted")
