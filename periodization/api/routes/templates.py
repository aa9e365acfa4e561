"""API routes for the program template catalog."""
from fastapi import APIRouter, Depends, Query, Request, status

from periodization.api.routes.dependencies import (
    get_catalog_service,
    get_current_user_id,
    require_trainer,
    respond,
)
from periodization.config.settings import get_settings
from periodization.schemas.base import APIResponse
from periodization.schemas.pagination import PaginationParams
from periodization.schemas.template import (
    LegacyJsonTemplate,
    NormalizedTemplate,
    TemplateDetail,
    TemplateFilter,
    TemplateSummary,
)
from periodization.services.template_catalog import TemplateCatalogService

router = APIRouter(prefix="/templates", tags=["templates"])
settings = get_settings()


@router.get("", response_model=APIResponse[list[TemplateSummary]])
async def list_templates(
    request: Request,
    filter: TemplateFilter = Depends(),
    cursor: str | None = None,
    limit: int = Query(settings.default_page_size, ge=1, le=100),
    service: TemplateCatalogService = Depends(get_catalog_service),
):
    """List templates, newest first, with cursor pagination."""
    page = await service.list_templates(filter.to_filter(), PaginationParams(cursor=cursor, limit=limit))
    return respond(
        request,
        [TemplateSummary.model_validate(t) for t in page.items],
        next_cursor=page.next_cursor,
        has_more=page.has_more,
    )


@router.get("/{template_id}", response_model=APIResponse[TemplateDetail])
async def get_template(
    request: Request,
    template_id: int,
    service: TemplateCatalogService = Depends(get_catalog_service),
):
    template = await service.get_template(template_id)
    return respond(request, TemplateDetail.model_validate(template))


@router.post("", response_model=APIResponse[TemplateDetail], status_code=status.HTTP_201_CREATED)
async def register_template(
    request: Request,
    payload: NormalizedTemplate,
    user_id: int = Depends(get_current_user_id),
    _role=Depends(require_trainer),
    service: TemplateCatalogService = Depends(get_catalog_service),
):
    template = await service.register_template(payload, author_id=user_id)
    return respond(request, TemplateDetail.model_validate(template))


@router.post("/legacy", response_model=APIResponse[TemplateDetail], status_code=status.HTTP_201_CREATED)
async def register_legacy_template(
    request: Request,
    payload: LegacyJsonTemplate,
    user_id: int = Depends(get_current_user_id),
    _role=Depends(require_trainer),
    service: TemplateCatalogService = Depends(get_catalog_service),
):
    """Register a template authored as a legacy JSON blob."""
    template = await service.register_template(payload, author_id=user_id)
    return respond(request, TemplateDetail.model_validate(template))


@router.put("/{template_id}/structure", response_model=APIResponse[TemplateDetail])
async def replace_structure(
    request: Request,
    template_id: int,
    payload: NormalizedTemplate,
    _role=Depends(require_trainer),
    service: TemplateCatalogService = Depends(get_catalog_service),
):
    """Re-author a template. Refused once anyone has subscribed."""
    template = await service.replace_structure(template_id, payload)
    return respond(request, TemplateDetail.model_validate(template))
