from fastapi import APIRouter, Depends, Query, Request

from services.categories import CategoryService
from services.uploads import StagingArea, demultiplex
from webapp.auth import require_admin
from webapp.dependencies import get_category_service, get_upload_dir, read_form
from webapp.schemas import category_out

router = APIRouter(prefix="/categories", tags=["categories"])


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
async def add_category(
    request: Request,
    service: CategoryService = Depends(get_category_service),
    upload_dir: str = Depends(get_upload_dir),
):
    """Создание категории с картинкой и аудио"""
    fields, files = await read_form(request)

    async with StagingArea(upload_dir) as staging:
        media = await demultiplex(files, fields.get("uploads"), staging)
        category = await service.create(
            word=fields.get("word"),
            description=fields.get("description"),
            translation=fields.get("translation"),
            media=media,
        )

    return {"success": True, "category": category_out(category)}


@router.put("/{category_id}", dependencies=[Depends(require_admin)])
async def update_category(
    category_id: int,
    request: Request,
    service: CategoryService = Depends(get_category_service),
    upload_dir: str = Depends(get_upload_dir),
):
    """Обновление категории, старые файлы заменяются новыми"""
    fields, files = await read_form(request)

    async with StagingArea(upload_dir) as staging:
        media = await demultiplex(files, fields.get("uploads"), staging)
        category = await service.update(
            category_id,
            word=fields.get("word"),
            description=fields.get("description"),
            translation=fields.get("translation"),
            media=media,
        )

    return {"success": True, "category": category_out(category)}


@router.delete("/{category_id}", dependencies=[Depends(require_admin)])
async def delete_category(category_id: int, service: CategoryService = Depends(get_category_service)):
    """Удаление категории вместе с файлами в хранилище"""
    await service.delete(category_id)
    return {"success": True, "message": "Category and associated files deleted successfully"}


@router.get("/search")
async def search_categories(query: str = Query(...), service: CategoryService = Depends(get_category_service)):
    categories = await service.search(query)
    return {"success": True, "categories": [category_out(c) for c in categories]}


@router.get("")
async def get_categories(service: CategoryService = Depends(get_category_service)):
    categories = await service.list_all()
    return {"success": True, "categories": [category_out(c) for c in categories]}
