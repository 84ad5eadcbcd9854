from typing import List, Tuple

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from db import get_db
from services.assets import AssetManager
from services.categories import CategoryService
from services.errors import ValidationError
from services.words import WordService


def get_assets(request: Request) -> AssetManager:
    return request.app.state.assets


def get_upload_dir(request: Request) -> str:
    return request.app.state.settings.upload_dir


async def get_category_service(
    db: AsyncSession = Depends(get_db),
    assets: AssetManager = Depends(get_assets),
) -> CategoryService:
    return CategoryService(db, assets)


async def get_word_service(
    db: AsyncSession = Depends(get_db),
    assets: AssetManager = Depends(get_assets),
) -> WordService:
    return WordService(db, assets)


async def read_form(request: Request) -> Tuple[dict, List[Tuple[str, UploadFile]]]:
    """Текстовые поля и файлы запроса. Принимает multipart и JSON."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        body = await request.json()
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        return body, []

    form = await request.form()
    fields, files = {}, []
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            files.append((key, value))
        else:
            fields[key] = value
    return fields, files
