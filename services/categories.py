import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db import commit
from models import Category, Word
from services.assets import AssetManager
from services.blob_codec import MediaKind
from services.errors import (
    CategoryInUseError,
    DictionaryError,
    DuplicateKeyError,
    MediaIngestError,
    NotFoundError,
    ValidationError,
)
from services.payloads import parse_translation
from services.uploads import MediaUploads

logger = logging.getLogger(__name__)

MEDIA_KINDS = (MediaKind.IMAGE, MediaKind.AUDIO)


def _text_field(name: str, value) -> Optional[str]:
    """JSON-тело может прислать число или список вместо строки"""
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"Category {name} must be a string")
    return value


class CategoryService:
    def __init__(self, session: AsyncSession, assets: AssetManager):
        self.session = session
        self.assets = assets

    async def list_all(self) -> List[Category]:
        result = await self.session.execute(select(Category).order_by(Category.id))
        return list(result.scalars().all())

    async def get(self, category_id: int) -> Category:
        category = await self.session.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category not found")
        return category

    async def search(self, query: str) -> List[Category]:
        needle = (query or "").strip().lower()
        result = await self.session.execute(
            select(Category).where(Category.search_text.contains(needle, autoescape=True)).order_by(Category.id)
        )
        return list(result.scalars().all())

    async def _ensure_unique(self, word: str, exclude_id: Optional[int] = None) -> None:
        query = select(Category.id).where(Category.word == word)
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        if await self.session.scalar(query) is not None:
            raise DuplicateKeyError("Category already exists")

    async def create(
        self,
        word: Optional[str],
        description: Optional[str] = None,
        translation=None,
        media: Optional[MediaUploads] = None,
    ) -> Category:
        word = (_text_field("word", word) or "").strip()
        description = _text_field("description", description)
        if not word:
            raise ValidationError("Category word required")
        await self._ensure_unique(word)

        parsed_translation = parse_translation(translation)
        media = media or MediaUploads()
        self.assets.preflight(media.all_files())

        uploaded = {}
        try:
            for kind in MEDIA_KINDS:
                path = media.for_record(kind)
                if path is not None:
                    uploaded[kind] = await self.assets.gate.validate_and_ingest(path, kind)
        except MediaIngestError:
            await self.assets.release_all((ref, kind) for kind, ref in uploaded.items())
            raise

        category = Category(
            word=word,
            description=description,
            translation=parsed_translation,
            image=uploaded.get(MediaKind.IMAGE),
            audio=uploaded.get(MediaKind.AUDIO),
        )
        category.refresh_search_text()
        self.session.add(category)

        try:
            await commit(self.session)
        except DictionaryError:
            await self.assets.release_all((ref, kind) for kind, ref in uploaded.items())
            raise

        await self.session.refresh(category)
        logger.info("Category %s created (id=%s)", category.word, category.id)
        return category

    async def update(
        self,
        category_id: int,
        word: Optional[str] = None,
        description: Optional[str] = None,
        translation=None,
        media: Optional[MediaUploads] = None,
    ) -> Category:
        category = await self.get(category_id)
        description = _text_field("description", description)

        if _text_field("word", word) is not None:
            word = word.strip()
            if not word:
                raise ValidationError("Category word cannot be empty")
            if word != category.word:
                await self._ensure_unique(word, exclude_id=category.id)
        parsed_translation = parse_translation(translation) if translation is not None else None

        media = media or MediaUploads()
        self.assets.preflight(media.all_files())

        swapped = {}
        for kind in MEDIA_KINDS:
            path = media.for_record(kind)
            if path is None:
                continue
            try:
                swapped[kind.value] = await self.assets.replace(getattr(category, kind.value), path, kind)
            except MediaIngestError as exc:
                if exc.detached:
                    swapped[kind.value] = None
                await self._save_media(category, swapped)
                raise

        for attr, ref in swapped.items():
            setattr(category, attr, ref)
        if word is not None:
            category.word = word
        if description is not None:
            category.description = description
        if parsed_translation is not None:
            category.translation = parsed_translation
        category.refresh_search_text()

        await commit(self.session)
        await self.session.refresh(category)
        return category

    async def _save_media(self, category: Category, swapped: dict) -> None:
        """Сохраняет уже замененные файлы, чтобы запись не ссылалась на удаленные"""
        if not swapped:
            return
        for attr, ref in swapped.items():
            setattr(category, attr, ref)
        await commit(self.session)
        logger.warning("Category %s partially updated: %s", category.id, ", ".join(swapped))

    async def delete(self, category_id: int) -> None:
        category = await self.get(category_id)

        in_use = await self.session.scalar(
            select(func.count()).select_from(Word).where(Word.category_id == category.id)
        )
        if in_use:
            raise CategoryInUseError(f"Category still has {in_use} word(s)")

        logger.info("Deleting category %s (id=%s)", category.word, category.id)
        await self.assets.release_all(category.media_refs())

        await self.session.delete(category)
        await commit(self.session)
