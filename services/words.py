import logging
from typing import Dict, List, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db import commit
from models import Category, Word, WordStatus
from services import moderation
from services.assets import AssetManager
from services.blob_codec import MediaKind, resolve_public_id
from services.errors import DictionaryError, MediaIngestError, NotFoundError, ValidationError
from services.payloads import flat_to_dialect_entries, parse_dialect_entries, parse_translation
from services.uploads import MediaUploads, UploadSlot

logger = logging.getLogger(__name__)

# Ключ слота картинки самого слова в словаре замен
WORD_IMAGE = "image"


def _coerce_id(value, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name} id: {value!r}")


def _promote_record_audio(media: MediaUploads) -> None:
    """Аудио плоской формы относится к единственному диалекту"""
    path = media.record.pop(MediaKind.AUDIO, None)
    if path is not None and not media.has(UploadSlot(0, MediaKind.AUDIO)):
        media.add(UploadSlot(0, MediaKind.AUDIO), path)


def _check_dialect_slots(media: MediaUploads, count: int) -> None:
    for index, files in media.dialects.items():
        if index >= count:
            raise ValidationError(f"Upload for dialect {index} has no matching entry")
        if MediaKind.IMAGE in files:
            raise ValidationError(f"Dialect {index} accepts audio only")


class WordService:
    def __init__(self, session: AsyncSession, assets: AssetManager):
        self.session = session
        self.assets = assets

    async def get(self, word_id) -> Word:
        word = await self.session.get(Word, _coerce_id(word_id, "word"))
        if word is None:
            raise NotFoundError("Word not found")
        return word

    async def list_words(self, status: Optional[WordStatus] = None) -> List[Word]:
        query = select(Word).order_by(Word.id)
        if status is not None:
            query = query.where(Word.status == WordStatus(status).value)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def by_category(self, category_id) -> List[Word]:
        result = await self.session.execute(
            select(Word)
            .where(Word.category_id == _coerce_id(category_id, "category"))
            .where(Word.status == WordStatus.APPROVED.value)
            .order_by(Word.id)
        )
        return list(result.scalars().all())

    async def search(self, query: str) -> List[Word]:
        needle = (query or "").strip().lower()
        result = await self.session.execute(
            select(Word).where(Word.search_text.contains(needle, autoescape=True)).order_by(Word.id)
        )
        return list(result.scalars().all())

    async def _reload(self, word: Word) -> Word:
        """Перечитывает слово после записи вместе с категорией"""
        await self.session.refresh(word)
        await self.session.refresh(word, ["category"])
        return word

    async def _resolve_category(self, category) -> int:
        category_id = _coerce_id(category, "category")
        if await self.session.get(Category, category_id) is None:
            raise NotFoundError("Category not found")
        return category_id

    async def create(
        self,
        category,
        words=None,
        word: Optional[str] = None,
        translation=None,
        description: Optional[str] = None,
        uploaded_by: Optional[str] = None,
        media: Optional[MediaUploads] = None,
    ) -> Word:
        if category in (None, "") or (words in (None, "") and not word):
            raise ValidationError("Category and words required")
        if uploaded_by is not None and not isinstance(uploaded_by, str):
            raise ValidationError("uploadedBy must be a string")

        if words not in (None, ""):
            entries = parse_dialect_entries(words)
        else:
            entries = flat_to_dialect_entries(word, parse_translation(translation), description)
        category_id = await self._resolve_category(category)

        media = media or MediaUploads()
        _promote_record_audio(media)
        _check_dialect_slots(media, len(entries))
        self.assets.preflight(media.all_files())

        # Ссылки на файлы появляются только после загрузки в хранилище
        for entry in entries:
            entry["audio"] = None

        uploaded = []
        image = None
        try:
            path = media.for_record(MediaKind.IMAGE)
            if path is not None:
                image = await self.assets.gate.validate_and_ingest(path, MediaKind.IMAGE)
                uploaded.append((image, MediaKind.IMAGE))

            for index, entry in enumerate(entries):
                path = media.for_dialect(index, MediaKind.AUDIO)
                if path is not None:
                    entry["audio"] = await self.assets.gate.validate_and_ingest(path, MediaKind.AUDIO)
                    uploaded.append((entry["audio"], MediaKind.AUDIO))
                    logger.info("Audio uploaded for dialect %s: %s", index, entry["audio"])
        except MediaIngestError:
            await self.assets.release_all(uploaded)
            raise

        new_word = Word(
            category_id=category_id,
            uploaded_by=uploaded_by,
            image=image,
            words=entries,
            status=moderation.INITIAL_STATUS.value,
        )
        new_word.refresh_search_text()
        self.session.add(new_word)

        try:
            await commit(self.session)
        except DictionaryError:
            await self.assets.release_all(uploaded)
            raise

        await self._reload(new_word)
        logger.info("Word %s submitted with %d dialect(s)", new_word.id, len(entries))
        return new_word

    async def update(
        self,
        word_id,
        words=None,
        category=None,
        status=None,
        media: Optional[MediaUploads] = None,
    ) -> Word:
        word = await self.get(word_id)
        current = [dict(entry) for entry in word.words or []]

        incoming = parse_dialect_entries(words) if words not in (None, "") else None
        entries = incoming if incoming is not None else [dict(entry) for entry in current]
        category_id = await self._resolve_category(category) if category not in (None, "") else None
        new_status = moderation.transition(word.status, status) if status else None

        media = media or MediaUploads()
        _promote_record_audio(media)
        _check_dialect_slots(media, len(entries))
        self.assets.preflight(media.all_files())

        # Файлы, которые перестали принадлежать слову. Удаляются после записи в базу.
        detached = []
        if incoming is not None:
            for index, entry in enumerate(entries):
                old_audio = current[index].get("audio") if index < len(current) else None
                replacing = media.for_dialect(index, MediaKind.AUDIO) is not None
                if "audio" in entry and entry["audio"] is None and not replacing:
                    if old_audio:
                        detached.append((old_audio, MediaKind.AUDIO))
                else:
                    entry["audio"] = old_audio
            for dropped in current[len(entries):]:
                if dropped.get("audio"):
                    detached.append((dropped["audio"], MediaKind.AUDIO))

        swapped: Dict[object, Optional[str]] = {}
        pending = None
        try:
            path = media.for_record(MediaKind.IMAGE)
            if path is not None:
                pending = WORD_IMAGE
                swapped[WORD_IMAGE] = await self.assets.replace(word.image, path, MediaKind.IMAGE)

            for index, entry in enumerate(entries):
                path = media.for_dialect(index, MediaKind.AUDIO)
                if path is None:
                    continue
                pending = index
                swapped[index] = await self.assets.replace(entry.get("audio"), path, MediaKind.AUDIO)
        except MediaIngestError as exc:
            if exc.detached:
                swapped[pending] = None
            await self._save_partial(word, current, swapped)
            raise

        for key, ref in swapped.items():
            if key == WORD_IMAGE:
                word.image = ref
            else:
                entries[key]["audio"] = ref

        word.words = entries
        if category_id is not None:
            word.category_id = category_id
        if new_status is not None:
            word.status = new_status.value
        word.refresh_search_text()

        await commit(self.session)
        await self.assets.release_all(detached)
        await self._reload(word)
        return word

    async def _save_partial(self, word: Word, current: List[dict], swapped: dict) -> None:
        """
        Сохраняет замены, выполненные до ошибки. Поле, старый файл которого уже
        удален, отвязывается. Новые файлы без места в текущей записи удаляются.
        """
        orphans = []
        changed = False
        for key, ref in swapped.items():
            if key == WORD_IMAGE:
                word.image = ref
                changed = True
            elif key < len(current):
                current[key]["audio"] = ref
                changed = True
            elif ref:
                orphans.append((ref, MediaKind.AUDIO))

        if changed:
            word.words = current
            await commit(self.session)
            logger.warning("Word %s partially updated before upload failure", word.id)
        await self.assets.release_all(orphans)

    async def _set_status(self, word_id, target: WordStatus) -> Word:
        word = await self.get(word_id)
        word.status = moderation.transition(word.status, target).value
        await commit(self.session)
        await self._reload(word)
        return word

    async def approve(self, word_id) -> Word:
        return await self._set_status(word_id, WordStatus.APPROVED)

    async def hide(self, word_id) -> Word:
        return await self._set_status(word_id, WordStatus.HIDDEN)

    async def move(self, word_id, new_category) -> Word:
        word = await self.get(word_id)
        if new_category in (None, ""):
            raise ValidationError("newCategory required")
        category_id = await self._resolve_category(new_category)

        category_id, status = moderation.move(word.status, category_id)
        word.category_id = category_id
        word.status = status.value

        await commit(self.session)
        await self._reload(word)
        return word

    async def delete(self, word_id) -> None:
        word = await self.get(word_id)
        logger.info("Deleting word %s", word.id)

        await self.assets.release_all(word.media_refs())

        await self.session.delete(word)
        await commit(self.session)


async def referenced_public_ids(session: AsyncSession) -> Set[str]:
    """
    Все public id, на которые ссылаются записи.

    Основа для будущей сверки с содержимым хранилища: файлы, которых нет в
    этом множестве, являются сиротами.
    """
    refs = []
    for model in (Category, Word):
        result = await session.execute(select(model))
        for record in result.scalars().all():
            refs.extend(ref for ref, _ in record.media_refs())
    return {public_id for public_id in map(resolve_public_id, refs) if public_id}
