"""
Жизненный цикл медиафайлов, привязанных к записи.

Удаление из хранилища выполняется по принципу best effort: ошибка удаления
только логируется и никогда не блокирует операцию. Запись в базе остается
источником истины, а неудаленный файл становится "сиротой".
"""
import logging
from typing import Iterable, Optional, Tuple

from services.blob_codec import destroy_request
from services.blob_store import BlobStore
from services.errors import BlobCleanupError, MediaIngestError
from services.ingestion import IngestionGate

logger = logging.getLogger(__name__)

# Cloudinary отвечает "not found" (с пробелом), если файла уже нет
ACCEPTED_DESTROY_RESULTS = ("ok", "not found")


class AssetManager:
    def __init__(self, blob_store: BlobStore, gate: IngestionGate):
        self.blob_store = blob_store
        self.gate = gate

    def preflight(self, files: Iterable[Tuple[object, str]]) -> None:
        """Проверка всех файлов запроса до первого обращения к хранилищу"""
        for path, kind in files:
            self.gate.check(path, kind)

    async def release(self, ref: Optional[str], kind) -> bool:
        """Удаляет файл из хранилища. Возвращает True, если хранилище подтвердило удаление."""
        if not ref:
            return False

        request = destroy_request(ref, kind)
        if request is None:
            logger.warning("Cannot resolve public id from %s, nothing to delete", ref)
            return False

        public_id, resource_type = request
        try:
            result = await self.blob_store.destroy(public_id, resource_type)
        except Exception as exc:
            self._report(BlobCleanupError(public_id, str(exc)))
            return False

        if result not in ACCEPTED_DESTROY_RESULTS:
            self._report(BlobCleanupError(public_id, f"unexpected result {result!r}"))
            return False

        logger.info("Deleted %s %s: %s", resource_type, public_id, result)
        return True

    async def release_all(self, refs: Iterable[Tuple[str, str]]) -> int:
        released = 0
        for ref, kind in refs:
            if await self.release(ref, kind):
                released += 1
        return released

    async def replace(self, current_ref: Optional[str], staged_file, kind) -> Optional[str]:
        """
        Возвращает следующую ссылку для поля записи.

        Старый файл удаляется до загрузки нового, id старого файла берется
        только из ссылки до обновления.
        """
        if staged_file is None:
            return current_ref

        if current_ref:
            await self.release(current_ref, kind)

        try:
            return await self.gate.validate_and_ingest(staged_file, kind)
        except MediaIngestError as exc:
            exc.detached = bool(current_ref)
            raise

    @staticmethod
    def _report(error: BlobCleanupError) -> None:
        logger.warning("%s (orphaned blob left in storage)", error.message)
