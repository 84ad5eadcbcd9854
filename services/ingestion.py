import logging
import os
from pathlib import Path

from services.blob_codec import MediaKind, resource_type_for
from services.blob_store import BlobStore
from services.errors import MediaIngestError, SizeLimitExceeded, UploadFailed

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "pashto_dict"

# Картинки-миниатюры и короткие аудио (200KB ~ 6 секунд mp3)
SIZE_LIMITS = {
    MediaKind.IMAGE: 100 * 1024,
    MediaKind.AUDIO: 200 * 1024,
}

# Контейнеры, которые перекодируются в mp3 при загрузке
AUDIO_FORMAT_OVERRIDES = {
    ".webm": "mp3",
}


class IngestionGate:
    def __init__(self, blob_store: BlobStore, folder: str = DEFAULT_FOLDER):
        self.blob_store = blob_store
        self.folder = folder

    def check(self, local_file, kind) -> int:
        """Проверяет файл перед загрузкой и возвращает его размер"""
        kind = MediaKind(kind)
        path = Path(local_file)
        if not path.is_file():
            raise MediaIngestError(f"File not found: {path}", kind=kind)

        size = path.stat().st_size
        limit = SIZE_LIMITS[kind]
        if size > limit:
            raise SizeLimitExceeded(kind, size, limit)
        return size

    async def validate_and_ingest(self, local_file, kind) -> str:
        kind = MediaKind(kind)
        path = Path(local_file)
        try:
            size = self.check(path, kind)
            logger.info("Uploading %s file %s (%.2fKB)", kind.value, path.name, size / 1024)

            format_override = None
            if kind is MediaKind.AUDIO:
                format_override = AUDIO_FORMAT_OVERRIDES.get(path.suffix.lower())

            try:
                result = await self.blob_store.upload(
                    path,
                    folder=self.folder,
                    resource_type=resource_type_for(kind),
                    format=format_override,
                )
            except MediaIngestError as exc:
                exc.kind = exc.kind or kind
                raise
            except Exception as exc:
                raise UploadFailed(f"{kind.value.capitalize()} upload failed: {exc}", kind=kind) from exc

            logger.info("Upload successful: %s", result.secure_url)
            return result.secure_url
        finally:
            # Временный файл удаляется в любом случае
            try:
                os.unlink(path)
            except FileNotFoundError:
                pass
