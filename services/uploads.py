"""
Временное хранение загруженных файлов и разбор частей multipart-запроса.

Каждая часть с файлом описывается слотом ``UploadSlot(dialect_index,
media_kind)``. Слоты берутся из JSON-манифеста ``uploads``
(``{"part": {"dialectIndex": 0, "mediaKind": "audio"}}``), а для старых
клиентов из имени части: ``image``/``audio`` относятся к самой записи,
``audio[0]`` к диалекту с индексом 0.
"""
import asyncio
import json
import logging
import os
import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from services.blob_codec import MediaKind
from services.errors import MalformedFieldError, SizeLimitExceeded
from services.ingestion import SIZE_LIMITS

logger = logging.getLogger(__name__)

LEGACY_FIELD_RE = re.compile(r"^(\w+)\[(\d+)\]$")


@dataclass(frozen=True)
class UploadSlot:
    dialect_index: Optional[int]  # None - файл самой записи
    media_kind: MediaKind


@dataclass
class MediaUploads:
    record: Dict[MediaKind, Path] = field(default_factory=dict)
    dialects: Dict[int, Dict[MediaKind, Path]] = field(default_factory=dict)

    def add(self, slot: UploadSlot, path: Path) -> bool:
        if slot.dialect_index is None:
            target = self.record
        else:
            target = self.dialects.setdefault(slot.dialect_index, {})
        # По одному файлу на слот, как maxCount: 1
        if slot.media_kind in target:
            return False
        target[slot.media_kind] = path
        return True

    def has(self, slot: UploadSlot) -> bool:
        if slot.dialect_index is None:
            return slot.media_kind in self.record
        return slot.media_kind in self.dialects.get(slot.dialect_index, {})

    def for_record(self, kind) -> Optional[Path]:
        return self.record.get(MediaKind(kind))

    def for_dialect(self, index: int, kind) -> Optional[Path]:
        return self.dialects.get(index, {}).get(MediaKind(kind))

    def all_files(self) -> List[Tuple[Path, MediaKind]]:
        files = [(path, kind) for kind, path in self.record.items()]
        for index in sorted(self.dialects):
            files.extend((path, kind) for kind, path in self.dialects[index].items())
        return files

    def __bool__(self) -> bool:
        return bool(self.record or self.dialects)


def _media_kind(value) -> Optional[MediaKind]:
    try:
        return MediaKind(str(value).lower())
    except ValueError:
        return None


def parse_manifest(raw) -> Dict[str, UploadSlot]:
    if not raw:
        return {}
    try:
        data = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError as exc:
        raise MalformedFieldError("uploads", str(exc)) from exc
    if not isinstance(data, dict):
        raise MalformedFieldError("uploads", "expected an object keyed by part name")

    manifest = {}
    for part_name, descriptor in data.items():
        if not isinstance(descriptor, dict):
            raise MalformedFieldError("uploads", f"descriptor for '{part_name}' must be an object")
        kind = _media_kind(descriptor.get("mediaKind"))
        if kind is None:
            raise MalformedFieldError("uploads", f"unknown mediaKind for '{part_name}'")
        index = descriptor.get("dialectIndex")
        if index is not None and (not isinstance(index, int) or isinstance(index, bool) or index < 0):
            raise MalformedFieldError("uploads", f"dialectIndex for '{part_name}' must be a non-negative integer")
        manifest[part_name] = UploadSlot(dialect_index=index, media_kind=kind)
    return manifest


def slot_for_field(field_name: str, manifest: Dict[str, UploadSlot]) -> Optional[UploadSlot]:
    if field_name in manifest:
        return manifest[field_name]

    kind = _media_kind(field_name)
    if kind is not None:
        return UploadSlot(dialect_index=None, media_kind=kind)

    match = LEGACY_FIELD_RE.match(field_name)
    if match:
        kind = _media_kind(match.group(1))
        if kind is not None:
            return UploadSlot(dialect_index=int(match.group(2)), media_kind=kind)
    return None


class StagingArea:
    """Папка для временных файлов запроса. Все файлы удаляются при выходе."""

    def __init__(self, upload_dir):
        self.upload_dir = Path(upload_dir)
        self.paths: List[Path] = []

    async def __aenter__(self) -> "StagingArea":
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        for path in self.paths:
            try:
                os.unlink(path)
            except FileNotFoundError:
                pass
        self.paths.clear()

    async def stage(self, filename: Optional[str], content: bytes) -> Path:
        suffix = Path(filename or "").suffix.lower()
        path = self.upload_dir / f"{uuid.uuid4().hex}{suffix}"
        self.paths.append(path)
        await asyncio.to_thread(path.write_bytes, content)
        return path


async def _read_limited(upload, kind: MediaKind) -> bytes:
    """
    Читает часть не больше лимита. Заявленный размер проверяется до чтения,
    без него читается limit + 1 байт, чтобы заметить превышение.
    """
    limit = SIZE_LIMITS[kind]
    declared = getattr(upload, "size", None)
    if declared is not None and declared > limit:
        raise SizeLimitExceeded(kind, declared, limit)

    content = await upload.read(limit + 1)
    if len(content) > limit:
        raise SizeLimitExceeded(kind, len(content), limit)
    return content


async def demultiplex(parts: Iterable, manifest_raw, staging: StagingArea) -> MediaUploads:
    """
    Раскладывает файлы запроса по слотам.

    ``parts`` - пары (имя части, файл), у файла есть ``filename`` и ``read()``.
    """
    manifest = parse_manifest(manifest_raw)
    uploads = MediaUploads()

    for field_name, upload in parts:
        slot = slot_for_field(field_name, manifest)
        if slot is None:
            logger.warning("Ignoring file part %s: no upload slot", field_name)
            continue
        if uploads.has(slot):
            logger.warning("Ignoring extra file for slot %s", slot)
            continue
        content = await _read_limited(upload, slot.media_kind)
        path = await staging.stage(upload.filename, content)
        uploads.add(slot, path)

    return uploads
