"""
Ссылки на файлы в облачном хранилище.

URL, который возвращает хранилище при загрузке, имеет вид
``.../upload/[transform/][v<digits>/]<path>.<ext>``. Идентификатор файла
(public id) вычисляется из URL без обращений к сети.
"""
import enum
import re
from typing import Optional, Tuple

UPLOAD_MARKER = "/upload/"

_VERSION_RE = re.compile(r"^v\d+$")
_EXTENSION_RE = re.compile(r"\.[^/.]+$")


class MediaKind(str, enum.Enum):
    IMAGE = "image"
    AUDIO = "audio"


# Хранилище считает аудио разновидностью видео
RESOURCE_TYPES = {
    MediaKind.IMAGE: "image",
    MediaKind.AUDIO: "video",
}


def resource_type_for(kind) -> str:
    return RESOURCE_TYPES[MediaKind(kind)]


def _is_transform(segment: str) -> bool:
    return "," in segment


def _is_version(segment: str) -> bool:
    return bool(_VERSION_RE.match(segment))


def resolve_public_id(asset_url) -> Optional[str]:
    """
    Возвращает public id файла или None, если URL не распознан.

    >>> resolve_public_id("https://host/x/image/upload/v123/pashto_dict/a.jpg")
    'pashto_dict/a'
    """
    if not asset_url or not isinstance(asset_url, str):
        return None

    _, marker, after_upload = asset_url.partition(UPLOAD_MARKER)
    if not marker:
        return None

    segments = after_upload.split("/")

    # Пропускаем трансформации и версию только в начале пути
    start = 0
    while start < len(segments) and (_is_transform(segments[start]) or _is_version(segments[start])):
        start += 1

    path = "/".join(segments[start:])
    public_id = _EXTENSION_RE.sub("", path)
    if not public_id.strip("/"):
        return None
    return public_id


def destroy_request(asset_url, kind) -> Optional[Tuple[str, str]]:
    """(public_id, resource_type) для удаления файла или None"""
    public_id = resolve_public_id(asset_url)
    if public_id is None:
        return None
    return public_id, resource_type_for(kind)


def build_asset_url(
    cloud_name: str,
    resource_type: str,
    public_id: str,
    ext: str,
    version: Optional[int] = None,
    transform: Optional[str] = None,
) -> str:
    parts = [f"https://res.cloudinary.com/{cloud_name}/{resource_type}/upload"]
    if transform:
        parts.append(transform)
    if version is not None:
        parts.append(f"v{version}")
    parts.append(f"{public_id}.{ext.lstrip('.')}")
    return "/".join(parts)
