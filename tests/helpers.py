"""Тестовые двойники внешних сервисов."""
from pathlib import Path

from services.blob_codec import build_asset_url
from services.blob_store import UploadResult
from services.errors import UploadFailed

CLOUD_NAME = "demo"


class FakeBlobStore:
    """Хранилище в памяти, записывает все вызовы в ``events``"""

    def __init__(self):
        self.uploads = []
        self.destroyed = []
        self.events = []
        self.fail_upload = False
        self.fail_destroy = False
        self.destroy_result = "ok"
        self._counter = 0

    async def upload(self, local_path, folder, resource_type, format=None):
        path = Path(local_path)
        if self.fail_upload:
            self.events.append(("upload_failed", path.name))
            raise UploadFailed("blob store unavailable")

        self._counter += 1
        public_id = f"{folder}/asset{self._counter}"
        ext = format or path.suffix.lstrip(".") or "bin"
        self.uploads.append(
            {
                "name": path.name,
                "size": path.stat().st_size,
                "folder": folder,
                "resource_type": resource_type,
                "format": format,
                "public_id": public_id,
            }
        )
        self.events.append(("upload", public_id))
        url = build_asset_url(CLOUD_NAME, resource_type, public_id, ext, version=1700000000 + self._counter)
        return UploadResult(secure_url=url, public_id=public_id)

    async def destroy(self, public_id, resource_type):
        self.events.append(("destroy", public_id))
        if self.fail_destroy:
            raise RuntimeError("network is unreachable")
        self.destroyed.append((public_id, resource_type))
        return self.destroy_result


def asset_url(public_id: str, resource_type: str = "image", ext: str = "jpg") -> str:
    return build_asset_url(CLOUD_NAME, resource_type, public_id, ext, version=123)
