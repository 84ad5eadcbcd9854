import asyncio
import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

import httpx

from services.errors import UploadFailed

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.cloudinary.com/v1_1"


@dataclass(frozen=True)
class UploadResult:
    secure_url: str
    public_id: str


class BlobStore(Protocol):
    async def upload(
        self,
        local_path: Path,
        folder: str,
        resource_type: str,
        format: Optional[str] = None,
    ) -> UploadResult:
        ...

    async def destroy(self, public_id: str, resource_type: str) -> str:
        ...


def sign_params(params: dict, api_secret: str) -> str:
    """Подпись запроса: sha1 от отсортированных параметров и секрета"""
    payload = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, ""))
    return hashlib.sha1(f"{payload}{api_secret}".encode("utf-8")).hexdigest()


class CloudinaryBlobStore:
    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings) -> "CloudinaryBlobStore":
        return cls(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
        )

    def _endpoint(self, resource_type: str, action: str) -> str:
        return f"{API_BASE_URL}/{self.cloud_name}/{resource_type}/{action}"

    def _signed(self, params: dict) -> dict:
        params = {k: v for k, v in params.items() if v not in (None, "")}
        params["timestamp"] = int(time.time())
        params["signature"] = sign_params(params, self.api_secret)
        params["api_key"] = self.api_key
        return params

    async def upload(
        self,
        local_path: Path,
        folder: str,
        resource_type: str,
        format: Optional[str] = None,
    ) -> UploadResult:
        path = Path(local_path)
        content = await asyncio.to_thread(path.read_bytes)
        data = self._signed({"folder": folder, "format": format})

        try:
            response = await self._client.post(
                self._endpoint(resource_type, "upload"),
                data=data,
                files={"file": (path.name, content)},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise UploadFailed(f"Upload to blob store failed: {exc}") from exc

        body = response.json()
        logger.info("Uploaded %s as %s", path.name, body.get("public_id"))
        return UploadResult(secure_url=body["secure_url"], public_id=body["public_id"])

    async def destroy(self, public_id: str, resource_type: str) -> str:
        data = self._signed({"public_id": public_id})
        response = await self._client.post(self._endpoint(resource_type, "destroy"), data=data)
        response.raise_for_status()
        return response.json().get("result", "")

    async def aclose(self) -> None:
        await self._client.aclose()
