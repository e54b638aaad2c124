"""
Chunk Transport for upload requests.
Sends data chunks and final markers to the upload endpoint over HTTP.
"""
import logging
from typing import Optional
import httpx
from src.core import config
from src.core.exceptions import TransferError
from src.models.dto.upload_dto import ChunkHeaders

logger = logging.getLogger(__name__)


class ChunkTransport:
    """Repository for outbound chunk requests."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        upload_path: Optional[str] = None,
        destination_dir: Optional[str] = None
    ):
        # No timeout: a hung request blocks its file, matching the browser client
        self.client = client or httpx.AsyncClient(
            base_url=base_url or config.settings.upload_base_url,
            timeout=None
        )
        self.upload_path = upload_path or config.settings.upload_path
        self.destination_dir = destination_dir or config.settings.destination_dir

    async def send(self, headers: ChunkHeaders, body: bytes = b"") -> str:
        """
        POST one chunk or final marker.

        Args:
            headers: File name, offset and final flag for this request
            body: Raw chunk bytes, empty for the final marker

        Returns:
            str: Response body

        Raises:
            TransferError: On a non-2xx response or transport failure
        """
        try:
            response = await self.client.post(
                self.upload_path,
                params={'dir': self.destination_dir},
                headers=headers.to_http(),
                content=body
            )
        except httpx.HTTPError as e:
            raise TransferError(f"Request failed for {headers.file_name}: {str(e)}") from e

        if not response.is_success:
            logger.debug(
                "Upload endpoint returned %s for %s at offset %d",
                response.status_code, headers.file_name, headers.offset
            )
            raise TransferError(response.text)

        return response.text

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
