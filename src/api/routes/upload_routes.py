"""
Chunked upload routes.
Receives data chunks and final markers sent by the upload client.
"""
from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from typing import Optional
from urllib.parse import unquote
from src.services.chunk_receiver_service import ChunkReceiverService
from src.core.dependencies import get_chunk_receiver_service
from src.core.exceptions import ValidationException

router = APIRouter()


@router.post("/upload", tags=["Uploads"], response_class=PlainTextResponse)
async def receive_chunk(
    request: Request,
    directory: str = Query(default="/", alias="dir", description="Destination directory"),
    x_file_name: Optional[str] = Header(default=None),
    x_chunk_offset: Optional[str] = Header(default=None),
    x_final_chunk: Optional[str] = Header(default=None),
    receiver: ChunkReceiverService = Depends(get_chunk_receiver_service)
):
    """
    Write one chunk at its offset, or finalize the file when X-Final-Chunk is true.

    X-File-Name arrives percent-encoded (UTF-8). Disk writes run in the threadpool.
    Responds with the number of bytes written ("0" for the final marker).
    """
    file_name = unquote(x_file_name) if x_file_name else x_file_name
    receiver.resolve_target(directory, file_name)

    try:
        offset = int(x_chunk_offset)
    except (TypeError, ValueError):
        raise ValidationException("Invalid X-Chunk-Offset")

    if x_final_chunk == "true":
        await run_in_threadpool(receiver.finalize, directory, file_name)
        return "0"

    body = await request.body()
    written = await run_in_threadpool(receiver.write_chunk, directory, file_name, offset, body)
    return str(written)
