"""
Health check routes for monitoring.
"""
import os
from fastapi import APIRouter, Depends
from src.core.config import settings
from src.core.dependencies import get_chunk_receiver_service
from src.services.chunk_receiver_service import ChunkReceiverService

router = APIRouter(prefix="/v1/api", tags=["Health"])


@router.get("/health")
async def health_check(receiver: ChunkReceiverService = Depends(get_chunk_receiver_service)):
    """Report the receiver version and whether its upload root is writable."""
    root_ready = receiver.upload_root.is_dir() and os.access(receiver.upload_root, os.W_OK)
    return {
        "status": "healthy" if root_ready else "degraded",
        "service": settings.api_title,
        "version": settings.api_version,
        "upload_root_ready": root_ready
    }
