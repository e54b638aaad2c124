"""
Dependency injection container for FastAPI.
Provides singleton-like behavior for services.
"""
from functools import lru_cache
from src.services.chunk_receiver_service import ChunkReceiverService


@lru_cache()
def get_chunk_receiver_service() -> ChunkReceiverService:
    """Get ChunkReceiverService singleton instance."""
    return ChunkReceiverService()
