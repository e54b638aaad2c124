"""
Command-line upload client.

Usage:
    python -m src.client [--url URL] [--dir DIR] [--folder PATH ...] [FILE ...]
"""
import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from src.core.config import settings
from src.core.exceptions import ValidationException
from src.core.logging_config import configure_logging
from src.models.dto.upload_dto import TaskStatusEvent
from src.models.upload_status import TaskStatus
from src.repositories.chunk_transport import ChunkTransport
from src.services.file_service import FileService
from src.services.upload_task import UploadTask

logger = logging.getLogger(__name__)

EXIT_CODES = {
    TaskStatus.COMPLETED: 0,
    TaskStatus.FAILED: 1,
    TaskStatus.CANCELLED: 130,
}
EXIT_VALIDATION = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Upload files and folders in parallel chunks")
    parser.add_argument('files', nargs='*', help="Files to upload")
    parser.add_argument('--folder', action='append', default=[], help="Folder to upload recursively")
    parser.add_argument('--url', default=settings.upload_base_url, help="Upload server base URL")
    parser.add_argument('--dir', default=settings.destination_dir, help="Destination directory on the server")
    parser.add_argument('--chunk-size', type=int, default=settings.chunk_size, help="Chunk size in bytes")
    parser.add_argument('--parallel', type=int, default=settings.parallel_chunks, help="Chunks in flight per file")
    parser.add_argument('--log-level', default=settings.log_level, help="Log level")
    return parser


def log_status(event: TaskStatusEvent) -> None:
    if event.status is TaskStatus.FAILED:
        logger.error(event.message)
    else:
        logger.info("%s [%.1f%%]", event.message, event.overall_percent)


async def run(args: argparse.Namespace) -> int:
    try:
        entries = FileService().collect_files(args.files, args.folder)
    except ValidationException as e:
        logger.error(e.message)
        return EXIT_VALIDATION

    async with ChunkTransport(base_url=args.url, destination_dir=args.dir) as transport:
        task = UploadTask(
            transport,
            chunk_size=args.chunk_size,
            parallel_chunks=args.parallel,
            on_status=log_status,
            on_complete=lambda: logger.info("Files available under %s", args.dir)
        )

        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, task.cancel)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            pass

        try:
            status = await task.start(entries)
        except ValidationException as e:
            logger.error(e.message)
            return EXIT_VALIDATION

    return EXIT_CODES[status]


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
