#!/usr/bin/env python3
"""
Screenshot Folder Watcher

Watches a folder (e.g. a synced phone screenshot directory) for new
screenshots and queues each one for bill recognition.

Usage:
    autobook-watch --watch-folder ./Screenshots
"""

import argparse
import time
from pathlib import Path
from typing import Iterable, Optional

from loguru import logger
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ..core.config import settings, split_csv
from ..core.logging import setup_logging
from ..services.recognition import RecognitionQueue, RecognitionWorker, create_recognition_service
from ..services.storage import SQLiteBillStore

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}


def is_screenshot(path: Path, keywords: Iterable[str]) -> bool:
    """True for image files whose path or name mentions a screenshot keyword"""
    if path.suffix.lower() not in IMAGE_EXTENSIONS:
        return False
    haystack = str(path).lower()
    return any(keyword.lower() in haystack for keyword in keywords)


class ScreenshotHandler(FileSystemEventHandler):
    """
    Handles new-file events and submits screenshots to the recognition queue.

    The last processed path is kept on the handler so repeated notifications
    for the same file (created + modified, or duplicate events) run it once.
    """

    def __init__(self, queue: RecognitionQueue, keywords: Optional[Iterable[str]] = None, settle_delay: float = 1.0):
        self.queue = queue
        self.keywords = list(keywords) if keywords is not None else split_csv(settings.screenshot_keywords)
        self.settle_delay = settle_delay
        self.last_processed: Optional[Path] = None

    def on_created(self, event):
        """Called when a file is created in the watched folder"""
        if event.is_directory:
            return
        self.handle_new_image(Path(event.src_path))

    def on_moved(self, event):
        """Screenshots are often written to a temp name and renamed"""
        if event.is_directory:
            return
        self.handle_new_image(Path(event.dest_path))

    def handle_new_image(self, file_path: Path) -> bool:
        """
        Returns:
            True if the image was queued
        """
        if not is_screenshot(file_path, self.keywords):
            return False

        # Avoid processing the same file multiple times
        if file_path == self.last_processed:
            return False

        # Small delay to ensure file is fully written
        if self.settle_delay:
            time.sleep(self.settle_delay)

        # Check if file still exists (might have been moved)
        if not file_path.exists():
            return False

        self.last_processed = file_path
        logger.info("New screenshot detected", image=str(file_path))
        self.queue.submit(file_path)
        return True


def main():
    parser = argparse.ArgumentParser(
        description='Watch a folder for screenshots and record the bills on them'
    )
    parser.add_argument(
        '--watch-folder',
        default='./Screenshots',
        help='Folder to watch for new screenshots (default: ./Screenshots)'
    )
    parser.add_argument(
        '--db',
        default=settings.bills_db_path,
        help=f'SQLite database for recognised bills (default: {settings.bills_db_path})'
    )
    parser.add_argument(
        '--concurrency',
        type=int,
        default=settings.worker_concurrency,
        help=f'Parallel recognition jobs (default: {settings.worker_concurrency})'
    )
    parser.add_argument(
        '--recursive',
        action='store_true',
        help='Also watch sub-folders'
    )

    args = parser.parse_args()
    setup_logging()

    watch_folder = Path(args.watch_folder)
    watch_folder.mkdir(parents=True, exist_ok=True)

    service = create_recognition_service(SQLiteBillStore(args.db))
    queue = RecognitionQueue(
        RecognitionWorker(service),
        max_workers=args.concurrency,
        max_retries=settings.worker_max_retries,
    )

    event_handler = ScreenshotHandler(queue)
    observer = Observer()
    observer.schedule(event_handler, str(watch_folder), recursive=args.recursive)
    observer.start()

    logger.info(
        "Screenshot watcher started",
        watching=str(watch_folder.absolute()),
        database=args.db,
        concurrency=args.concurrency,
    )

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Stopping watcher...")
        observer.stop()

    observer.join()
    queue.shutdown()
    logger.info("Watcher stopped")


if __name__ == "__main__":
    main()
