# resume_processor/workers/resume_watcher.py
"""
Resume Inbox Watcher - Monitors UPLOADS_DIR/inbox and runs every new resume through the pipeline.
Uses file system events with debouncing; temp/partial files are ignored.
"""
from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path
from typing import Callable, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session
from watchdog.events import FileCreatedEvent, FileModifiedEvent, FileMovedEvent, FileSystemEventHandler
from watchdog.observers.polling import PollingObserver as Observer

from resume_processor.core.config import settings
from resume_processor.db.base import SessionLocal
from resume_processor.models.resume import Resume, ResumeStatus, ProcessingStage
from resume_processor.repositories import resume_repo
from resume_processor.services.resumes.ingestion_pipeline import ProcessingResult, ResumeProcessor, UploadedFile
from resume_processor.services.resumes.storage import ensure_dir

logger = logging.getLogger("resumes.watcher")

INBOX_DIR = settings.UPLOADS_DIR / "inbox"
IGNORED_SUFFIXES = (".tmp", ".part", ".crdownload", ".download")


class ResumeInboxHandler(FileSystemEventHandler):
    """
    Debounced handler: a path seen within `cooldown_sec` is skipped, so the
    created/modified event pair of one copy results in a single run.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session] = SessionLocal,
        processor_factory: Callable[[Session], ResumeProcessor] = ResumeProcessor,
        temp_dir: Optional[Path] = None,
        cooldown_sec: float = 2.0,
    ):
        super().__init__()
        self.session_factory = session_factory
        self.processor_factory = processor_factory
        self.temp_dir = Path(temp_dir or settings.TEMP_DIR)
        self.cooldown_sec = cooldown_sec
        self._recent: Dict[str, float] = {}

    def on_created(self, event):
        if isinstance(event, FileCreatedEvent) and not event.is_directory:
            self.handle(Path(event.src_path))

    def on_modified(self, event):
        # Late writes (copy still finishing)
        if isinstance(event, FileModifiedEvent) and not event.is_directory:
            self.handle(Path(event.src_path))

    def on_moved(self, event):
        if isinstance(event, FileMovedEvent) and not event.is_directory:
            self.handle(Path(event.dest_path))

    @staticmethod
    def is_ignorable(path: Path) -> bool:
        name = path.name.lower()
        if name.startswith(("~$", ".")) or name.endswith(IGNORED_SUFFIXES):
            return True
        return path.suffix.lower().lstrip(".") not in settings.allowed_file_types

    def _debounced(self, key: str) -> bool:
        now = time.monotonic()
        expired = [k for k, seen in self._recent.items() if now - seen >= self.cooldown_sec]
        for k in expired:
            del self._recent[k]
        last = self._recent.get(key)
        if last is not None and now - last < self.cooldown_sec:
            return True
        self._recent[key] = now
        return False

    def handle(self, path: Path) -> Optional[ProcessingResult]:
        if self.is_ignorable(path) or self._debounced(str(path)):
            return None
        if not path.exists() or path.is_dir():
            return None
        # The writer may still hold the file; the next modified event retries
        try:
            path.open("rb").close()
        except OSError:
            return None

        # Take the file out of the inbox before processing so it is never picked up twice
        ensure_dir(self.temp_dir)
        staged = self.temp_dir / f"inbox-{int(time.time() * 1000)}-{path.name}"
        try:
            shutil.move(str(path), str(staged))
        except OSError as e:
            logger.warning("Could not stage %s: %s", path.name, e)
            return None

        db = self.session_factory()
        try:
            upload = UploadedFile.from_path(staged, original_name=path.name)
            result = self.processor_factory(db).process_file(upload, uploaded_by="inbox-watcher")
            logger.info("Inbox file %s finished as %s", path.name, result.status)
            return result
        except Exception as e:
            logger.exception("Inbox processing crashed for %s: %s", path.name, e)
            return None
        finally:
            db.close()


def reset_interrupted_records(db: Session) -> int:
    """
    Records left mid-pipeline by a crash are closed out on startup:
    PROCESSING becomes FAILED, TEXT_EXTRACTED (text is kept) becomes ANALYZED.
    """
    stuck = db.execute(
        select(Resume).where(Resume.status.in_([ResumeStatus.PROCESSING.value, ResumeStatus.TEXT_EXTRACTED.value]))
    ).scalars().all()
    for resume in stuck:
        if resume.status == ResumeStatus.PROCESSING.value:
            resume_repo.set_status(db, resume, status=ResumeStatus.FAILED, stage=ProcessingStage.TEXT_EXTRACTION_FAILED)
        else:
            resume_repo.set_status(db, resume, status=ResumeStatus.ANALYZED,
                                   stage=ProcessingStage.CANDIDATE_CREATION_FAILED)
        resume_repo.merge_metadata(db, resume, error="Processing interrupted by a restart")
    if stuck:
        logger.warning("Closed out %d interrupted processing record(s)", len(stuck))
    return len(stuck)


def main():
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    ensure_dir(INBOX_DIR)
    logger.info("Starting resume inbox watcher on %s", INBOX_DIR)

    db = SessionLocal()
    try:
        reset_interrupted_records(db)
    finally:
        db.close()

    handler = ResumeInboxHandler()
    pending = [p for p in sorted(INBOX_DIR.iterdir()) if p.is_file() and not handler.is_ignorable(p)]
    if pending:
        logger.info("Processing %d file(s) already in the inbox", len(pending))
    for path in pending:
        handler.handle(path)

    observer = Observer(timeout=1.0)
    observer.schedule(handler, str(INBOX_DIR), recursive=False)
    observer.start()
    logger.info("Listening for new files...")
    try:
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        observer.stop()
    observer.join()


if __name__ == "__main__":
    main()
