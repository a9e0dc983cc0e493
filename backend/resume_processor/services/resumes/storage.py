# resume_processor/services/resumes/storage.py
"""Upload temp files and the processed-files folder."""
from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO, Optional

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def save_upload(stream: BinaryIO, original_name: str, directory: Path) -> Path:
    """Copy an upload stream into `directory` under a collision-free name; returns the path."""
    ensure_dir(directory)
    suffix = Path(original_name or "").suffix.lower()
    target = directory / f"{uuid.uuid4().hex}{suffix}"
    with open(target, "wb") as out:
        shutil.copyfileobj(stream, out)
    return target


def relocate_to_processed(path: Path, processing_id: str, processed_dir: Path) -> Path:
    """Move a file to <processed_dir>/<processing_id><ext>. Raises OSError on failure."""
    ensure_dir(processed_dir)
    target = processed_dir / f"{processing_id}{path.suffix.lower()}"
    shutil.move(str(path), str(target))
    return target


def remove_file(path: Optional[Path | str]) -> bool:
    """Delete a file if it exists. Returns True when something was removed."""
    if not path:
        return False
    p = Path(path)
    try:
        p.unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("Could not remove %s: %s", p, e)
        return False
