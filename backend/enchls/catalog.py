# enchls/catalog.py
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .models import EncryptionMetadata, VideoSummary
from .processor import ENCRYPTED_PLAYLIST_NAME, METADATA_NAME

logger = logging.getLogger(__name__)


def read_metadata(asset_dir) -> Optional[EncryptionMetadata]:
    """Load an asset's metadata record, or None if missing or unreadable."""
    path = Path(asset_dir) / METADATA_NAME
    if not path.is_file():
        return None
    try:
        return EncryptionMetadata.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as e:
        logger.warning("Failed to read metadata for %s: %s", Path(asset_dir).name, e)
        return None


def summarize(asset_dir, url_prefix: str = "/output") -> VideoSummary:
    asset_dir = Path(asset_dir)
    files = sorted(p.name for p in asset_dir.iterdir())
    has_playlist = ENCRYPTED_PLAYLIST_NAME in files
    metadata = read_metadata(asset_dir)
    return VideoSummary(
        name=asset_dir.name,
        has_encrypted_playlist=has_playlist,
        has_metadata=metadata is not None,
        playlist_url=f"{url_prefix}/{asset_dir.name}/{ENCRYPTED_PLAYLIST_NAME}" if has_playlist else None,
        segment_count=len(metadata.segments) if metadata else 0,
        created=metadata.created if metadata else None,
        algorithm=metadata.algorithm if metadata else None,
        files=files,
    )


def list_videos(output_dir, url_prefix: str = "/output") -> list[VideoSummary]:
    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        return []
    return [summarize(d, url_prefix) for d in sorted(output_dir.iterdir()) if d.is_dir()]
