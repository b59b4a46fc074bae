# enchls/routes/videos.py
import logging
import re
from pathlib import Path
from fastapi import APIRouter, Depends, HTTPException
from enchls import config
from enchls.catalog import list_videos, read_metadata
from enchls.deps import AUTH_DEP
from enchls.models import VideoList
from enchls.security import AuthPrincipal, require_scopes

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/videos", tags=["videos"])

# One path segment of [A-Za-z0-9._-]; no traversal.
NAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")

def normalize_name(name: str) -> str:
    name = name.strip()
    if not NAME_RE.fullmatch(name) or name in (".", ".."):
        raise HTTPException(status_code=400, detail="invalid video name")
    return name

@router.get("", response_model=VideoList)
def get_videos():
    """List processed assets under the output directory."""
    try:
        return {"videos": list_videos(config.OUTPUT_DIR)}
    except OSError:
        logger.exception("Error listing videos")
        raise HTTPException(status_code=500, detail="Failed to list videos")

@router.get("/{name}/metadata")
def get_metadata(name: str, principal: AuthPrincipal = Depends(AUTH_DEP)):
    """Side-channel encryption record of one asset, master key masked."""
    require_scopes(principal, "metadata.read")
    name = normalize_name(name)
    asset_dir = Path(config.OUTPUT_DIR) / name
    if not asset_dir.is_dir():
        raise HTTPException(404, "Video not found")
    metadata = read_metadata(asset_dir)
    if metadata is None:
        raise HTTPException(404, "Metadata not found")
    return metadata.masked()
