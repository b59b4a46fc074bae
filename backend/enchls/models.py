from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from .masking import mask_sensitive_values

class SegmentRecord(BaseModel):
    original: str
    encrypted: str
    nonce: str = Field(..., description="base64 nonce, also carried in the manifest")
    size: int
    encrypted_size: int

class EncryptionMetadata(BaseModel):
    """Side-channel record written next to each asset for operator tooling."""
    master_key: str
    segments: List[SegmentRecord]
    algorithm: str
    created: str

    def masked(self) -> Dict[str, Any]:
        """Return the record with the master key masked."""
        return mask_sensitive_values(self.model_dump())

class ProcessResult(BaseModel):
    output_dir: str
    encrypted_playlist_path: str
    metadata_path: str
    master_key: str
    segment_count: int

class VideoSummary(BaseModel):
    name: str
    has_encrypted_playlist: bool
    has_metadata: bool
    playlist_url: Optional[str] = None
    segment_count: int = 0
    created: Optional[str] = None
    algorithm: Optional[str] = None
    files: List[str] = []

class VideoList(BaseModel):
    videos: List[VideoSummary]

class HealthOut(BaseModel):
    status: str
    timestamp: str
    service: str
