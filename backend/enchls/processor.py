# enchls/processor.py
import logging
import subprocess
from pathlib import Path
from typing import Optional

from . import config
from .crypto import SegmentCipher, b64
from .encoder import build_manifest, build_metadata, encrypt_segments
from .errors import TranscodeError
from .keys import make_generator
from .manifest import ManifestCodec
from .models import ProcessResult

logger = logging.getLogger(__name__)

PLAYLIST_NAME = "playlist.m3u8"
ENCRYPTED_PLAYLIST_NAME = "encrypted-playlist.m3u8"
METADATA_NAME = "encryption-metadata.json"
SEGMENT_PATTERN = "segment%04d.ts"


class VideoProcessor:
    """Segment a video with ffmpeg, then encrypt it into an extended-manifest asset."""

    def __init__(
        self,
        output_dir=None,
        segment_duration: int = config.SEGMENT_DURATION,
        method: str = config.CIPHER_METHOD,
        nonce_strategy: str = config.NONCE_STRATEGY,
        ffmpeg: str = config.FFMPEG_BIN,
    ):
        self.output_dir = Path(output_dir or config.OUTPUT_DIR)
        self.segment_duration = segment_duration
        self.method = method
        self.nonce_strategy = nonce_strategy
        self.ffmpeg = ffmpeg

    def ffmpeg_args(self, input_video: Path, out_dir: Path) -> list[str]:
        return [
            self.ffmpeg,
            "-i", str(input_video),
            "-codec", "copy",
            "-start_number", "0",
            "-hls_time", str(self.segment_duration),
            "-hls_list_size", "0",
            "-hls_playlist_type", "vod",
            "-hls_segment_filename", str(out_dir / SEGMENT_PATTERN),
            "-f", "hls",
            str(out_dir / PLAYLIST_NAME),
        ]

    def convert_to_hls(self, input_video, output_name: str = "stream") -> Path:
        out_dir = self.output_dir / output_name
        out_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Converting %s to HLS format...", input_video)
        try:
            proc = subprocess.run(
                self.ffmpeg_args(Path(input_video), out_dir),
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise TranscodeError(f"Failed to start FFmpeg: {e}") from e
        if proc.returncode != 0:
            logger.debug("FFmpeg stderr: %s", proc.stderr)
            raise TranscodeError(f"FFmpeg process exited with code {proc.returncode}")
        logger.info("Video conversion completed successfully")
        return out_dir

    def encrypt_directory(self, out_dir) -> ProcessResult:
        """Encrypt an already segmented directory and write manifest + metadata."""
        out_dir = Path(out_dir)
        cipher = SegmentCipher(self.method)
        asset = encrypt_segments(out_dir, make_generator(self.nonce_strategy), cipher)
        if not asset.segments:
            raise TranscodeError(f"No segments found in {out_dir}")

        playlist_path = out_dir / ENCRYPTED_PLAYLIST_NAME
        playlist_path.write_text(build_manifest(asset, self.segment_duration, ManifestCodec()), encoding="utf-8")

        metadata_path = out_dir / METADATA_NAME
        metadata_path.write_text(build_metadata(asset).model_dump_json(indent=2), encoding="utf-8")

        logger.info("Encrypted playlist: %s", playlist_path)
        logger.info("Encryption metadata: %s", metadata_path)
        return ProcessResult(
            output_dir=str(out_dir),
            encrypted_playlist_path=str(playlist_path),
            metadata_path=str(metadata_path),
            master_key=b64(asset.key),
            segment_count=len(asset.segments),
        )

    def process_and_encrypt(self, input_video, output_name: Optional[str] = None) -> ProcessResult:
        name = output_name or Path(input_video).stem
        out_dir = self.convert_to_hls(input_video, name)
        return self.encrypt_directory(out_dir)
