# enchls/cli.py
"""
Command line entry point.

Usage examples:
  python -m enchls process videos/sample.mp4 my-video
  python -m enchls encrypt output/my-video
  python -m enchls serve --port 3000
  python -m enchls list
  python -m enchls play http://localhost:3000/output/my-video/encrypted-playlist.m3u8 ./decrypted

Exit codes:
  0  - success
  1  - failure (reason is logged)
"""
import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from . import config
from .catalog import list_videos
from .errors import SegmentStreamError
from .logging_config import setup_logging
from .manifest import PLAINTEXT_EXT, segment_id
from .player import PlaybackSession
from .processor import VideoProcessor

logger = logging.getLogger("enchls")


def cmd_process(args) -> int:
    if not os.path.isfile(args.video):
        logger.error("Input video file not found: %s", args.video)
        return 1
    processor = VideoProcessor(output_dir=args.output_dir, segment_duration=args.duration)
    result = processor.process_and_encrypt(args.video, args.name)
    logger.info("Output directory: %s", result.output_dir)
    logger.info("Segments encrypted: %d", result.segment_count)
    return 0


def cmd_encrypt(args) -> int:
    if not os.path.isdir(args.directory):
        logger.error("Segment directory not found: %s", args.directory)
        return 1
    processor = VideoProcessor(output_dir=args.output_dir, segment_duration=args.duration)
    result = processor.encrypt_directory(args.directory)
    logger.info("Encrypted playlist: %s (%d segments)", result.encrypted_playlist_path, result.segment_count)
    return 0


def cmd_list(args) -> int:
    videos = list_videos(args.output_dir)
    if not videos:
        print("No processed videos found.")
        return 0
    print(f"Found {len(videos)} processed video(s):")
    for v in videos:
        print(f"  {v.name}")
        if v.has_metadata:
            print(f"    segments:  {v.segment_count}")
            print(f"    created:   {v.created}")
            print(f"    algorithm: {v.algorithm}")
        print(f"    playlist:  {'available' if v.has_encrypted_playlist else 'missing'}")
    return 0


def cmd_serve(args) -> int:
    import uvicorn
    uvicorn.run("enchls.main:app", host=args.host, port=args.port)
    return 0


def cmd_play(args) -> int:
    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    def write_segment(index: int, url: str, data: bytes) -> None:
        name = Path(segment_id(url)).with_suffix(PLAINTEXT_EXT).name
        (out_dir / f"{index:04d}-{name}").write_bytes(data)

    async def run() -> int:
        player = PlaybackSession()
        try:
            if os.path.isfile(args.source):
                return await player.load_file(args.source, write_segment)
            return await player.load_playlist(args.source, write_segment)
        finally:
            await player.aclose()

    count = asyncio.run(run())
    logger.info("Decrypted %d segments into %s", count, out_dir)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="enchls", description="Encrypted HLS segment tooling.")
    parser.add_argument("-d", "--debug", help="Enable debug", action="store_const",
                        dest="loglevel", const=logging.DEBUG, default=logging.INFO)
    parser.add_argument("--output-dir", default=config.OUTPUT_DIR,
                        help="Directory holding processed assets (default from $OUTPUT_DIR).")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("process", help="Segment a video with ffmpeg and encrypt it")
    p.add_argument("video")
    p.add_argument("name", nargs="?", default=None)
    p.add_argument("--duration", type=int, default=config.SEGMENT_DURATION)
    p.set_defaults(func=cmd_process)

    p = sub.add_parser("encrypt", help="Encrypt an already segmented directory")
    p.add_argument("directory")
    p.add_argument("--duration", type=int, default=config.SEGMENT_DURATION)
    p.set_defaults(func=cmd_encrypt)

    p = sub.add_parser("serve", help="Start the web server")
    p.add_argument("--host", default=config.HOST)
    p.add_argument("--port", type=int, default=config.PORT)
    p.set_defaults(func=cmd_serve)

    p = sub.add_parser("list", help="List processed videos")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("play", help="Fetch and decrypt every segment of a playlist")
    p.add_argument("source", help="Playlist URL or local playlist file")
    p.add_argument("out_dir")
    p.set_defaults(func=cmd_play)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.loglevel)
    try:
        return args.func(args)
    except SegmentStreamError as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
