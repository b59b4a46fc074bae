# enchls/config.py
import os

# Where processed assets live; served under /output by the HTTP service.
OUTPUT_DIR = os.getenv("OUTPUT_DIR", os.path.join(os.getcwd(), "output"))

# Base for rewriting relative .enc references found in locally loaded manifests.
CONTENT_BASE_URL = os.getenv("CONTENT_BASE_URL", "http://localhost:3000/output/encrypted-stream/")

SEGMENT_DURATION = int(os.getenv("SEGMENT_DURATION", "10"))

# CHACHA20-POLY1305 or AES-256-GCM
CIPHER_METHOD = os.getenv("CIPHER_METHOD", "CHACHA20-POLY1305").strip().upper()

# random (one fresh draw per segment) or counter (segment index)
NONCE_STRATEGY = os.getenv("NONCE_STRATEGY", "random").strip().lower()

FFMPEG_BIN = os.getenv("FFMPEG_BIN", "ffmpeg")

# ---------- HTTP service ----------
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "3000"))
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000")

# ---------- playback ----------
FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "20"))
PREFETCH_WINDOW = int(os.getenv("PREFETCH_WINDOW", "4"))
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))
RETRY_DELAY = float(os.getenv("RETRY_DELAY", "1.0"))
