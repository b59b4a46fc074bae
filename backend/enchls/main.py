# enchls/main.py
import datetime as dt

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from . import config
from .models import HealthOut
from .routes import router

SERVICE_NAME = "Encrypted HLS Static Server"

app = FastAPI(title="enchls")

# ---------- CORS ----------
# Read allowed origins from env; for dev: http://localhost:3000
origins = [o.strip() for o in config.CORS_ORIGINS.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "X-API-Key",
        "Range",
    ],
)

# ---------- Health ----------
@app.get("/health", response_model=HealthOut)
def health():
    return {
        "status": "ok",
        "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(),
        "service": SERVICE_NAME,
    }

@app.get("/healthz", response_model=HealthOut)
def healthz():
    # Alias commonly used by probes
    return health()

app.include_router(router)

# ---------- Encrypted assets (manifests, .enc segments) ----------
app.mount("/output", StaticFiles(directory=config.OUTPUT_DIR, check_dir=False), name="output")
