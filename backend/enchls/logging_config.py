import logging
import sys

def setup_logging(level=logging.INFO):
    """Configure root logger for the enchls tools and service."""
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        "%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    handler.set_name("enchls")

    root = logging.getLogger()
    root.setLevel(level)
    for old in [h for h in root.handlers if h.get_name() == "enchls"]:
        root.removeHandler(old)
    root.addHandler(handler)

    # silence noisy libraries if needed
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("cryptography").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
