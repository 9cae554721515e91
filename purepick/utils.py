"""Helpers: ids, timestamps and file I/O for the CLI and UI shells."""
import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from purepick.schemas import Product, UserProfile


def generate_run_id() -> str:
    """Return a unique run ID (UUID)."""
    return str(uuid.uuid4())


def generate_product_id() -> str:
    """Unique, time-derived product id (UUID1: timestamp + node + clock sequence)."""
    return uuid.uuid1().hex


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def read_text(path: str | Path) -> str:
    """Read OCR/label text from file. Raises FileNotFoundError if missing."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Text file not found: {path}")
    return p.read_text(encoding="utf-8")


def read_profile(path: str | Path | None) -> UserProfile | None:
    """Load a UserProfile from JSON; None when no path is given."""
    if not path:
        return None
    return UserProfile.model_validate(json.loads(read_text(path)))


def read_product(path: str | Path) -> Product:
    return Product.model_validate_json(read_text(path))


def ensure_output_dir(base_out: str | Path, run_id: str) -> Path:
    """Create outputs/<run_id>/ and return the path."""
    out_dir = Path(base_out) / run_id
    out_dir.mkdir(parents=True, exist_ok=True)
    return out_dir
