"""Small path helpers."""

from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Create ``path`` (and parents) if needed and return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path(data_dir: str = "~/.notebot/data") -> Path:
    """Expanded data directory, created on first use."""
    return ensure_dir(Path(data_dir).expanduser())
