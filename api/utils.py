from pathlib import Path

from .errors import CleanupWarning


def save_uploaded_file(djangofile, job_id: str, tmp_dir) -> Path:
    """
    Save to <tmp_dir>/uploads/<job_id> and return the path.
    The client's filename is never used on disk.
    """
    uploads_dir = Path(tmp_dir) / "uploads"
    uploads_dir.mkdir(parents=True, exist_ok=True)
    dest = uploads_dir / job_id
    try:
        with open(dest, "wb") as f:
            for chunk in djangofile.chunks():
                f.write(chunk)
    except BaseException:
        dest.unlink(missing_ok=True)
        raise
    return dest


def cleanup_paths(paths) -> list[CleanupWarning]:
    """
    Delete each path independently. A failure on one file does not stop the
    rest; it comes back as a CleanupWarning for the caller to log.
    """
    warnings = []
    for path in paths:
        try:
            Path(path).unlink(missing_ok=True)
        except Exception as e:
            warnings.append(CleanupWarning(f"Failed to clean up {Path(path).name}: {e}"))
    return warnings
