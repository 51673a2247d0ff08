import threading
from pathlib import Path

from botocore.exceptions import ClientError

from api.errors import ThumbnailError, TranscodeError


class FakeTranscoder:
    """
    Stands in for ffmpeg. Copies input bytes to the output so each job's
    artifact can be traced back to its upload. `fail_on` picks a stage to break.
    """

    def __init__(self, fail_on=None, exc=None):
        self.fail_on = fail_on
        self.exc = exc
        self.calls = []
        self._lock = threading.Lock()

    def transcode(self, input_path, output_path, watermark):
        with self._lock:
            self.calls.append(("transcode", Path(input_path), Path(output_path), watermark))
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_bytes(Path(input_path).read_bytes())
        if self.fail_on == "transcode":
            raise self.exc or TranscodeError("ffmpeg exited with status 1")

    def extract_thumbnail(self, input_path, output_path):
        with self._lock:
            self.calls.append(("thumbnail", Path(input_path), Path(output_path)))
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_bytes(b"thumb:" + Path(input_path).read_bytes())
        if self.fail_on == "thumbnail":
            raise self.exc or ThumbnailError("ffmpeg exited with status 1")


class RecordingS3Client:
    """Minimal put_object-only client that remembers what it stored."""

    def __init__(self, fail_keys=()):
        self.fail_keys = set(fail_keys)
        self.objects = {}
        self._lock = threading.Lock()

    def put_object(self, Bucket, Key, Body, ContentType):
        if Key.split("/")[0] in self.fail_keys or Key in self.fail_keys:
            raise ClientError({"Error": {"Code": "InternalError", "Message": "store unavailable"}}, "PutObject")
        with self._lock:
            self.objects[Key] = (Bucket, Body, ContentType)
        return {}


def files_under(root) -> list[Path]:
    root = Path(root)
    if not root.exists():
        return []
    return [p for p in root.rglob("*") if p.is_file()]
