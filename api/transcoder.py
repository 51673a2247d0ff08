import logging
import subprocess
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .errors import ThumbnailError, TranscodeError

logger = logging.getLogger(__name__)

TARGET_HEIGHT = 720
THUMBNAIL_SIZE = (640, 360)

# Watermark: 200px wide, 30% opacity, 10px in from the bottom-right corner
WATERMARK_WIDTH = 200
WATERMARK_OPACITY = 0.3
WATERMARK_MARGIN = 10

# libx264 quality/speed profile; faststart moves the moov atom up front for progressive playback
ENCODE_ARGS = [
    "-vcodec", "libx264",
    "-crf", "28",
    "-preset", "fast",
    "-movflags", "+faststart",
]


def watermark_available(path) -> bool:
    """True if `path` exists and is an image Pillow can read."""
    path = Path(path)
    if not path.is_file():
        return False
    try:
        with Image.open(path) as img:
            img.verify()
    except (UnidentifiedImageError, OSError) as e:
        logger.warning("Watermark %s is not a readable image: %s", path, e)
        return False
    return True


def build_transcode_command(
    input_path,
    output_path,
    watermark_path=None,
    *,
    binary: str = "ffmpeg",
    threads: int = 2,
) -> list[str]:
    """
    ffmpeg argv for the 720p H.264 encode. With `watermark_path` the image is
    overlaid bottom-right; without it the video is only scaled.
    """
    scale = f"scale=-2:{TARGET_HEIGHT}"
    cmd = [binary, "-i", str(input_path)]

    if watermark_path is not None:
        graph = (
            f"[1]scale={WATERMARK_WIDTH}:-1,format=rgba,colorchannelmixer=aa={WATERMARK_OPACITY}[wm];"
            f"[0:v]{scale}[scaled];"
            f"[scaled][wm]overlay=W-w-{WATERMARK_MARGIN}:H-h-{WATERMARK_MARGIN}"
        )
        cmd += ["-i", str(watermark_path), "-filter_complex", graph]
    else:
        cmd += ["-vf", scale]

    cmd += ENCODE_ARGS
    cmd += ["-threads", str(threads), "-y", str(output_path)]
    return cmd


def build_thumbnail_command(input_path, output_path, *, binary: str = "ffmpeg", threads: int = 2) -> list[str]:
    """ffmpeg argv that writes the first decoded frame as a single still."""
    width, height = THUMBNAIL_SIZE
    return [
        binary,
        "-i", str(input_path),
        "-vf", rf"select=eq(n\,0),scale={width}:{height}",
        "-frames:v", "1",
        "-threads", str(threads),
        "-y",
        str(output_path),
    ]


class FFmpegTranscoder:
    """
    Runs ffmpeg as a child process (argument list, no shell) and reduces the
    outcome to pass/fail: exit code 0 and the output file exists.
    """

    def __init__(self, *, binary="ffmpeg", threads=2, timeout=None, watermark_path=None):
        self.binary = binary
        self.threads = threads
        self.timeout = timeout
        self.watermark_path = Path(watermark_path) if watermark_path else None

    def transcode(self, input_path, output_path, watermark: bool):
        if watermark and self.watermark_path is None:
            raise TranscodeError("watermark requested but no watermark image is configured")
        cmd = build_transcode_command(
            input_path,
            output_path,
            self.watermark_path if watermark else None,
            binary=self.binary,
            threads=self.threads,
        )
        self._run(cmd, Path(output_path), TranscodeError)

    def extract_thumbnail(self, input_path, output_path):
        cmd = build_thumbnail_command(input_path, output_path, binary=self.binary, threads=self.threads)
        self._run(cmd, Path(output_path), ThumbnailError)

    def _run(self, cmd: list[str], output_path: Path, error_cls):
        output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise error_cls(f"ffmpeg timed out after {self.timeout}s")
        except FileNotFoundError:
            raise error_cls(f"ffmpeg binary not found: {self.binary}")

        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="ignore") if proc.stderr else ""
            logger.error("ffmpeg exited with %s: %s", proc.returncode, stderr[-2000:])
            raise error_cls(f"ffmpeg exited with status {proc.returncode}")
        if not output_path.exists():
            raise error_cls("ffmpeg produced no output file")
