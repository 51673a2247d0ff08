"""
Job orchestration: transcode -> thumbnail -> concurrent upload -> cleanup.

One VideoPipeline is built per process and shared by every request. It holds
no per-job state; everything a job touches is named after the job id, so
concurrent jobs never share a path.
"""

import logging
from functools import lru_cache
from pathlib import Path

from django.conf import settings

from .errors import PipelineError, PublishError, ThumbnailError, TranscodeError
from .models import ArtifactRef, Job, JobResult, JobState
from .s3 import ArtifactPublisher, content_type_for, get_s3_client
from .transcoder import FFmpegTranscoder, watermark_available
from .utils import cleanup_paths

logger = logging.getLogger(__name__)


def video_key(job_id: str) -> str:
    return f"videos/{job_id}.mp4"


def thumbnail_key(job_id: str) -> str:
    return f"thumbnails/{job_id}.webp"


class VideoPipeline:
    def __init__(self, transcoder, publisher, tmp_dir, *, watermark: bool = False):
        self.transcoder = transcoder
        self.publisher = publisher
        self.tmp_dir = Path(tmp_dir)
        # Resolved once when the pipeline is built, not per request
        self.watermark = watermark

    def output_path(self, job_id: str) -> Path:
        return self.tmp_dir / "processed" / f"{job_id}.mp4"

    def thumbnail_path(self, job_id: str) -> Path:
        return self.tmp_dir / "thumbnails" / f"{job_id}.webp"

    def process(self, job: Job) -> JobResult:
        """
        Drive `job` to COMPLETED and return its URLs, or mark it FAILED and
        re-raise the stage error. Temp files are removed on every path out.
        """
        job.output_path = self.output_path(job.id)
        job.thumbnail_path = self.thumbnail_path(job.id)
        logger.info("Processing job %s", job.id)

        try:
            self._run_stage(job, JobState.TRANSCODING, TranscodeError, self._transcode, job)
            self._run_stage(job, JobState.THUMBNAIL_EXTRACTING, ThumbnailError, self._thumbnail, job)
            video_url, thumbnail_url = self._run_stage(job, JobState.UPLOADING, PublishError, self._publish, job)

            job.result = JobResult(job_id=job.id, video_url=video_url, thumbnail_url=thumbnail_url)
            job.advance(JobState.COMPLETED)
            logger.info("Job %s completed", job.id)
            return job.result

        except PipelineError as e:
            job.fail(e.stage, e.cause)
            logger.error("Job %s failed during %s: %s", job.id, e.stage, e.cause)
            raise
        finally:
            for warning in cleanup_paths(job.temp_paths()):
                logger.warning("Job %s: %s", job.id, warning)

    def _run_stage(self, job, state, error_cls, func, *args):
        job.advance(state)
        try:
            return func(*args)
        except PipelineError:
            raise
        except Exception as e:
            # Keep the cause generic: the message may carry local paths
            logger.exception("Unexpected error in job %s during %s", job.id, state)
            raise error_cls(f"unexpected {type(e).__name__}") from e

    def _transcode(self, job: Job):
        if not self.watermark:
            logger.warning("Watermark image not found, processing job %s without watermark", job.id)
        self.transcoder.transcode(job.input_path, job.output_path, watermark=self.watermark)

    def _thumbnail(self, job: Job):
        # From the transcoded output, not the original upload
        self.transcoder.extract_thumbnail(job.output_path, job.thumbnail_path)

    def _publish(self, job: Job):
        artifacts = [
            ArtifactRef(job.output_path, video_key(job.id), content_type_for(video_key(job.id))),
            ArtifactRef(job.thumbnail_path, thumbnail_key(job.id), content_type_for(thumbnail_key(job.id))),
        ]
        return self.publisher.publish_all(artifacts)


@lru_cache(maxsize=None)
def build_pipeline() -> VideoPipeline:
    """Process-wide pipeline wired from settings. Built on first use."""
    watermark = watermark_available(settings.WATERMARK_PATH)
    if not watermark:
        logger.warning("Watermark image %s not found; videos will not be watermarked", settings.WATERMARK_PATH)

    transcoder = FFmpegTranscoder(
        binary=settings.FFMPEG_BINARY,
        threads=settings.FFMPEG_THREADS,
        timeout=settings.FFMPEG_TIMEOUT_SECONDS,
        watermark_path=settings.WATERMARK_PATH if watermark else None,
    )
    publisher = ArtifactPublisher(
        client=get_s3_client(),
        bucket=settings.S3_BUCKET,
        public_base_url=settings.S3_PUBLIC_BASE_URL,
    )
    return VideoPipeline(transcoder, publisher, settings.VIDEO_TMP_DIR, watermark=watermark)
