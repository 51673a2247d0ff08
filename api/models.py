import uuid
from dataclasses import dataclass, field
from pathlib import Path

from django.db import models


class JobState(models.TextChoices):
    RECEIVED = "RECEIVED"
    TRANSCODING = "TRANSCODING"
    THUMBNAIL_EXTRACTING = "THUMBNAIL_EXTRACTING"
    UPLOADING = "UPLOADING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# Forward-only; FAILED is absorbing and only reachable from a working stage.
_TRANSITIONS = {
    JobState.RECEIVED: {JobState.TRANSCODING},
    JobState.TRANSCODING: {JobState.THUMBNAIL_EXTRACTING, JobState.FAILED},
    JobState.THUMBNAIL_EXTRACTING: {JobState.UPLOADING, JobState.FAILED},
    JobState.UPLOADING: {JobState.COMPLETED, JobState.FAILED},
    JobState.COMPLETED: set(),
    JobState.FAILED: set(),
}


def new_job_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ArtifactRef:
    """One local file to publish under `remote_key`."""
    local_path: Path
    remote_key: str
    content_type: str


@dataclass(frozen=True)
class JobResult:
    job_id: str
    video_url: str
    thumbnail_url: str


@dataclass
class Job:
    """
    One request's unit of work. Not persisted: lives for a single request.
    All temp paths are derived from `id` by the pipeline.
    """
    input_path: Path
    id: str = field(default_factory=new_job_id)
    output_path: Path | None = None
    thumbnail_path: Path | None = None
    state: JobState = JobState.RECEIVED
    failed_stage: str = ""
    error: str = ""
    result: JobResult | None = None

    def advance(self, state: JobState):
        if state not in _TRANSITIONS[self.state]:
            raise ValueError(f"Illegal job transition {self.state} -> {state}")
        self.state = state

    def fail(self, stage: str, cause: str):
        self.advance(JobState.FAILED)
        self.failed_stage = stage
        self.error = cause

    def temp_paths(self) -> list[Path]:
        return [p for p in (self.input_path, self.output_path, self.thumbnail_path) if p is not None]
