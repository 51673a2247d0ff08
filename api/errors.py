class PipelineError(Exception):
    """
    A job stage failed. Carries the stage name and a human-readable cause
    that is safe to hand back to the caller (no local paths).
    """
    stage = "processing"

    def __init__(self, cause: str):
        super().__init__(cause)
        self.cause = cause

    def __str__(self):
        return f"{self.stage}: {self.cause}"


class TranscodeError(PipelineError):
    stage = "transcoding"


class ThumbnailError(PipelineError):
    stage = "thumbnail"


class PublishError(PipelineError):
    """
    One or more artifact uploads failed. `failures` maps remote key -> cause
    for every artifact that did not make it; siblings that did are left as-is.
    """
    stage = "upload"

    def __init__(self, cause: str, failures: dict | None = None):
        super().__init__(cause)
        self.failures = failures or {}

    @classmethod
    def aggregate(cls, failures: dict) -> "PublishError":
        cause = "; ".join(f"{key}: {err}" for key, err in failures.items())
        return cls(cause, failures=failures)


class CleanupWarning(UserWarning):
    """Temp file could not be removed. Logged only; never fails a job."""
