"""
Tests for api/pipeline.py

The transcoder is a fake that copies bytes around; the publisher is real,
backed by an in-memory S3 client.
"""

import tempfile
from pathlib import Path
from unittest.mock import patch

from django.test import SimpleTestCase

from api.concurrency import run_concurrently
from api.errors import PublishError, ThumbnailError, TranscodeError
from api.models import Job, JobState
from api.pipeline import VideoPipeline
from api.s3 import ArtifactPublisher
from api.tests.helpers import FakeTranscoder, RecordingS3Client, files_under
from api.utils import cleanup_paths

BASE = "https://cdn.example.com"


class VideoPipelineTest(SimpleTestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def _pipeline(self, transcoder=None, client=None, watermark=True):
        self.transcoder = transcoder or FakeTranscoder()
        self.client = client or RecordingS3Client()
        publisher = ArtifactPublisher(self.client, "bucket", BASE)
        return VideoPipeline(self.transcoder, publisher, self.tmp, watermark=watermark)

    def _job(self, content=b"raw-video"):
        job = Job(input_path=self.tmp / "uploads" / "pending")
        job.input_path = self.tmp / "uploads" / job.id
        job.input_path.parent.mkdir(parents=True, exist_ok=True)
        job.input_path.write_bytes(content)
        return job

    def assertCleanedUp(self, job):
        for path in (job.input_path, job.output_path, job.thumbnail_path):
            self.assertFalse(path.exists(), f"{path} was left behind")
        self.assertEqual(files_under(self.tmp), [])

    def test_success(self):
        pipeline = self._pipeline()
        job = self._job()

        result = pipeline.process(job)

        self.assertEqual(result.video_url, f"{BASE}/videos/{job.id}.mp4")
        self.assertEqual(result.thumbnail_url, f"{BASE}/thumbnails/{job.id}.webp")
        self.assertEqual(job.state, JobState.COMPLETED)
        self.assertEqual(job.result, result)
        self.assertEqual(self.client.objects[f"videos/{job.id}.mp4"], ("bucket", b"raw-video", "video/mp4"))
        self.assertEqual(self.client.objects[f"thumbnails/{job.id}.webp"][2], "image/webp")
        self.assertCleanedUp(job)

    def test_paths_are_named_after_job(self):
        pipeline = self._pipeline()
        job = self._job()
        pipeline.process(job)
        self.assertEqual(job.output_path, self.tmp / "processed" / f"{job.id}.mp4")
        self.assertEqual(job.thumbnail_path, self.tmp / "thumbnails" / f"{job.id}.webp")

    def test_thumbnail_comes_from_transcoded_output(self):
        pipeline = self._pipeline()
        job = self._job()
        pipeline.process(job)

        (transcode, _, out, _), (thumb, thumb_in, _) = self.transcoder.calls
        self.assertEqual((transcode, thumb), ("transcode", "thumbnail"))
        self.assertEqual(thumb_in, out)

    def test_watermark_present_uses_watermark_branch(self):
        pipeline = self._pipeline(watermark=True)
        pipeline.process(self._job())
        self.assertTrue(self.transcoder.calls[0][3])

    def test_watermark_absent_still_succeeds(self):
        pipeline = self._pipeline(watermark=False)
        job = self._job()
        with self.assertLogs("api.pipeline", "WARNING") as logs:
            pipeline.process(job)

        self.assertFalse(self.transcoder.calls[0][3])
        self.assertEqual(job.state, JobState.COMPLETED)
        self.assertTrue(any("without watermark" in line for line in logs.output))

    def test_transcode_failure_cleans_up(self):
        pipeline = self._pipeline(FakeTranscoder(fail_on="transcode"))
        job = self._job()

        with self.assertRaises(TranscodeError):
            pipeline.process(job)

        self.assertEqual(job.state, JobState.FAILED)
        self.assertEqual(job.failed_stage, "transcoding")
        self.assertEqual(self.client.objects, {})
        self.assertCleanedUp(job)

    def test_thumbnail_failure_cleans_up(self):
        pipeline = self._pipeline(FakeTranscoder(fail_on="thumbnail"))
        job = self._job()

        with self.assertRaises(ThumbnailError):
            pipeline.process(job)

        self.assertEqual(job.failed_stage, "thumbnail")
        self.assertEqual(self.client.objects, {})
        self.assertCleanedUp(job)

    def test_partial_upload_failure_fails_job(self):
        pipeline = self._pipeline(client=RecordingS3Client(fail_keys={"videos"}))
        job = self._job()

        with self.assertRaises(PublishError) as ctx:
            pipeline.process(job)

        self.assertEqual(job.failed_stage, "upload")
        self.assertEqual(list(ctx.exception.failures), [f"videos/{job.id}.mp4"])
        # The thumbnail that did upload is left where it is
        self.assertIn(f"thumbnails/{job.id}.webp", self.client.objects)
        self.assertIsNone(job.result)
        self.assertCleanedUp(job)

    def test_both_uploads_fail(self):
        pipeline = self._pipeline(client=RecordingS3Client(fail_keys={"videos", "thumbnails"}))
        job = self._job()

        with self.assertRaises(PublishError) as ctx:
            pipeline.process(job)

        self.assertEqual(len(ctx.exception.failures), 2)
        self.assertCleanedUp(job)

    def test_unexpected_error_is_wrapped_without_detail(self):
        transcoder = FakeTranscoder(fail_on="transcode", exc=OSError(f"disk full at {self.tmp}"))
        pipeline = self._pipeline(transcoder)
        job = self._job()

        with self.assertLogs("api.pipeline", "ERROR"):
            with self.assertRaises(TranscodeError) as ctx:
                pipeline.process(job)

        self.assertNotIn(str(self.tmp), str(ctx.exception))
        self.assertCleanedUp(job)

    def test_cleanup_failure_does_not_change_outcome(self):
        pipeline = self._pipeline()
        job = self._job()
        warning_paths = []

        def failing_cleanup(paths):
            paths = list(paths)
            warning_paths.extend(paths)
            for path in paths[1:]:
                path.unlink(missing_ok=True)
            return [Warning("could not remove input")]

        with patch("api.pipeline.cleanup_paths", side_effect=failing_cleanup):
            with self.assertLogs("api.pipeline", "WARNING"):
                result = pipeline.process(job)

        self.assertEqual(job.state, JobState.COMPLETED)
        self.assertEqual(result.job_id, job.id)
        self.assertEqual(len(warning_paths), 3)

    def test_concurrent_jobs_keep_their_own_files(self):
        pipeline = self._pipeline()
        jobs = [self._job(content=f"video-{i}".encode()) for i in range(6)]

        outcomes = run_concurrently([lambda j=job: pipeline.process(j) for job in jobs])

        self.assertTrue(all(o.ok for o in outcomes))
        self.assertEqual(len({job.id for job in jobs}), len(jobs))
        self.assertEqual(len({o.value.video_url for o in outcomes}), len(jobs))
        for i, job in enumerate(jobs):
            body = self.client.objects[f"videos/{job.id}.mp4"][1]
            self.assertEqual(body, f"video-{i}".encode())
        self.assertEqual(files_under(self.tmp), [])


class JobStateTest(SimpleTestCase):

    def test_forward_only(self):
        job = Job(input_path=Path("/tmp/x"))
        job.advance(JobState.TRANSCODING)
        job.advance(JobState.THUMBNAIL_EXTRACTING)
        with self.assertRaises(ValueError):
            job.advance(JobState.TRANSCODING)

    def test_failed_is_absorbing(self):
        job = Job(input_path=Path("/tmp/x"))
        job.advance(JobState.TRANSCODING)
        job.fail("transcoding", "boom")
        with self.assertRaises(ValueError):
            job.advance(JobState.THUMBNAIL_EXTRACTING)

    def test_cannot_fail_before_starting(self):
        with self.assertRaises(ValueError):
            Job(input_path=Path("/tmp/x")).fail("transcoding", "boom")

    def test_ids_are_unique(self):
        ids = {Job(input_path=Path("/tmp/x")).id for _ in range(1000)}
        self.assertEqual(len(ids), 1000)


class CleanupPathsTest(SimpleTestCase):

    def test_one_failure_does_not_stop_the_rest(self):
        with tempfile.TemporaryDirectory() as tmp:
            tmp = Path(tmp)
            first, last = tmp / "a", tmp / "c"
            first.write_bytes(b"a")
            last.write_bytes(b"c")
            stuck = tmp / "b"
            stuck.mkdir()  # unlink() on a directory raises

            warnings = cleanup_paths([first, stuck, last, tmp / "never-created"])

            self.assertFalse(first.exists())
            self.assertFalse(last.exists())
            self.assertEqual(len(warnings), 1)
            self.assertIn("b", str(warnings[0]))
