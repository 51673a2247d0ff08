import logging

from django.conf import settings
from django.utils import timezone
from rest_framework import status, views
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from .authentication import SharedSecretAuthentication
from .exceptions import PayloadTooLarge
from .errors import PipelineError
from .models import Job, new_job_id
from .pipeline import build_pipeline
from .serializers import VideoUploadSerializer
from .utils import save_uploaded_file

logger = logging.getLogger(__name__)


class HealthView(views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        return Response({"status": "healthy", "timestamp": timezone.now().isoformat()})


class ProcessVideoView(views.APIView):
    """
    Accepts a multipart `video` upload, runs it through the pipeline
    synchronously, and answers with the published URLs.
    """
    authentication_classes = [SharedSecretAuthentication]
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        data = request.data
        # Set by MaxSizeUploadHandler when it cut the body off mid-file
        if getattr(request, "upload_too_large", False):
            raise PayloadTooLarge(f"Video file exceeds the {settings.MAX_UPLOAD_SIZE // (1024 * 1024)} MiB limit.")
        ser = VideoUploadSerializer(data=data)
        ser.is_valid(raise_exception=True)

        pipeline = build_pipeline()
        job_id = new_job_id()
        upload = ser.validated_data["video"]
        logger.info("Received %s bytes for job %s", upload.size, job_id)
        input_path = save_uploaded_file(upload, job_id, pipeline.tmp_dir)
        job = Job(id=job_id, input_path=input_path)

        try:
            result = pipeline.process(job)
        except PipelineError as e:
            return Response(
                {"error": "Video processing failed", "details": str(e)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response({
            "success": True,
            "uuid": result.job_id,
            "url": result.video_url,
            "thumbnail": result.thumbnail_url,
            "message": "Video processed successfully",
        })
