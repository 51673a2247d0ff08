from django.conf import settings
from rest_framework import serializers

from .exceptions import PayloadTooLarge


class VideoUploadSerializer(serializers.Serializer):
    video = serializers.FileField(
        error_messages={
            "required": "No video file provided",
            "null": "No video file provided",
        },
    )

    def validate_video(self, value):
        if value.size > settings.MAX_UPLOAD_SIZE:
            raise PayloadTooLarge(
                f"Video file exceeds the {settings.MAX_UPLOAD_SIZE // (1024 * 1024)} MiB limit."
            )
        return value
