from django.urls import path
from .views import HealthView, ProcessVideoView

urlpatterns = [
    path("health", HealthView.as_view(), name="health"),
    path("process-video", ProcessVideoView.as_view(), name="process_video"),
]
