from django.conf import settings
from django.core.files.uploadhandler import FileUploadHandler, StopUpload


class MaxSizeUploadHandler(FileUploadHandler):
    """
    Stops reading the request body as soon as a file grows past
    MAX_UPLOAD_SIZE, so an oversized upload is never spooled to disk in full.
    Must come first in FILE_UPLOAD_HANDLERS. Sets `upload_too_large` on the
    request for the view to turn into a 413.
    """

    def receive_data_chunk(self, raw_data, start):
        if start + len(raw_data) > settings.MAX_UPLOAD_SIZE:
            if self.request is not None:
                self.request.upload_too_large = True
            raise StopUpload(connection_reset=True)
        return raw_data

    def file_complete(self, file_size):
        # The handlers after this one build the uploaded file
        return None
