import hmac

from django.conf import settings
from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.exceptions import AuthenticationFailed


class CMSClient:
    """The one caller we know about: whoever holds CMS_SECRET."""
    is_authenticated = True


class SharedSecretAuthentication(BaseAuthentication):
    """
    `Authorization: Bearer <CMS_SECRET>` or 401. Runs before the request body
    is parsed, so a rejected upload never reaches disk.
    """
    keyword = "Bearer"

    def authenticate(self, request):
        secret = settings.CMS_SECRET
        header = get_authorization_header(request)
        expected = f"{self.keyword} {secret}".encode()
        if not secret or not hmac.compare_digest(header, expected):
            raise AuthenticationFailed("Unauthorized")
        return (CMSClient(), None)

    def authenticate_header(self, request):
        return self.keyword
