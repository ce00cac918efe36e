"""
Content-management API client.

Uploads cropped images as the ``image`` field of project and client
records, and lists existing records, contact form submissions and
newsletter subscriptions:

    GET  /api/projects   -> [{id, name, description, image}, ...]
    POST /api/projects   multipart: name, description, image
    GET  /api/clients    -> [{id, name, description, designation, image}, ...]
    POST /api/clients    multipart: name, description, designation, image
    GET  /api/contacts   -> [{id, full_name, email, mobile_number, city, created_at}, ...]
    GET  /api/newsletter -> [{id, email, created_at}, ...]

Stored ``image`` values are server-relative paths (``/uploads/...``); use
``image_url`` to resolve them.  Requests are not retried; the caller decides
whether to re-submit.
"""

import logging
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional

import requests

from flipr_cropper.config import (
    API_BASE_URL, REQUEST_TIMEOUT, UPLOAD_ALLOWED_EXTENSIONS, UPLOAD_ALLOWED_MIME,
    UPLOAD_MAX_BYTES,
)
from flipr_cropper.exceptions import UploadError
from flipr_cropper.models import OutputImage

logger = logging.getLogger(__name__)


class ApiClient:
    """
    Client for the marketing site's admin endpoints.

    Owns a ``requests.Session``; close it with ``close()`` or use the client
    as a context manager.
    """

    def __init__(self, base_url: str = None, timeout: int = None, session: requests.Session = None):
        """
        Args:
            base_url: API root, e.g. ``http://localhost:5001`` (uses FLIPR_API_URL if not provided)
            timeout: Request timeout in seconds (uses FLIPR_REQUEST_TIMEOUT if not provided)
            session: Pre-configured session, mainly for tests
        """
        self.base_url = (base_url or API_BASE_URL).rstrip('/')
        self.timeout = timeout or REQUEST_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/json'})

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    # ==================== REQUESTS ====================

    def _make_request(self, method: str, endpoint: str, data: dict = None, files: dict = None) -> Any:
        """Send a request and return the decoded JSON body.

        Raises ``UploadError`` on transport failures and non-2xx responses.
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(
                method=method,
                url=url,
                data=data,
                files=files,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UploadError(f"Request to {url} failed: {e}") from e

        try:
            response_data = response.json()
        except ValueError:
            raw_text = (response.text or '').strip()
            response_data = {'raw': raw_text[:500]}

        if not response.ok:
            error_msg = None
            if isinstance(response_data, dict):
                error_msg = response_data.get('error') or response_data.get('message') or response_data.get('raw')
            raise UploadError(
                message=error_msg or f'HTTP {response.status_code}',
                status_code=response.status_code,
                response=response_data,
            )
        return response_data

    # ==================== VALIDATION ====================

    @staticmethod
    def validate_image(image: OutputImage) -> None:
        """Check *image* against the endpoint's upload limits."""
        if not image.data:
            raise UploadError("Image is empty")
        if image.size_bytes > UPLOAD_MAX_BYTES:
            raise UploadError(
                f"Image is {image.size_bytes} bytes; the server accepts at most {UPLOAD_MAX_BYTES}"
            )
        ext = PurePosixPath(image.filename).suffix.lower()
        if ext not in UPLOAD_ALLOWED_EXTENSIONS or image.mime_type not in UPLOAD_ALLOWED_MIME:
            raise UploadError(f"Only image files are allowed (got {image.filename}, {image.mime_type})")

    @staticmethod
    def _require_fields(**fields: str) -> Dict[str, str]:
        missing = [name for name, value in fields.items() if not value or not str(value).strip()]
        if missing:
            raise UploadError(f"Missing required field(s): {', '.join(missing)}")
        return {name: str(value).strip() for name, value in fields.items()}

    def _post_record(self, endpoint: str, image: OutputImage, **fields: str) -> Dict[str, Any]:
        if image is None:
            raise UploadError("Please select and crop an image")
        data = self._require_fields(**fields)
        self.validate_image(image)
        files = {'image': (image.filename, image.data, image.mime_type)}
        result = self._make_request('POST', endpoint, data=data, files=files)
        logger.info("Created %s record %s (%s)", endpoint.rsplit('/', 1)[-1], result.get('id'), result.get('image'))
        return result

    # ==================== PROJECTS ====================

    def get_projects(self) -> List[Dict[str, Any]]:
        return self._make_request('GET', '/api/projects')

    def add_project(self, name: str, description: str, image: OutputImage) -> Dict[str, Any]:
        """Create a project record; returns ``{id, name, description, image}``."""
        return self._post_record('/api/projects', image, name=name, description=description)

    # ==================== CLIENTS ====================

    def get_clients(self) -> List[Dict[str, Any]]:
        return self._make_request('GET', '/api/clients')

    def add_client(self, name: str, description: str, designation: str, image: OutputImage) -> Dict[str, Any]:
        """Create a client record; returns ``{id, name, description, designation, image}``."""
        return self._post_record(
            '/api/clients', image, name=name, description=description, designation=designation,
        )

    # ==================== SUBMISSIONS ====================

    def get_contacts(self) -> List[Dict[str, Any]]:
        """Contact form submissions, newest first."""
        return self._make_request('GET', '/api/contacts')

    def get_newsletter_subscriptions(self) -> List[Dict[str, Any]]:
        """Newsletter subscriptions, newest first."""
        return self._make_request('GET', '/api/newsletter')

    # ==================== HELPERS ====================

    def image_url(self, path: Optional[str]) -> str:
        """Resolve a stored image path against the API root."""
        if not path:
            return ''
        if path.startswith(('http://', 'https://')):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"
