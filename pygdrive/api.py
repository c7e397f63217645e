"""API client for Google Drive."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, BinaryIO, Callable, TypeVar

import httpx

from .config import config
from .exceptions import (
    GDriveAPIError,
    GDriveAuthenticationError,
    GDriveConfigError,
    GDriveInvalidResponseError,
    GDriveNetworkError,
    GDriveNotFoundError,
    GDrivePermissionError,
    GDriveRateLimitError,
    GDriveServerError,
    GDriveUploadError,
)
from .models import ENTRY_FIELDS, DriveEntry, FileListPage
from .retry import BackoffPolicy
from .utils import FOLDER_MIME_TYPE, escape_query_value

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Largest page the files.list endpoint accepts
MAX_PAGE_SIZE = 1000

# HTTP status returned by the upload endpoint for an acknowledged chunk
RESUME_INCOMPLETE = 308

RATE_LIMIT_REASONS = {"rateLimitExceeded", "userRateLimitExceeded"}


class DriveClient:
    """Client for the Google Drive v3 REST API.

    Only the calls needed to resolve paths and push content are implemented.
    Every call is issued synchronously; transient failures (network errors,
    HTTP 5xx and 429) are retried according to a :class:`BackoffPolicy`.
    """

    def __init__(
        self,
        access_token: str | None = None,
        api_url: str | None = None,
        upload_url: str | None = None,
        backoff: BackoffPolicy | None = None,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize Drive API client.

        Args:
            access_token: OAuth access token (uses config if not provided)
            api_url: Metadata API base URL (uses config if not provided)
            upload_url: Upload API base URL (uses config if not provided)
            backoff: Retry policy for metadata requests
                (default: BackoffPolicy.for_requests())
            timeout: Request timeout in seconds (default: 60.0)
            transport: Optional httpx transport, e.g. httpx.MockTransport
        """
        self.access_token = access_token or config.access_token
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.upload_url = (upload_url or config.upload_url).rstrip("/")
        self.backoff = backoff or BackoffPolicy.for_requests()
        self.timeout = timeout
        self._transport = transport

        if not self.access_token:
            raise GDriveConfigError(
                "Access token not configured. "
                "Please set the GDRIVE_ACCESS_TOKEN environment variable."
            )

        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> DriveClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # =========================
    # Low level request handling
    # =========================

    def _error_from_response(self, response: httpx.Response) -> GDriveAPIError:
        """Map an error response to the matching exception.

        Args:
            response: Response with a 4xx or 5xx status code

        Returns:
            Exception instance (not raised)
        """
        status_code = response.status_code
        message = None
        reasons: set[str] = set()
        try:
            error_data = response.json().get("error")
            if isinstance(error_data, dict):
                message = error_data.get("message")
                reasons = {
                    e.get("reason", "")
                    for e in error_data.get("errors", [])
                    if isinstance(e, dict)
                }
            elif isinstance(error_data, str):
                message = error_data
        except (ValueError, AttributeError):
            # Body is not JSON, fall back to the status based message
            pass

        if status_code == 401:
            return GDriveAuthenticationError(
                message or "Invalid or expired access token"
            )
        if status_code == 429 or (status_code == 403 and reasons & RATE_LIMIT_REASONS):
            return GDriveRateLimitError(
                message or "Rate limit exceeded - please try again later"
            )
        if status_code == 403:
            return GDrivePermissionError(
                message or "Access forbidden - check your permissions"
            )
        if status_code == 404:
            return GDriveNotFoundError(message or "Resource not found")

        error_msg = f"API request failed with status {status_code}"
        if message:
            error_msg = f"{error_msg}: {message}"
        if 500 <= status_code < 600:
            return GDriveServerError(error_msg)
        return GDriveAPIError(error_msg)

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a single request without retrying.

        Responses with status >= 400 are converted to exceptions; everything
        else (including 308 from the upload endpoint) is returned as is.

        Raises:
            GDriveNetworkError: If no response was received
            GDriveAPIError: For error responses
        """
        try:
            response = self._get_client().request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise GDriveNetworkError(f"Network error: {e}") from e

        if response.status_code >= 400:
            raise self._error_from_response(response)
        return response

    def _with_retry(
        self,
        func: Callable[[], T],
        backoff: BackoffPolicy | None = None,
        message_callback: Callable[[str], None] | None = None,
    ) -> T:
        """Call ``func`` and retry it on transient errors.

        Args:
            func: Zero-argument callable issuing the request
            backoff: Retry policy (default: the client's policy)
            message_callback: Optional callback receiving retry messages

        Returns:
            Whatever ``func`` returns
        """
        policy = backoff or self.backoff
        attempt = 0
        while True:
            try:
                return func()
            except GDriveAPIError as e:
                if not e.transient or not policy.should_retry(attempt):
                    raise
                logger.warning(
                    "Transient error (attempt %d/%d): %s",
                    attempt + 1,
                    policy.max_retries,
                    e,
                )
                if message_callback:
                    message_callback(f"Retrying after error: {e}")
                policy.wait(attempt)
                attempt += 1

    @staticmethod
    def _parse_json(response: httpx.Response) -> Any:
        """Decode a JSON response body.

        Raises:
            GDriveAuthenticationError: If the server answered with HTML
            GDriveInvalidResponseError: If the body is not JSON
        """
        if not response.content:
            return {}

        content_type = response.headers.get("Content-Type", "")
        if "text/html" in content_type:
            # Login pages are served instead of JSON when the token is rejected
            raise GDriveAuthenticationError(
                "Invalid access token - server returned HTML instead of JSON"
            )
        try:
            return response.json()
        except ValueError as e:
            raise GDriveInvalidResponseError(
                "Invalid JSON response from server"
            ) from e

    def _request(
        self,
        method: str,
        endpoint: str,
        base_url: str | None = None,
        **kwargs: Any,
    ) -> Any:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            base_url: Base URL (default: the metadata API)
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data
        """
        url = f"{base_url or self.api_url}/{endpoint.lstrip('/')}"

        def do_request() -> httpx.Response:
            return self._send(method, url, **kwargs)

        return self._parse_json(self._with_retry(do_request))

    # =========================
    # Metadata operations
    # =========================

    def find(
        self,
        parent_id: str,
        name: str | None = None,
        trashed: bool = False,
        limit: int = 100,
    ) -> list[DriveEntry]:
        """List children of a folder, optionally filtered by exact name.

        Entries are returned in the API's listing order, which is not
        documented and must not be relied upon.

        Args:
            parent_id: ID of the parent folder ("root" for My Drive)
            name: Exact name to match (None for all children)
            trashed: Whether to list trashed (True) or live (False) entries
            limit: Maximum number of entries to return

        Returns:
            At most ``limit`` entries
        """
        clauses = [f"'{escape_query_value(parent_id)}' in parents"]
        if name is not None:
            clauses.append(f"name = '{escape_query_value(name)}'")
        clauses.append(f"trashed = {'true' if trashed else 'false'}")
        query = " and ".join(clauses)
        logger.debug("Listing files with query: %s", query)

        entries: list[DriveEntry] = []
        page_token: str | None = None
        while len(entries) < limit:
            params: dict[str, Any] = {
                "q": query,
                "pageSize": min(limit - len(entries), MAX_PAGE_SIZE),
                "fields": f"nextPageToken,files({ENTRY_FIELDS})",
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
            }
            if page_token:
                params["pageToken"] = page_token

            page = FileListPage.from_api_response(
                self._request("GET", "/files", params=params)
            )
            entries.extend(page.entries)
            page_token = page.next_page_token
            if not page_token:
                break

        return entries[:limit]

    def get_entry(self, file_id: str) -> DriveEntry:
        """Get metadata of a single entry.

        Args:
            file_id: Entry ID (or the "root" alias)

        Returns:
            DriveEntry for the ID
        """
        result = self._request(
            "GET",
            f"/files/{file_id}",
            params={"fields": ENTRY_FIELDS, "supportsAllDrives": "true"},
        )
        return DriveEntry.from_dict(result)

    def create_folder(self, name: str, parent_id: str) -> DriveEntry:
        """Create a folder.

        Folders are pure metadata objects, no content is sent.

        Args:
            name: Folder name
            parent_id: Parent folder ID

        Returns:
            The created folder
        """
        logger.debug("Creating folder %r in %s", name, parent_id)
        result = self._request(
            "POST",
            "/files",
            params={"fields": ENTRY_FIELDS, "supportsAllDrives": "true"},
            json={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
        )
        return DriveEntry.from_dict(result)

    # =========================
    # Upload operations
    # =========================

    def create_or_update_file(
        self,
        name: str,
        parent_id: str,
        mime_type: str,
        size: int,
        stream: BinaryIO,
        chunk_size: int,
        file_id: str | None = None,
        backoff: BackoffPolicy | None = None,
        progress_callback: Callable[[int, int], None] | None = None,
        message_callback: Callable[[str], None] | None = None,
        chunk_callback: Callable[[int, int, int], None] | None = None,
    ) -> DriveEntry:
        """Upload content as a new file, or as a new revision of ``file_id``.

        Files of at most ``chunk_size`` bytes are sent in a single multipart
        request. Larger files use a resumable session: one chunk at a time,
        resuming from the last offset acknowledged by the server after a
        transient failure.

        Args:
            name: Remote file name
            parent_id: Parent folder ID
            mime_type: MIME type of the content
            size: Number of bytes that will be read from ``stream``
            stream: Seekable binary stream positioned at the start
            chunk_size: Chunk size in bytes (multiple of 256 KiB)
            file_id: Existing file to update instead of creating a new one
            backoff: Retry policy for transient failures
                (default: BackoffPolicy.for_uploads())
            progress_callback: Optional callback(bytes_uploaded, total_bytes)
            message_callback: Optional callback(message) for retry notices
            chunk_callback: Optional callback(start, end, total) called for
                every acknowledged chunk

        Returns:
            The created or updated file
        """
        policy = backoff or BackoffPolicy.for_uploads()
        metadata: dict[str, Any] = {"name": name, "mimeType": mime_type}
        if file_id is None:
            metadata["parents"] = [parent_id]

        if size <= chunk_size:
            entry = self._upload_multipart(
                metadata, mime_type, stream, file_id, policy, message_callback
            )
            if progress_callback:
                progress_callback(size, size)
            return entry

        return self._upload_resumable(
            metadata,
            mime_type,
            size,
            stream,
            chunk_size,
            file_id,
            policy,
            progress_callback,
            message_callback,
            chunk_callback,
        )

    def _upload_target(self, file_id: str | None) -> tuple[str, str]:
        if file_id is None:
            return "POST", f"{self.upload_url}/files"
        return "PATCH", f"{self.upload_url}/files/{file_id}"

    def _upload_multipart(
        self,
        metadata: dict[str, Any],
        mime_type: str,
        stream: BinaryIO,
        file_id: str | None,
        policy: BackoffPolicy,
        message_callback: Callable[[str], None] | None,
    ) -> DriveEntry:
        """Upload metadata and content in one multipart/related request."""
        content = stream.read()
        boundary = f"pygdrive-{uuid.uuid4().hex}"
        body = b"".join(
            [
                f"--{boundary}\r\n".encode(),
                b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
                json.dumps(metadata).encode("utf-8"),
                f"\r\n--{boundary}\r\n".encode(),
                f"Content-Type: {mime_type}\r\n\r\n".encode(),
                content,
                f"\r\n--{boundary}--\r\n".encode(),
            ]
        )
        method, url = self._upload_target(file_id)
        params = {
            "uploadType": "multipart",
            "fields": ENTRY_FIELDS,
            "supportsAllDrives": "true",
        }
        headers = {"Content-Type": f"multipart/related; boundary={boundary}"}

        def do_upload() -> httpx.Response:
            return self._send(method, url, params=params, headers=headers, content=body)

        response = self._with_retry(do_upload, policy, message_callback)
        return DriveEntry.from_dict(self._parse_json(response))

    def _start_resumable_session(
        self,
        metadata: dict[str, Any],
        mime_type: str,
        size: int,
        file_id: str | None,
        policy: BackoffPolicy,
        message_callback: Callable[[str], None] | None,
    ) -> str:
        """Open a resumable upload session and return its URL."""
        method, url = self._upload_target(file_id)
        params = {
            "uploadType": "resumable",
            "fields": ENTRY_FIELDS,
            "supportsAllDrives": "true",
        }
        headers = {
            "X-Upload-Content-Type": mime_type,
            "X-Upload-Content-Length": str(size),
        }

        def do_start() -> httpx.Response:
            return self._send(
                method, url, params=params, headers=headers, json=metadata
            )

        response = self._with_retry(do_start, policy, message_callback)
        session_url = response.headers.get("Location")
        if not session_url:
            raise GDriveUploadError("Upload session response is missing a Location")
        return session_url

    @staticmethod
    def _acknowledged_offset(response: httpx.Response) -> int:
        """Return the next byte the server expects after a 308 response."""
        # Range: bytes=0-<last byte received>; absent when nothing was stored
        range_header = response.headers.get("Range")
        if not range_header:
            return 0
        try:
            return int(range_header.rsplit("-", 1)[1]) + 1
        except (IndexError, ValueError) as e:
            raise GDriveInvalidResponseError(
                f"Invalid Range header in upload response: {range_header}"
            ) from e

    def _send_chunk(
        self,
        session_url: str,
        stream: BinaryIO,
        offset: int,
        size: int,
        chunk_size: int,
    ) -> httpx.Response:
        stream.seek(offset)
        chunk = stream.read(chunk_size)
        if not chunk:
            raise GDriveUploadError(
                f"Local content ended at byte {offset}, expected {size} bytes"
            )
        end = offset + len(chunk) - 1
        headers = {
            "Content-Length": str(len(chunk)),
            "Content-Range": f"bytes {offset}-{end}/{size}",
        }
        logger.debug("Uploading chunk %d-%d/%d", offset, end, size)
        return self._send("PUT", session_url, headers=headers, content=chunk)

    def _query_offset(self, session_url: str, size: int) -> httpx.Response:
        """Ask the server how many bytes of the session it has stored."""
        headers = {"Content-Length": "0", "Content-Range": f"bytes */{size}"}
        return self._send("PUT", session_url, headers=headers)

    def _upload_resumable(
        self,
        metadata: dict[str, Any],
        mime_type: str,
        size: int,
        stream: BinaryIO,
        chunk_size: int,
        file_id: str | None,
        policy: BackoffPolicy,
        progress_callback: Callable[[int, int], None] | None,
        message_callback: Callable[[str], None] | None,
        chunk_callback: Callable[[int, int, int], None] | None,
    ) -> DriveEntry:
        """Upload content through a resumable session, one chunk at a time."""
        session_url = self._start_resumable_session(
            metadata, mime_type, size, file_id, policy, message_callback
        )

        offset = 0
        attempt = 0
        needs_status_query = False
        while True:
            try:
                if needs_status_query:
                    response = self._query_offset(session_url, size)
                else:
                    response = self._send_chunk(
                        session_url, stream, offset, size, chunk_size
                    )
            except GDriveNotFoundError as e:
                raise GDriveUploadError(
                    "Upload session expired, the upload must be restarted"
                ) from e
            except GDriveAPIError as e:
                if not e.transient or not policy.should_retry(attempt):
                    raise
                logger.warning(
                    "Chunk upload failed at offset %d (attempt %d): %s",
                    offset,
                    attempt + 1,
                    e,
                )
                if message_callback:
                    message_callback(f"Chunk upload failed at byte {offset}: {e}")
                policy.wait(attempt)
                attempt += 1
                needs_status_query = True
                continue

            if response.status_code in (200, 201):
                if progress_callback:
                    progress_callback(size, size)
                if chunk_callback and not needs_status_query:
                    chunk_callback(offset, size - 1, size)
                return DriveEntry.from_dict(self._parse_json(response))

            if response.status_code != RESUME_INCOMPLETE:
                raise GDriveUploadError(
                    f"Unexpected upload response status {response.status_code}"
                )

            new_offset = self._acknowledged_offset(response)
            if not needs_status_query and new_offset <= offset:
                # The chunk was not stored; count it as a failed attempt
                if not policy.should_retry(attempt):
                    raise GDriveUploadError(
                        f"Server did not acknowledge data after byte {offset}"
                    )
                policy.wait(attempt)
                attempt += 1
            elif new_offset > offset:
                if chunk_callback and not needs_status_query:
                    chunk_callback(offset, new_offset - 1, size)
                # Progress was made, start counting retries from scratch
                attempt = 0
            offset = new_offset
            needs_status_query = False
            if progress_callback:
                progress_callback(offset, size)
