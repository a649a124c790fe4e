"""Async HTTP client for the MediaGrid upload server."""

import uuid
from typing import Optional

import httpx

from common.logging_config import get_logger
from common.types import FileInfo
from cli.config import Config
from cli.exceptions import ChunkUploadError, ResumeQueryError, UploadError
from cli.types import ChunkResult, SourceFile

logger = get_logger(__name__)


class UploadServerClient:
    """HTTP client for the upload server API with error mapping and request tracing."""

    def __init__(self, config: Config, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize server client.

        Args:
            config: Configuration instance
            transport: Optional httpx transport (tests pass MockTransport or ASGITransport)
        """
        self.config = config
        self.session = httpx.AsyncClient(
            base_url=config.get_base_url(),
            timeout=config.get_timeout(),
            transport=transport,
        )
        self.request_id = None
        logger.info(f"Initialized UploadServerClient [base_url={config.get_base_url()}]")

    async def close(self) -> None:
        await self.session.aclose()

    async def __aenter__(self) -> "UploadServerClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _calculate_upload_timeout(self, file_size: int) -> float:
        """
        Calculate timeout for a single-shot upload based on file size.

        Args:
            file_size: File size in bytes

        Returns:
            Timeout in seconds (30s base + 0.1s per MB)
        """
        base_timeout = 30.0
        size_mb = file_size / (1024 * 1024)
        size_factor = size_mb * 0.1
        return base_timeout + size_factor

    async def _request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """
        Send one request tagged with a fresh X-Request-ID.

        Raises:
            httpx.HTTPError: On network failure or timeout
        """
        self.request_id = str(uuid.uuid4())
        kwargs.setdefault('headers', {})
        kwargs['headers']['X-Request-ID'] = self.request_id

        logger.debug(f"Making request: {method} {endpoint} [request_id={self.request_id}]")

        response = await self.session.request(method, endpoint, **kwargs)

        logger.debug(
            f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
        )
        if response.status_code >= 400:
            logger.warning(
                f"Request failed: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
            )
        return response

    def _format_error(self, response: httpx.Response) -> str:
        """
        Map HTTP errors to user-friendly messages.

        Args:
            response: HTTP response object

        Returns:
            User-friendly error message including the server detail
        """
        try:
            error_data = response.json()
            detail = error_data.get('detail', 'Unknown error')
            code = error_data.get('code', 'UNKNOWN')
        except ValueError:
            detail = response.text if response.text else 'Unknown error'
            code = 'UNKNOWN'

        if not isinstance(detail, str):
            detail = str(detail)

        error_messages = {
            'INVALID_REQUEST': 'Invalid upload request',
            'INVALID_PATH': 'Target path is outside the uploads directory',
            'NOT_FOUND': 'File or folder not found on server',
            'PATH_CONFLICT': 'A file or folder with that name already exists',
            'CHUNK_TOO_LARGE': 'Chunk exceeds the server size limit',
            'CHUNK_WRITE_FAILED': 'Server could not store the chunk',
            'REASSEMBLY_FAILED': 'Server could not assemble the uploaded chunks',
            'FILE_OPERATION_FAILED': 'Server could not complete the file operation',
        }

        if code in error_messages:
            return f"{error_messages[code]}: {detail}"

        status_messages = {
            400: 'Bad request',
            404: 'Not found',
            413: 'Payload too large',
            500: 'Server error',
            503: 'Service unavailable',
            507: 'Insufficient storage',
        }

        message = status_messages.get(response.status_code, f"HTTP {response.status_code}")
        return f"{message}: {detail}"

    @staticmethod
    def _error_code(response: httpx.Response) -> Optional[str]:
        try:
            return response.json().get('code')
        except (ValueError, AttributeError):
            return None

    async def upload_chunk(
        self,
        filename: str,
        chunk_index: int,
        total_chunks: int,
        target_path: str,
        data: bytes,
        timeout: Optional[float] = None,
    ) -> ChunkResult:
        """
        Send one chunk.

        Args:
            filename: Client file name (the server sanitizes it)
            chunk_index: Zero-based index
            total_chunks: Declared chunk count
            target_path: Target directory on the server
            data: Chunk bytes
            timeout: Per-request timeout in seconds

        Returns:
            ChunkResult; ``complete`` is True once the server has reassembled the file

        Raises:
            ChunkUploadError: On network error, timeout or non-success status
        """
        params = {
            'filename': filename,
            'chunk_index': chunk_index,
            'total_chunks': total_chunks,
            'target_path': target_path,
        }
        request_kwargs = {
            'params': params,
            'content': data,
            'headers': {'Content-Type': 'application/octet-stream'},
        }
        if timeout is not None:
            request_kwargs['timeout'] = timeout

        try:
            response = await self._request('POST', '/api/upload-chunk', **request_kwargs)
        except httpx.TimeoutException as e:
            raise ChunkUploadError(f"Chunk {chunk_index} timed out: {type(e).__name__}") from e
        except httpx.HTTPError as e:
            raise ChunkUploadError(f"Chunk {chunk_index} network error: {e}") from e

        if response.status_code != 200:
            raise ChunkUploadError(
                self._format_error(response),
                status_code=response.status_code,
                code=self._error_code(response),
            )

        try:
            data = response.json()
            file_data = data.get('file')
            return ChunkResult(
                filename=data['filename'],
                chunk_index=int(data['chunk_index']),
                total_chunks=int(data['total_chunks']),
                received=int(data['received']),
                complete=bool(data['complete']),
                file=FileInfo.from_dict(file_data) if file_data else None,
            )
        except (ValueError, KeyError, TypeError) as e:
            raise ChunkUploadError(f"Chunk {chunk_index}: malformed server response: {e}") from e

    async def get_existing_chunks(self, filename: str, target_path: str, total_chunks: int) -> list[int]:
        """
        Ask the server which chunk indices it already holds.

        Returns:
            Sorted list of indices

        Raises:
            ResumeQueryError: On any network, status or decoding failure
        """
        params = {
            'filename': filename,
            'target_path': target_path,
            'total_chunks': total_chunks,
        }
        try:
            response = await self._request('GET', '/api/check-chunks', params=params)
        except httpx.HTTPError as e:
            raise ResumeQueryError(f"Resume query for {filename} failed: {e}") from e

        if response.status_code != 200:
            raise ResumeQueryError(f"Resume query for {filename} failed: {self._format_error(response)}")

        try:
            return sorted(int(i) for i in response.json()['existing_chunks'])
        except (ValueError, KeyError, TypeError) as e:
            raise ResumeQueryError(f"Resume query for {filename} returned malformed data: {e}") from e

    async def upload_file(self, source: SourceFile, target_path: str) -> FileInfo:
        """
        Upload a whole file in one multipart request.

        Raises:
            UploadError: On network error or non-success status
        """
        timeout = self._calculate_upload_timeout(source.size)
        try:
            with open(source.path, 'rb') as f:
                response = await self._request(
                    'POST',
                    '/api/upload',
                    files={'file': (source.name, f, 'application/octet-stream')},
                    data={'path': target_path},
                    timeout=timeout,
                )
        except httpx.TimeoutException as e:
            raise UploadError(f"{source.name}: upload timed out after {timeout:.0f}s") from e
        except httpx.HTTPError as e:
            raise UploadError(f"{source.name}: cannot reach server: {e}") from e

        if response.status_code != 200:
            raise UploadError(f"{source.name}: {self._format_error(response)}")

        return FileInfo.from_dict(response.json()['file'])

    async def list_directory(self, path: str = "/") -> dict:
        """
        Fetch a directory listing.

        Returns:
            Dictionary with current_path, folders and files

        Raises:
            UploadError: On network error or non-success status
        """
        try:
            response = await self._request('GET', '/api/files', params={'path': path})
        except httpx.HTTPError as e:
            raise UploadError(f"Cannot list {path}: {e}") from e

        if response.status_code != 200:
            raise UploadError(f"Cannot list {path}: {self._format_error(response)}")

        return response.json()
