"""HTTP client for communicating with the file share server."""

import mimetypes
import sys
import time
import uuid
from pathlib import Path
from typing import Optional

import httpx

from common.logging_config import get_logger
from cli.config import Config
from cli.constants import GREEN, RESET
from cli.utils import count_chunks, filename_from_disposition, format_file_size

logger = get_logger(__name__)


class FileShareClient:
    """HTTP client for the file share API with retry logic and error handling."""

    def __init__(self, config: Config):
        """
        Initialize file share client.

        Args:
            config: Configuration instance
        """
        self.config = config
        self.session = httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout()
        )
        self.request_id = None
        logger.info(f"Initialized FileShareClient [base_url={config.get_base_url()}]")

    def _calculate_upload_timeout(self, size: int) -> float:
        """
        Calculate timeout for an upload request based on its size.

        Returns:
            Timeout in seconds (30s base + 0.1s per MB)
        """
        return 30.0 + (size / (1024 * 1024)) * 0.1

    def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method (GET, POST, ...)
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses config default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            ConnectionError: If max retries exceeded or connection fails
        """
        retry_config = self.config.get_retry_config()
        max_retries = max_retries if max_retries is not None else retry_config['max_retries']
        backoff = retry_config['retry_backoff_multiplier']

        last_exception = None

        self.request_id = str(uuid.uuid4())
        kwargs.setdefault('headers', {})
        kwargs['headers']['X-Request-ID'] = self.request_id

        logger.debug(f"Making request: {method} {endpoint} [request_id={self.request_id}]")

        for attempt in range(max_retries + 1):
            try:
                response = self.session.request(method, endpoint, **kwargs)

                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                )

                if 400 <= response.status_code < 500:
                    logger.warning(
                        f"Client error: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                    )
                    return response

                if response.status_code >= 500 and attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue

                return response

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                if attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue
                logger.error(
                    f"Network error (max retries exceeded): {method} {endpoint} error={e} [request_id={self.request_id}]"
                )

        if isinstance(last_exception, httpx.TimeoutException):
            raise ConnectionError("Request timed out. Server may be overloaded.")
        if last_exception is not None:
            raise ConnectionError("Cannot connect to file share server. Is it running?")
        raise ConnectionError("Max retries exceeded")

    def _format_error(self, response: httpx.Response) -> str:
        """
        Map HTTP errors to user-friendly messages.

        Args:
            response: HTTP response object

        Returns:
            User-friendly error message
        """
        try:
            error_data = response.json()
            detail = error_data.get('error') or error_data.get('detail') or 'Unknown error'
            code = error_data.get('code', 'UNKNOWN')
        except ValueError:
            detail = response.text if response.text else 'Unknown error'
            code = 'UNKNOWN'

        error_messages = {
            'NOT_FOUND': 'No file or group has this code.',
            'ARTIFACT_MISSING': 'The file is registered but no longer stored on the server.',
            'FILE_TOO_LARGE': 'File too large for the server.',
            'CHUNK_TOO_LARGE': 'Chunk too large for the server. Lower chunk_size in the config.',
            'UNKNOWN_SESSION': 'Upload session expired or unknown. Start the upload again.',
        }

        if code in error_messages:
            return error_messages[code]

        if code != 'UNKNOWN':
            return f"{detail} (Code: {code})"

        status_messages = {
            400: 'Bad request',
            404: 'Not found',
            413: 'File too large',
            422: 'Invalid request',
            500: 'Server error',
            503: 'Service unavailable',
        }
        return status_messages.get(response.status_code, detail)

    def _describe_upload(self, data: dict) -> str:
        message = f"Uploaded: {data['filename']} ({format_file_size(data['size'])})\nCode: {data['code']}"
        if data.get('compressed'):
            message += (
                f"\nCompressed: {format_file_size(data['originalSize'])} -> "
                f"{format_file_size(data['size'])} ({data['compressionRatio']}x)"
            )
        return message

    def upload(self, file_path: str, compress: bool = False) -> str:
        """
        Upload a local file.

        Files up to the chunked threshold are sent in a single request;
        larger files go through the init/chunk/complete protocol, with
        each chunk retried on server and network errors.

        Args:
            file_path: Path of the file to upload
            compress: Ask the server to store the file gzip-compressed

        Returns:
            Result message with the share code
        """
        path = Path(file_path).expanduser()
        if not path.exists():
            return f"Error: File not found: {file_path}"
        if not path.is_file():
            return f"Error: Not a file: {file_path}"

        file_size = path.stat().st_size
        if file_size == 0:
            return f"Error: File is empty: {file_path}"

        logger.info(f"Uploading {path.name} ({file_size} bytes, compress={compress})")
        try:
            if file_size > self.config.get_chunked_threshold():
                return self._upload_chunked(path, file_size, compress)
            return self._upload_single(path, file_size, compress)
        except ConnectionError as e:
            logger.error(f"Connection error during upload: {e}")
            return f"Error: {e}"
        except OSError as e:
            return f"Error reading file: {e}"

    def _upload_single(self, path: Path, file_size: int, compress: bool) -> str:
        mime_type = mimetypes.guess_type(path.name)[0] or 'application/octet-stream'
        with open(path, 'rb') as f:
            response = self._request_with_retry(
                'POST',
                '/api/upload',
                max_retries=0,
                files={'file': (path.name, f, mime_type)},
                data={'optimized': 'true' if compress else 'false'},
                timeout=self._calculate_upload_timeout(file_size)
            )

        if response.status_code == 201:
            return self._describe_upload(response.json())
        return f"Upload failed: {self._format_error(response)}"

    def _upload_chunked(self, path: Path, file_size: int, compress: bool) -> str:
        chunk_size = self.config.get_chunk_size()
        total_chunks = count_chunks(file_size, chunk_size)
        mime_type = mimetypes.guess_type(path.name)[0] or 'application/octet-stream'

        response = self._request_with_retry(
            'POST',
            '/api/upload/init',
            json={
                'filename': path.name,
                'totalChunks': total_chunks,
                'fileSize': file_size,
                'mimeType': mime_type,
                'chunkSize': chunk_size,
            }
        )
        if response.status_code != 200:
            return f"Upload failed: {self._format_error(response)}"

        upload_id = response.json()['uploadId']
        logger.info(f"Chunked upload started: {path.name}, {total_chunks} chunks [upload_id={upload_id}]")

        sent = 0
        with open(path, 'rb') as f:
            for index in range(total_chunks):
                payload = f.read(chunk_size)
                response = self._request_with_retry(
                    'POST',
                    '/api/upload/chunk',
                    files={'chunk': (path.name, payload, 'application/octet-stream')},
                    data={'uploadId': upload_id, 'chunkIndex': str(index)},
                    timeout=self._calculate_upload_timeout(len(payload))
                )
                if response.status_code != 200:
                    sys.stdout.write('\n')
                    return f"Upload failed at chunk {index}: {self._format_error(response)}"

                sent += len(payload)
                progress = (sent / file_size) * 100
                sys.stdout.write(
                    f"\rUploading {path.name}: {format_file_size(sent)} / {format_file_size(file_size)} ({GREEN}{progress:.1f}%{RESET})"
                )
                sys.stdout.flush()

        sys.stdout.write('\n')
        sys.stdout.flush()

        response = self._request_with_retry(
            'POST',
            '/api/upload/complete',
            json={'uploadId': upload_id, 'compress': compress},
            timeout=self._calculate_upload_timeout(file_size)
        )
        if response.status_code == 200:
            return self._describe_upload(response.json())
        return f"Upload failed: {self._format_error(response)}"

    def info(self, code: str) -> str:
        """
        Show metadata for a file code.

        Returns:
            Formatted file metadata, or a hint when the code is a group
        """
        try:
            response = self._request_with_retry('GET', f'/api/download/{code}')
        except ConnectionError as e:
            return f"Error: {e}"

        if response.status_code == 200:
            data = response.json()
            lines = [
                f"Name: {data['filename']}",
                f"Size: {format_file_size(data['size'])}",
                f"Uploaded: {data['uploadDate']}",
            ]
            if data.get('compressed'):
                lines.append(
                    f"Compressed: yes (original {format_file_size(data['originalSize'])}, "
                    f"{data['compressionRatio']}x)"
                )
            return '\n'.join(lines)

        if response.status_code == 400 and self._is_group_response(response):
            return f"{code} is a group code. Use: group-info {code}"
        return f"Error: {self._format_error(response)}"

    def _is_group_response(self, response: httpx.Response) -> bool:
        try:
            return bool(response.json().get('isGroup'))
        except ValueError:
            return False

    def download(self, code: str, output_dir: Optional[str] = None) -> str:
        """
        Download a file code, or every file of a group code.

        Args:
            code: File or group code
            output_dir: Directory to save into (defaults to the current directory)

        Returns:
            Result message with saved paths
        """
        target_dir = Path(output_dir).expanduser() if output_dir else Path.cwd()
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return f"Error creating output directory: {e}"

        try:
            saved, error, is_group = self._download_file(code, target_dir)
            if not is_group:
                return error or saved

            response = self._request_with_retry('GET', f'/api/group/{code}')
            if response.status_code != 200:
                return f"Error: {self._format_error(response)}"

            group = response.json()
            results = [f"Group: {group['name']} ({group['fileCount']} files)"]
            for member in group['files']:
                saved, error, _ = self._download_file(member['id'], target_dir)
                results.append(error or saved)
            return '\n'.join(results)

        except ConnectionError as e:
            return f"Error: {e}"
        except httpx.ConnectError:
            return "Error: Cannot connect to file share server. Is it running?"
        except httpx.TimeoutException:
            return "Error: Request timed out. Server may be overloaded."
        except OSError as e:
            return f"Error writing file: {e}"

    def _download_file(self, code: str, target_dir: Path):
        """
        Stream one file code into ``target_dir``.

        Returns:
            (success message, error message, is_group)
        """
        with self.session.stream('GET', f'/api/file/{code}') as response:
            if response.status_code != 200:
                response.read()
                if response.status_code == 400 and self._is_group_response(response):
                    return None, None, True
                return None, f"Error ({code}): {self._format_error(response)}", False

            filename = filename_from_disposition(response.headers.get('Content-Disposition')) or code
            output_file = target_dir / filename
            downloaded = 0

            with open(output_file, 'wb') as f:
                for piece in response.iter_bytes(chunk_size=8192):
                    f.write(piece)
                    downloaded += len(piece)
                    sys.stdout.write(f"\rDownloading {filename}: {format_file_size(downloaded)}")
                    sys.stdout.flush()

            sys.stdout.write('\n')
            sys.stdout.flush()

        logger.info(f"Downloaded {code} to {output_file} ({downloaded} bytes)")
        return f"Downloaded: {filename} ({format_file_size(downloaded)})\nSaved to: {output_file.absolute()}", None, False

    def create_group(self, codes: list[str], name: Optional[str] = None) -> str:
        """
        Share several file codes under one group code.

        Returns:
            Result message with the group code
        """
        payload = {'fileIds': codes}
        if name:
            payload['groupName'] = name

        try:
            response = self._request_with_retry('POST', '/api/group', json=payload)
        except ConnectionError as e:
            return f"Error: {e}"

        if response.status_code == 201:
            data = response.json()
            return f"Group created: {data['name']} ({data['fileCount']} files)\nCode: {data['groupCode']}"
        if response.status_code == 404:
            try:
                missing = response.json().get('fileId')
            except ValueError:
                missing = None
            if missing:
                return f"Error: File code not found: {missing}"
        return f"Error: {self._format_error(response)}"

    def group_info(self, code: str) -> str:
        """
        List the files of a group code.

        Returns:
            Formatted group listing
        """
        try:
            response = self._request_with_retry('GET', f'/api/group/{code}')
        except ConnectionError as e:
            return f"Error: {e}"

        if response.status_code != 200:
            return f"Error: {self._format_error(response)}"

        data = response.json()
        if not data['files']:
            return f"Group {data['name']} has no files left."

        lines = [f"Group: {data['name']} ({data['fileCount']} files, created {data['createdAt']})"]
        lines.append(f"{'Code':<8} {'Size':<12} {'Name'}")
        lines.append("-" * 60)
        for member in data['files']:
            lines.append(f"{member['id']:<8} {format_file_size(member['size']):<12} {member['filename']}")
        return '\n'.join(lines)

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
