"""Custom exception classes for the file share server."""


class FileShareException(Exception):
    """
    Base exception class for all file share errors.
    """
    pass


class InvalidParamsError(FileShareException):
    """
    Raised when request parameters are missing or out of range.
    """
    pass


class UnknownSessionError(FileShareException):
    """
    Raised when an upload session id is not registered (never created,
    already completed, or evicted by the sweep).
    """

    def __init__(self, session_id: str):
        super().__init__(f"Invalid upload ID: {session_id}")
        self.session_id = session_id


class EmptyChunkError(FileShareException):
    """
    Raised when a chunk upload carries no bytes.
    """
    pass


class IncompleteUploadError(FileShareException):
    """
    Raised when completion is requested before every chunk has arrived.
    """

    def __init__(self, received: int, expected: int):
        super().__init__(f"Not all chunks received ({received}/{expected})")
        self.received = received
        self.expected = expected


class AssemblyFailedError(FileShareException):
    """
    Raised when chunks cannot be assembled into the output artifact.
    """
    pass


class MissingChunkError(AssemblyFailedError):
    """
    Raised when an expected chunk file is absent at assembly time.
    """

    def __init__(self, index: int):
        super().__init__(f"Chunk {index} is missing")
        self.index = index


class OversizeChunkError(FileShareException):
    """
    Raised when a single chunk exceeds the configured limit.
    """

    def __init__(self, limit: int):
        super().__init__(f"Chunk too large. Maximum chunk size is {limit} bytes.")
        self.limit = limit


class OversizeFileError(FileShareException):
    """
    Raised when a single-shot upload exceeds the configured limit.
    """

    def __init__(self, limit: int):
        super().__init__(f"File too large. Maximum file size is {limit} bytes.")
        self.limit = limit


class NoFileError(FileShareException):
    """
    Raised when a single-shot upload request carries no file.
    """
    pass


class FileNotFoundError(FileShareException):
    """
    Raised when a group references a file code that is not in the store.
    """

    def __init__(self, file_id: str):
        super().__init__(f"File with ID {file_id} not found")
        self.file_id = file_id


class NotFoundError(FileShareException):
    """
    Raised when a code resolves to neither a file nor a group.
    """
    pass


class IsGroupError(FileShareException):
    """
    Raised when a group code is used where a single file code is required.
    """

    def __init__(self, group_code: str, file_count: int):
        super().__init__("This is a file group code, not a single file code")
        self.group_code = group_code
        self.file_count = file_count


class ArtifactMissingError(FileShareException):
    """
    Raised when a record exists but its stored artifact is gone.
    """
    pass


class DecompressionFailedError(FileShareException):
    """
    Raised when a compressed artifact cannot be decompressed and the
    raw-bytes fallback is disabled.
    """
    pass


class CodeAllocationError(FileShareException):
    """
    Raised when no unused share code could be generated.
    """
    pass
