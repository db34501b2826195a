"""Exception types shared by the index pipeline."""


class TfIndexError(Exception):
    """Base exception for every fatal condition of an index run."""

    pass


class ConfigurationError(TfIndexError):
    """Invalid or incomplete configuration, detected before any I/O."""

    pass


class SizeParseError(TfIndexError):
    """A file descriptor carried a size that is not a valid u64 decimal.

    Attributes:
        file_id: Remote identifier of the offending file
        file_name: Display name of the offending file
        raw_size: The size text as received from the remote store
    """

    def __init__(self, file_id: str, file_name: str, raw_size: str):
        self.file_id = file_id
        self.file_name = file_name
        self.raw_size = raw_size
        super().__init__(
            f"Invalid size {raw_size!r} for file {file_name!r} (id={file_id})"
        )


class EncryptionKeyError(TfIndexError):
    """The configured public key could not be loaded or used for wrapping."""

    pass


class OutputWriteError(TfIndexError):
    """The index file could not be written to its destination."""

    pass
