"""NFC-related exceptions."""


class NFCError(Exception):
    """Base class for NFC exceptions."""
    pass


class ReaderNotFoundError(NFCError):
    """No NFC reader found."""
    pass


class ReaderConnectionError(NFCError):
    """Failed to connect to reader."""
    pass


class TransportError(NFCError):
    """Command exchange failed or returned an unusable status."""
    pass


class InvalidLengthError(NFCError):
    """NDEF file length is zero or larger than the tag can hold."""
    pass


class ReadError(NFCError):
    """Failed to read from NFC tag."""
    pass


class ReadExhaustedError(ReadError):
    """Every read attempt failed."""

    def __init__(self, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed to read card after {attempts} attempts: {last_error}")


class WriteError(NFCError):
    """Failed to write to tag."""
    pass


class MessageTooLargeError(WriteError):
    """NDEF message does not fit the one-byte TLV length."""
    pass


class EndOfFileError(TransportError):
    """Read ran past the end of the NDEF file."""

    def __init__(self, message: str, data: bytes = b""):
        self.data = data
        super().__init__(message)
