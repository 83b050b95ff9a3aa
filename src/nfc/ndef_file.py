"""NDEF file access on NFC Forum Type 4 tags."""

import logging

from .constants import (
    APDU_COMMANDS,
    CC_LENGTH,
    MAX_NDEF_LENGTH,
    NDEF_DATA_OFFSET,
    READ_CHUNK_SIZE,
    STATUS_LENGTH,
    SW1_OK,
    SW_END_OF_FILE,
    SW_WRONG_OFFSET,
    TLV_MAX_SHORT_LENGTH,
    TLV_NDEF_TAG,
    TLV_TERMINATOR,
    WRITE_BLOCK_SIZE,
)
from .exceptions import EndOfFileError, InvalidLengthError, MessageTooLargeError, TransportError


def build_tlv(message: bytes) -> bytes:
    """Wrap an NDEF message as ``03 <len> message FE`` padded to whole blocks.

    The length byte holds 0-254; 0xFF would announce the 3-byte length form,
    so messages of 255 bytes or more raise MessageTooLargeError.
    """
    if len(message) > TLV_MAX_SHORT_LENGTH:
        raise MessageTooLargeError(
            f"NDEF message too large for tag, max size {TLV_MAX_SHORT_LENGTH} got {len(message)}")

    tlv_data = bytes([TLV_NDEF_TAG, len(message)]) + message + bytes([TLV_TERMINATOR])
    padding = -len(tlv_data) % WRITE_BLOCK_SIZE
    return tlv_data + bytes(padding)


class NDEFFile:
    """Select, read and write the NDEF file of a Type 4 tag.

    ``transport`` is anything with ``transmit(bytes) -> bytes`` returning the
    response data followed by the two status bytes.
    """

    def __init__(self, transport):
        self.transport = transport

    def _exchange(self, command, description: str) -> bytes:
        """Send a command and return its payload with the status trailer stripped."""
        response = self.transport.transmit(bytes(command))
        if len(response) < STATUS_LENGTH:
            raise TransportError(f"{description} returned no status")

        sw1, sw2 = response[-2], response[-1]
        if (sw1, sw2) in (SW_END_OF_FILE, SW_WRONG_OFFSET):
            raise EndOfFileError(f"{description} reached end of file. Status: {sw1:02X}{sw2:02X}",
                                 response[:-STATUS_LENGTH])
        if sw1 != SW1_OK:
            raise TransportError(f"{description} failed. Status: {sw1:02X}{sw2:02X}")
        return response[:-STATUS_LENGTH]

    def select_application(self):
        self._exchange(APDU_COMMANDS['SELECT_NDEF_APP'], "Selecting NDEF application")
        logging.debug("NDEF application selected")

    def select_capability_container(self):
        self._exchange(APDU_COMMANDS['SELECT_CC_FILE'], "Selecting CC file")

    def read_capability_container(self) -> bytes:
        cc = self._exchange(APDU_COMMANDS['READ_CC'], "Reading CC file")
        logging.debug(f"Capability container: {cc.hex()}")
        return cc

    def select_ndef_file(self):
        self._exchange(APDU_COMMANDS['SELECT_NDEF_FILE'], "Selecting NDEF file")
        logging.debug("NDEF file selected")

    def read_ndef_length(self) -> int:
        data = self._exchange(APDU_COMMANDS['READ_NDEF_LENGTH'], "Reading NDEF length")
        if len(data) < 2:
            raise TransportError(f"NDEF length response too short: {data.hex()}")
        return int.from_bytes(data[:2], 'big')

    def read_binary(self, offset: int, length: int) -> bytes:
        command = APDU_COMMANDS['READ_BINARY'] + [(offset >> 8) & 0xFF, offset & 0xFF, length]
        return self._exchange(command, f"Reading {length} bytes at offset {offset}")

    def update_binary(self, offset: int, block: bytes):
        command = (APDU_COMMANDS['UPDATE_BINARY']
                   + [(offset >> 8) & 0xFF, offset & 0xFF, len(block)]
                   + list(block))
        self._exchange(command, f"Writing block at offset {offset}")

    def read_message(self) -> bytes:
        """Run the full read sequence and return the raw NDEF bytes."""
        self.select_application()
        self.select_capability_container()
        self.read_capability_container()
        self.select_ndef_file()

        ndef_length = self.read_ndef_length()
        logging.debug(f"NDEF length: {ndef_length} bytes")
        if ndef_length == 0 or ndef_length > MAX_NDEF_LENGTH:
            raise InvalidLengthError(f"No NDEF data on card or invalid length ({ndef_length})")

        # Chunks are bounded by the reader, not by the tag
        message = bytearray()
        offset = NDEF_DATA_OFFSET
        end = ndef_length + NDEF_DATA_OFFSET
        while offset < end:
            to_read = min(READ_CHUNK_SIZE, end - offset)
            try:
                message.extend(self.read_binary(offset, to_read))
            except EndOfFileError as e:
                # A TLV-framed file announces more bytes than it holds
                message.extend(e.data)
                logging.warning(f"NDEF length {ndef_length} runs past the end of the file, "
                                f"keeping {len(message)} bytes")
                break
            offset += to_read

        if not message:
            raise InvalidLengthError(f"No NDEF data on card or invalid length ({ndef_length})")

        logging.debug(f"Raw NDEF data ({len(message)} bytes): {message.hex()}")
        return bytes(message)

    def write_message(self, message: bytes) -> int:
        """Write an NDEF message as a padded TLV and return the bytes written."""
        tlv_data = build_tlv(message)

        self.select_application()
        self.select_ndef_file()

        logging.debug(f"Writing {len(tlv_data)} bytes to card (aligned to {WRITE_BLOCK_SIZE}-byte blocks)")
        # One block per command; the reader cannot take overlapping writes
        for offset in range(0, len(tlv_data), WRITE_BLOCK_SIZE):
            self.update_binary(offset, tlv_data[offset:offset + WRITE_BLOCK_SIZE])

        logging.debug(f"NDEF message written ({len(message)} bytes, {len(tlv_data)} with TLV)")
        return len(tlv_data)
