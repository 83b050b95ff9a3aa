"""NFC reader interface and APDU transport."""

import logging
from typing import Optional

from smartcard.System import readers
from smartcard.util import toHexString
from smartcard.Exceptions import NoCardException

from .constants import APDU_COMMANDS, SW1_OK
from .exceptions import ReaderConnectionError, ReaderNotFoundError, TransportError


class NFCReader:
    """Interface with a PC/SC reader and the tag on it.

    ``transmit`` returns the response data with the two status bytes appended,
    which is the frame shape every higher layer works with.
    """

    def __init__(self, connection=None, name: Optional[str] = None):
        self.reader = None
        self.connection = connection
        self.name = name
        self._connected = False

    def connect(self) -> bool:
        """Connect to the first NFC reader, or to the supplied connection."""
        try:
            if self.connection is None:
                available_readers = readers()
                if not available_readers:
                    raise ReaderNotFoundError("No NFC readers found")

                self.reader = available_readers[0]
                self.name = str(self.reader)
                logging.info(f"Found reader: {self.reader}")
                self.connection = self.reader.createConnection()

            try:
                self.connection.connect()
                self._connected = True
                logging.info("Successfully connected to reader")
            except NoCardException:
                # This is expected when no card is present
                pass
            return True

        except ReaderNotFoundError:
            raise
        except Exception as e:
            raise ReaderConnectionError(f"Failed to connect to reader: {str(e)}")

    def transmit(self, command: bytes) -> bytes:
        """Send one APDU and return ``data + SW1 SW2``."""
        if not self.connection:
            raise TransportError("Reader not connected")

        try:
            if not self._connected:
                self.connection.connect()
                self._connected = True
        except NoCardException:
            raise TransportError("No card detected")
        except Exception as e:
            raise TransportError(f"Failed to connect to card: {str(e)}")

        logging.debug(f">> {toHexString(list(command))}")
        try:
            response, sw1, sw2 = self.connection.transmit(list(command))
        except Exception as e:
            raise TransportError(f"Command transmission error: {str(e)}")

        logging.debug(f"<< {toHexString(response)} [{sw1:02X}{sw2:02X}]")
        return bytes(response) + bytes([sw1, sw2])

    def read_tag_uid(self) -> Optional[str]:
        """Read NFC tag UID as an uppercase hex string."""
        frame = self.transmit(bytes(APDU_COMMANDS['GET_UID']))
        if frame[-2] == SW1_OK:
            return frame[:-2].hex().upper()
        logging.debug(f"Reading UID failed. Status: {frame[-2]:02X}{frame[-1]:02X}")
        return None

    def close(self):
        """Close the connection to the reader."""
        if self.connection:
            self.connection.disconnect()
            self._connected = False
            logging.info("Reader connection closed")
