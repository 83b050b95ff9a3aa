"""Read pipeline: retried NDEF file reads decoded into card data."""

import logging
import time
from typing import Callable

from ..nfc.constants import READ_ATTEMPTS, READ_RETRY_BACKOFF, READ_SETTLE_DELAY
from ..nfc.exceptions import NFCError, ReadExhaustedError
from ..nfc.ndef_file import NDEFFile
from ..utils.retry import retry
from .codec import decode
from .data import CardData


def read_raw_message(transport,
                     attempts: int = READ_ATTEMPTS,
                     settle: float = READ_SETTLE_DELAY,
                     backoff: float = READ_RETRY_BACKOFF,
                     sleep: Callable[[float], None] = time.sleep) -> bytes:
    """Read the raw NDEF bytes, retrying transport and length failures.

    Raises ReadExhaustedError once every attempt has failed.
    """
    ndef_file = NDEFFile(transport)
    outcome = retry(ndef_file.read_message,
                    attempts=attempts,
                    settle=settle,
                    backoff=backoff,
                    retry_on=(NFCError,),
                    sleep=sleep,
                    label="Read")

    if not outcome.ok:
        logging.error(f"Read failed after {outcome.attempts} attempts: {outcome.error}")
        raise ReadExhaustedError(outcome.attempts, outcome.error)

    return outcome.value


def read_structured_data(transport,
                         attempts: int = READ_ATTEMPTS,
                         settle: float = READ_SETTLE_DELAY,
                         backoff: float = READ_RETRY_BACKOFF,
                         sleep: Callable[[float], None] = time.sleep) -> CardData:
    """Read and decode the card contents."""
    buffer = read_raw_message(transport, attempts=attempts, settle=settle,
                              backoff=backoff, sleep=sleep)
    data = decode(buffer)
    logging.debug(f"Parsed data: {data}")
    return data
