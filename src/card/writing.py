"""Write pipeline: ownership check, record construction and NDEF write."""

import logging
import re
import time
from typing import Callable, Dict, Optional, Tuple

from ..nfc.constants import WRITE_VALIDATION_DELAY
from ..nfc.exceptions import ReadExhaustedError
from ..nfc.ndef_file import NDEFFile
from .codec import build_records
from .data import CardData, WriteResult, WriteStatus
from .reading import read_structured_data
from .records import encode_message, record_summary

ACCESS_DENIED_MESSAGE = 'Access Denied: This card belongs to a different user. Cannot write data.'


def _name_and_email(personal_info: Dict[str, str]) -> Tuple[str, str]:
    name = (personal_info.get('Full Name') or '').strip().lower()
    email = (personal_info.get('Email') or '').strip().lower()
    return name, email


def tag_identity(personal_info: Dict[str, str]) -> Tuple[str, str, str]:
    """Normalized (name, email, phone) as stored on the card."""
    name, email = _name_and_email(personal_info)
    phone = re.sub(r'\s+', '', (personal_info.get('Phone') or '').strip())
    phone = re.sub(r'[^0-9+]', '', phone)
    return name, email, phone


def incoming_identity(personal_info: Dict[str, str]) -> Tuple[str, str, str]:
    """Normalized (name, email, phone) of the data about to be written.

    The phone only loses whitespace here, unlike the card side.
    """
    name, email = _name_and_email(personal_info)
    phone = re.sub(r'\s+', '', (personal_info.get('Phone') or '').strip())
    return name, email, phone


def owns_card(existing: CardData, incoming: CardData) -> bool:
    """True when name, email and phone all match the card's owner."""
    card = tag_identity(existing.personal_info)
    session = incoming_identity(incoming.personal_info)
    matches = [a == b for a, b in zip(card, session)]
    logging.debug(f"Validation results: name={matches[0]}, email={matches[1]}, phone={matches[2]} "
                  f"card={card} session={session}")
    return all(matches)


def perform_write(transport, data: CardData,
                  sleep: Callable[[float], None] = time.sleep,
                  validate: bool = True) -> WriteResult:
    """Write card data after checking that the card belongs to the same person.

    Callers that just read the card themselves pass ``validate=False``; the
    identity they write back came from that card. Never raises: refusals and
    failures come back as a WriteResult.
    """
    try:
        return _perform_write(transport, data, sleep, validate)
    except Exception as e:
        logging.error(f"Write error: {e}")
        return WriteResult(WriteStatus.ERROR, f"Write failed: {e}")


def _validate_owner(transport, data: CardData,
                    sleep: Callable[[float], None]) -> Optional[WriteResult]:
    """Return an ACCESS_DENIED result if the card belongs to someone else."""
    sleep(WRITE_VALIDATION_DELAY)
    try:
        existing = read_structured_data(transport, sleep=sleep)
    except ReadExhaustedError as e:
        # An unreadable card is treated as blank
        logging.info(f"Card read failed during validation: {e}")
        existing = None

    if existing is None or not existing.personal_info:
        logging.info("First-time card write - no validation needed")
        return None

    if not owns_card(existing, data):
        logging.error("VALIDATION FAILED - User mismatch detected")
        return WriteResult(WriteStatus.ACCESS_DENIED, ACCESS_DENIED_MESSAGE)

    logging.info("Validation passed - user ownership confirmed")
    return None


def _perform_write(transport, data: CardData, sleep: Callable[[float], None],
                   validate: bool) -> WriteResult:
    records = build_records(data)
    if not records:
        logging.error("No valid data to write")
        return WriteResult(WriteStatus.NO_DATA, 'No valid data to write')

    if validate:
        denied = _validate_owner(transport, data, sleep)
        if denied is not None:
            return denied

    logging.debug("Records to write:\n    " + "\n    ".join(record_summary(records)))
    bytes_written = NDEFFile(transport).write_message(encode_message(records))

    logging.info(f"Successfully wrote {len(records)} records ({bytes_written} bytes) to card")
    return WriteResult(
        WriteStatus.SUCCESS,
        f"Successfully wrote {len(records)} records to card",
        records_written=len(records),
        bytes_written=bytes_written,
    )
