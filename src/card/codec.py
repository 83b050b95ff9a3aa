"""Card data encoding and decoding functions."""

import logging
import re
from typing import Dict, List

from .data import CardData, EMERGENCY_CONTACT_FIELDS, POLICY_FIELDS
from .records import Record, TextRecord, UriRecord, VCardRecord, encode_message, iter_records

EMERGENCY_HEADER = 'EMERGENCY CONTACT'
INSURANCE_HEADER = 'INSURANCE INFORMATION'

_LINE_BREAKS = re.compile(r'[\r\n]+')


def emergency_contact_text(contact: Dict[str, str]) -> str:
    """Render the emergency-contact text body."""
    lines = [f"{EMERGENCY_HEADER} INFORMATION", '']
    lines.extend(f"{key}: {contact.get(key) or ''}" for key in EMERGENCY_CONTACT_FIELDS)
    return '\n'.join(lines)


def insurance_policy_text(policy: Dict[str, str]) -> str:
    """Render one insurance policy text body."""
    lines = [f"{INSURANCE_HEADER} - POLICY", '']
    lines.extend(f"{key}: {policy.get(key) or ''}" for key in POLICY_FIELDS)
    return '\n'.join(lines)


def parse_emergency_contact(text: str) -> Dict[str, str]:
    contact = {}
    for line in _LINE_BREAKS.split(text):
        for key in EMERGENCY_CONTACT_FIELDS:
            if f"{key}:" in line:
                contact[key] = line.split(':', 1)[1].strip()
    return contact


def parse_insurance_policy(text: str) -> Dict[str, str]:
    policy = {}
    for line in _LINE_BREAKS.split(text):
        key, colon, value = line.partition(':')
        if colon and key.strip() in POLICY_FIELDS:
            policy[key.strip()] = value.strip()
    return policy


def _apply_text(text: str, data: CardData):
    if EMERGENCY_HEADER in text:
        data.emergency_contact.update(parse_emergency_contact(text))
        logging.debug(f"Parsed emergency contact: {data.emergency_contact}")
    elif INSURANCE_HEADER in text:
        policy = parse_insurance_policy(text)
        if policy:
            data.insurance_policies.append(policy)
            logging.debug(f"Added policy: {policy}")
        else:
            logging.warning("Policy parsed but no valid fields found")
    else:
        logging.debug(f"Ignoring text record: {text[:40]!r}")


def decode(buffer: bytes) -> CardData:
    """Decode an NDEF buffer read from a card.

    Never raises on malformed input: truncated records are parsed as far as
    they go and unknown record types are skipped.
    """
    data = CardData()
    count = 0

    for record in iter_records(buffer):
        count += 1
        if UriRecord.matches(record):
            data.vcard_url = UriRecord.parse(record)
            logging.debug(f"Parsed URI: {data.vcard_url}")
        elif VCardRecord.matches(record):
            data.personal_info.update(VCardRecord.parse(record))
            logging.debug(f"Parsed personal info: {data.personal_info}")
        elif TextRecord.matches(record):
            _apply_text(TextRecord.parse(record), data)
        else:
            logging.debug(f"Unrecognized record type: TNF={record.tnf}, Type={record.type_name!r}")

    logging.debug(f"Parsed {count} records total")
    return data


def build_records(data: CardData) -> List[Record]:
    """Build the record set for a card, in the order the card app expects."""
    records = []

    if data.vcard_url:
        records.append(UriRecord.build(data.vcard_url))

    if data.personal_info:
        records.append(VCardRecord.build(data.personal_info))

    if data.emergency_contact.get('Name'):
        records.append(TextRecord.build(emergency_contact_text(data.emergency_contact)))

    for policy in data.insurance_policies:
        records.append(TextRecord.build(insurance_policy_text(policy)))

    return records


def encode(data: CardData) -> bytes:
    """Encode card data to an NDEF message."""
    return encode_message(build_records(data))
