"""NDEF record encoding and decoding.

Only the record shapes the card app uses are supported: well-known URI and
Text records and a MIME vCard record. Each variant owns its build/parse pair.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List

from ..nfc.constants import (
    NDEF_FLAG_MB,
    NDEF_FLAG_ME,
    NDEF_FLAG_SR,
    NDEF_MIME_TYPE,
    NDEF_SHORT_PAYLOAD_LIMIT,
    NDEF_TEXT_LANGUAGE,
    NDEF_TNF_MASK,
    NDEF_TNF_MIME_MEDIA,
    NDEF_TNF_WELL_KNOWN,
    NDEF_TYPE_TEXT,
    NDEF_TYPE_URI,
    URI_PREFIXES,
)

VCARD_FIELDS = (
    ('FN:', 'Full Name'),
    ('TEL:', 'Phone'),
    ('EMAIL:', 'Email'),
    ('ORG:', 'Organization'),
    ('TITLE:', 'Job Title'),
    ('ADR:', 'Address'),
)

_LINE_BREAKS = re.compile(r'[\r\n]+')


@dataclass(frozen=True)
class Record:
    """A single NDEF record."""
    tnf: int
    type: bytes
    payload: bytes

    @property
    def type_name(self) -> str:
        return self.type.decode('utf-8', errors='replace')


def encode_message(records: List[Record]) -> bytes:
    """Encode records as one NDEF message (no outer length prefix)."""
    message = bytearray()
    last = len(records) - 1

    for index, record in enumerate(records):
        short = len(record.payload) < NDEF_SHORT_PAYLOAD_LIMIT

        header = record.tnf
        if index == 0:
            header |= NDEF_FLAG_MB
        if index == last:
            header |= NDEF_FLAG_ME
        if short:
            header |= NDEF_FLAG_SR

        message.append(header)
        message.append(len(record.type))
        message.extend(len(record.payload).to_bytes(1 if short else 4, 'big'))
        message.extend(record.type)
        message.extend(record.payload)

    return bytes(message)


def iter_records(buffer: bytes) -> Iterator[Record]:
    """Yield records from an NDEF buffer.

    Stops at a 0x00 header or after the Message-End record. A record that
    runs past the end of the buffer is clamped to what is left.
    """
    offset = 0
    count = 0

    while offset < len(buffer):
        header = buffer[offset]
        if header == 0x00:
            logging.debug(f"End of records at offset {offset}")
            break

        count += 1
        tnf = header & NDEF_TNF_MASK
        short = bool(header & NDEF_FLAG_SR)
        last = bool(header & NDEF_FLAG_ME)
        offset += 1

        length_size = 1 if short else 4
        if offset + 1 + length_size > len(buffer):
            logging.warning(f"Record {count} header cut off at offset {offset}, stopping")
            break

        type_length = buffer[offset]
        offset += 1
        payload_length = int.from_bytes(buffer[offset:offset + length_size], 'big')
        offset += length_size

        available = len(buffer) - offset
        if type_length + payload_length > available:
            logging.warning(
                f"Record {count} extends beyond buffer (needed={type_length + payload_length}, "
                f"available={available}), keeping what is there")
            type_length = min(type_length, available)
            payload_length = min(payload_length, available - type_length)

        record_type = buffer[offset:offset + type_length]
        offset += type_length
        payload = buffer[offset:offset + payload_length]
        offset += payload_length

        logging.debug(f"Record {count}: TNF={tnf}, SR={short}, ME={last}, "
                      f"TypeLen={type_length}, PayloadLen={payload_length}")
        yield Record(tnf, bytes(record_type), bytes(payload))

        if last:
            break


class UriRecord:
    """Well-known URI record using the card app's five prefix codes."""
    tnf = NDEF_TNF_WELL_KNOWN
    type = NDEF_TYPE_URI.encode()

    @classmethod
    def matches(cls, record: Record) -> bool:
        return record.tnf == cls.tnf and record.type == cls.type

    @classmethod
    def build(cls, uri: str) -> Record:
        index = 0
        for code, prefix in enumerate(URI_PREFIXES):
            if uri.startswith(prefix) and len(prefix) > len(URI_PREFIXES[index]):
                index = code

        rest = uri[len(URI_PREFIXES[index]):]
        return Record(cls.tnf, cls.type, bytes([index]) + rest.encode('utf-8'))

    @staticmethod
    def parse(record: Record) -> str:
        if not record.payload:
            return ''
        code = record.payload[0]
        prefix = URI_PREFIXES[code] if code < len(URI_PREFIXES) else ''
        return prefix + record.payload[1:].decode('utf-8', errors='replace')


class VCardRecord:
    """MIME record carrying personal info as a vCard 3.0 block."""
    tnf = NDEF_TNF_MIME_MEDIA

    @classmethod
    def matches(cls, record: Record) -> bool:
        return record.tnf == cls.tnf and 'vcard' in record.type_name.lower()

    @classmethod
    def build(cls, personal_info: Dict[str, str], mime_type: str = NDEF_MIME_TYPE) -> Record:
        lines = ['BEGIN:VCARD', 'VERSION:3.0']
        for prefix, key in VCARD_FIELDS:
            if personal_info.get(key):
                lines.append(f"{prefix}{personal_info[key]}")
        lines.append('END:VCARD')

        vcard = '\n'.join(lines) + '\n'
        return Record(cls.tnf, mime_type.encode('utf-8'), vcard.encode('utf-8'))

    @staticmethod
    def parse(record: Record) -> Dict[str, str]:
        personal_info = {}
        for line in _LINE_BREAKS.split(record.payload.decode('utf-8', errors='replace')):
            for prefix, key in VCARD_FIELDS:
                if line.startswith(prefix):
                    personal_info[key] = line[len(prefix):]
        return personal_info


class TextRecord:
    """Well-known Text record, UTF-8 only."""
    tnf = NDEF_TNF_WELL_KNOWN
    type = NDEF_TYPE_TEXT.encode()

    @classmethod
    def matches(cls, record: Record) -> bool:
        return record.tnf == cls.tnf and record.type == cls.type

    @classmethod
    def build(cls, text: str, language: str = NDEF_TEXT_LANGUAGE) -> Record:
        language_bytes = language.encode('ascii')
        status = len(language_bytes) & 0x3F
        return Record(cls.tnf, cls.type, bytes([status]) + language_bytes + text.encode('utf-8'))

    @staticmethod
    def parse(record: Record) -> str:
        if not record.payload:
            return ''
        language_length = record.payload[0] & 0x3F
        return record.payload[1 + language_length:].decode('utf-8', errors='replace')


def record_summary(records: Iterable[Record]) -> List[str]:
    """One line per record, for logs."""
    return [f"TNF={r.tnf} type={r.type_name!r} payload={len(r.payload)} bytes" for r in records]
