"""NFC-related constants and configuration."""

# APDU Commands for NFC Forum Type 4 tag access
APDU_COMMANDS = {
    'GET_UID': [0xFF, 0xCA, 0x00, 0x00, 0x00],
    'SELECT_NDEF_APP': [0x00, 0xA4, 0x04, 0x00, 0x07,
                        0xD2, 0x76, 0x00, 0x00, 0x85, 0x01, 0x01, 0x00],
    'SELECT_CC_FILE': [0x00, 0xA4, 0x00, 0x0C, 0x02, 0xE1, 0x03],
    'READ_CC': [0x00, 0xB0, 0x00, 0x00, 0x0F],
    'SELECT_NDEF_FILE': [0x00, 0xA4, 0x00, 0x0C, 0x02, 0xE1, 0x04],
    'READ_NDEF_LENGTH': [0x00, 0xB0, 0x00, 0x00, 0x02],
    'READ_BINARY': [0x00, 0xB0],   # Needs offset (2 bytes) and length
    'UPDATE_BINARY': [0x00, 0xD6]  # Needs offset (2 bytes), length and data
}

# Status word
SW1_OK = 0x90
STATUS_LENGTH = 2
SW_END_OF_FILE = (0x62, 0x82)      # Fewer bytes than requested
SW_WRONG_OFFSET = (0x6B, 0x00)     # Offset outside the file

# NDEF file limits
CC_LENGTH = 0x0F
NDEF_DATA_OFFSET = 2        # NDEF bytes start after the 2-byte length field
MAX_NDEF_LENGTH = 8192
READ_CHUNK_SIZE = 250       # Reader response-size ceiling
WRITE_BLOCK_SIZE = 4

# TLV framing
TLV_NDEF_TAG = 0x03
TLV_TERMINATOR = 0xFE
TLV_MAX_SHORT_LENGTH = 0xFE  # 0xFF marks the 3-byte length form

# NDEF record header
NDEF_FLAG_MB = 0x80
NDEF_FLAG_ME = 0x40
NDEF_FLAG_SR = 0x10
NDEF_TNF_MASK = 0x07
NDEF_SHORT_PAYLOAD_LIMIT = 256

# NDEF Type Names
NDEF_TNF_WELL_KNOWN = 0x01
NDEF_TNF_MIME_MEDIA = 0x02
NDEF_TYPE_TEXT = 'T'
NDEF_TYPE_URI = 'U'
NDEF_MIME_TYPE = 'text/vcard'
NDEF_TEXT_LANGUAGE = 'en'

# URI identifier codes understood by the card app
URI_PREFIXES = ['', 'http://www.', 'https://www.', 'http://', 'https://']

# Read pipeline timings (seconds)
READ_ATTEMPTS = 3
READ_SETTLE_DELAY = 1.0
READ_RETRY_BACKOFF = 0.5
READ_MODE_DELAY = 0.3
WRITE_VALIDATION_DELAY = 0.5

# Public profile page derived from the owner's email local-part
VCARD_PROFILE_BASE_URL = 'https://vcard.tecgs.com:3000/profile/'
