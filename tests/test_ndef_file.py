import pytest

from src.card.codec import decode, encode
from src.nfc.exceptions import EndOfFileError, InvalidLengthError, MessageTooLargeError, TransportError
from src.nfc.ndef_file import NDEFFile, build_tlv
from tests.fake_tag import BoundedTag, FakeTag

SELECT_APP = bytes.fromhex("00A4040007D276000085010100")
SELECT_CC = bytes.fromhex("00A4000C02E103")
READ_CC = bytes.fromhex("00B000000F")
SELECT_NDEF = bytes.fromhex("00A4000C02E104")
READ_LEN = bytes.fromhex("00B0000002")


def test_read_sequence_command_shapes():
    tag = FakeTag.with_message(b"\xD1\x01\x01T\x00")

    message = NDEFFile(tag).read_message()

    assert message == b"\xD1\x01\x01T\x00"
    assert tag.commands == [
        SELECT_APP,
        SELECT_CC,
        READ_CC,
        SELECT_NDEF,
        READ_LEN,
        bytes.fromhex("00B0000205"),
    ]


def test_read_in_250_byte_chunks():
    tag = FakeTag.with_message(bytes(range(256)) * 2 + bytes(88))

    message = NDEFFile(tag).read_message()

    assert len(message) == 600
    assert tag.reads[2:] == [
        bytes([0x00, 0xB0, 0x00, 2, 250]),
        bytes([0x00, 0xB0, 0x00, 252, 250]),
        bytes([0x00, 0xB0, 0x01, 0xF6, 100]),
    ]
    assert message == (bytes(range(256)) * 2 + bytes(88))


@pytest.mark.parametrize("length_field", [b"\x00\x00", b"\x20\x01", b"\xFF\xFF"])
def test_invalid_length_is_rejected(length_field):
    tag = FakeTag(length_field)

    with pytest.raises(InvalidLengthError):
        NDEFFile(tag).read_message()


def test_largest_valid_length_is_read():
    tag = FakeTag(b"\x20\x00", file_size=8194)

    assert len(NDEFFile(tag).read_message()) == 8192


def test_bad_status_word_fails_the_exchange():
    class RejectingTag(FakeTag):
        def transmit(self, command):
            self.commands.append(bytes(command))
            return b"\x6A\x82"

    with pytest.raises(TransportError, match="6A82"):
        NDEFFile(RejectingTag()).read_message()


def test_missing_status_fails_the_exchange():
    class MuteTag(FakeTag):
        def transmit(self, command):
            return b"\x90"

    with pytest.raises(TransportError):
        NDEFFile(MuteTag()).select_application()


def test_short_length_response_fails():
    class ShortLengthTag(FakeTag):
        def transmit(self, command):
            if bytes(command) == READ_LEN:
                return b"\x01\x90\x00"
            return super().transmit(command)

    with pytest.raises(TransportError):
        NDEFFile(ShortLengthTag()).read_message()


def test_tlv_layout():
    assert build_tlv(b"\xAA\xBB") == b"\x03\x02\xAA\xBB\xFE\x00\x00\x00"
    assert build_tlv(b"\xAA") == b"\x03\x01\xAA\xFE"
    assert build_tlv(b"") == b"\x03\x00\xFE\x00"


def test_tlv_is_padded_to_whole_blocks():
    for length in range(0, 255):
        framed = build_tlv(bytes([0x55]) * length)

        assert len(framed) % 4 == 0
        assert len(framed) >= length + 3
        assert framed[:2] == bytes([0x03, length])
        assert framed[length + 2] == 0xFE
        assert set(framed[length + 3:]) <= {0}


def test_oversized_message_is_rejected():
    with pytest.raises(MessageTooLargeError):
        build_tlv(bytes(255))


def test_write_sends_one_block_per_command():
    tag = FakeTag()
    message = b"\xD1\x01\x05T\x02enhi"

    written = NDEFFile(tag).write_message(message)

    assert written == 12
    assert tag.commands[:2] == [SELECT_APP, SELECT_NDEF]
    assert tag.writes == [
        bytes.fromhex("00D6000004") + b"\x03\x09\xD1\x01",
        bytes.fromhex("00D6000404") + b"\x05T\x02e",
        bytes.fromhex("00D6000804") + b"nhi\xFE",
    ]
    assert bytes(tag.file[:12]) == build_tlv(message)


def test_write_offsets_past_256_use_both_bytes():
    tag = FakeTag()

    NDEFFile(tag).write_message(bytes(254))

    assert tag.writes[-1][2:4] == (256).to_bytes(2, "big")


def test_oversized_write_sends_nothing():
    tag = FakeTag()

    with pytest.raises(MessageTooLargeError):
        NDEFFile(tag).write_message(bytes(300))

    assert tag.commands == []


def test_failed_block_write_stops_the_write():
    tag = FakeTag()
    tag.write_status = b"\x65\x81"

    with pytest.raises(TransportError):
        NDEFFile(tag).write_message(bytes(20))

    assert len(tag.writes) == 1


def test_written_card_reads_back_from_a_small_file(jane):
    tag = BoundedTag(file_size=256)
    message = encode(jane)

    NDEFFile(tag).write_message(message)
    raw = NDEFFile(tag).read_message()

    # the TLV header reads back as an oversized length; the tail is cut at end of file
    assert tag.reads[-1][2:5] == bytes([0x00, 252, 250])
    assert len(raw) == 254
    assert raw[:len(message)] == message
    assert decode(raw).personal_info == jane.personal_info


def test_read_stops_at_wrong_offset_status():
    tag = BoundedTag(b"\x02\x58" + bytes(range(250)), file_size=252)

    assert NDEFFile(tag).read_message() == bytes(range(250))


def test_end_of_file_before_any_data_is_invalid_length():
    tag = BoundedTag(b"\x00\x10", file_size=2)

    with pytest.raises(InvalidLengthError):
        NDEFFile(tag).read_message()


def test_end_of_file_status_keeps_partial_data():
    tag = BoundedTag(bytes(range(10)), file_size=10)
    ndef_file = NDEFFile(tag)
    ndef_file.select_ndef_file()

    with pytest.raises(EndOfFileError) as excinfo:
        ndef_file.read_binary(4, 20)

    assert excinfo.value.data == bytes(range(4, 10))
    assert "6282" in str(excinfo.value)
