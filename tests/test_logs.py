import struct

import pytest

from rucdb.logs import (
    INVALID_LSN,
    INVALID_TXN_ID,
    LOG_HEADER_SIZE,
    OFFSET_LOG_DATA,
    AbortLogRecord,
    BeginLogRecord,
    CommitLogRecord,
    InsertLogRecord,
    LogBuffer,
    LogRecord,
    LogType,
)
from rucdb.record import Rid, RmRecord


def _insert_record():
    rec = InsertLogRecord(5, RmRecord(b"abcd"), Rid(1, 2), "tb")
    rec.lsn = 10
    rec.prev_lsn = 9
    return rec


@pytest.mark.parametrize(
    "record, expected",
    [
        (InsertLogRecord(1, RmRecord(b"ab"), Rid(1, 0), "t"), 1),
        (BeginLogRecord(1), 3),
        (CommitLogRecord(1), 4),
        (AbortLogRecord(1), 5),
    ],
)
def test_log_type_values_follow_declaration_order(record, expected):
    data = record.serialize()
    assert data[:4] == expected.to_bytes(4, "little")
    assert LogType(expected) is record.log_type
    assert [LogType(i).name for i in range(6)] == ["UPDATE", "INSERT", "DELETE", "BEGIN", "COMMIT", "ABORT"]


def test_header_size_matches_data_offset():
    data = CommitLogRecord(3).serialize()
    assert len(data) == LOG_HEADER_SIZE
    assert LOG_HEADER_SIZE == OFFSET_LOG_DATA == 20


def test_begin_record_defaults():
    rec = BeginLogRecord()
    assert rec.log_type is LogType.BEGIN
    assert rec.lsn == INVALID_LSN
    assert rec.log_tid == INVALID_TXN_ID
    assert rec.prev_lsn == INVALID_LSN
    assert rec.log_tot_len == LOG_HEADER_SIZE


def test_begin_record_serialized_type_field():
    data = BeginLogRecord(7).serialize()
    assert len(data) == LOG_HEADER_SIZE
    assert data[:4] == int(LogType.BEGIN).to_bytes(4, "little")


@pytest.mark.parametrize("cls", [BeginLogRecord, CommitLogRecord, AbortLogRecord])
def test_txn_records_round_trip(cls):
    rec = cls(42)
    rec.lsn = 3
    rec.prev_lsn = 2
    decoded = cls.from_bytes(rec.serialize())
    assert decoded == rec
    assert decoded.log_tid == 42


@pytest.mark.parametrize("cls", [BeginLogRecord, CommitLogRecord, AbortLogRecord, InsertLogRecord])
def test_base_from_bytes_dispatches_to_subclass(cls):
    rec = cls(11)
    decoded = LogRecord.from_bytes(rec.serialize())
    assert type(decoded) is cls
    assert decoded == rec


def test_insert_record_round_trip():
    rec = _insert_record()
    decoded = InsertLogRecord.from_bytes(rec.serialize())
    assert decoded.insert_value == RmRecord(b"abcd")
    assert decoded.rid == Rid(1, 2)
    assert decoded.table_name == "tb"
    assert decoded.lsn == 10
    assert decoded.prev_lsn == 9
    assert decoded.log_tid == 5
    assert decoded == rec


def test_insert_total_length_matches_serialized_size():
    rec = _insert_record()
    data = rec.serialize()
    assert rec.log_tot_len == len(data)
    (tot_len,) = struct.unpack_from("<I", data, 8)
    assert tot_len == len(data)


def test_insert_payload_starts_with_record_value():
    rec = _insert_record()
    data = rec.serialize()
    assert data[LOG_HEADER_SIZE:].startswith(RmRecord(b"abcd").serialize())
    assert data.endswith(b"tb")


def test_from_bytes_ignores_trailing_bytes_past_total_length():
    rec = CommitLogRecord(4)
    decoded = LogRecord.from_bytes(rec.serialize() + b"\xff\xff")
    assert decoded == rec


def test_consecutive_records_decode_from_buffer():
    first = BeginLogRecord(1)
    second = _insert_record()
    buf = LogBuffer(1024)
    buf.append(first.serialize())
    start = buf.append(second.serialize())
    data = buf.data
    assert LogRecord.from_bytes(data) == first
    assert LogRecord.from_bytes(data[start:]) == second


def test_from_bytes_rejects_short_data():
    with pytest.raises(ValueError):
        LogRecord.from_bytes(b"\x00" * (LOG_HEADER_SIZE - 1))


def test_from_bytes_rejects_unknown_type():
    data = bytearray(BeginLogRecord(1).serialize())
    data[:4] = (99).to_bytes(4, "little")
    with pytest.raises(ValueError):
        LogRecord.from_bytes(bytes(data))


def test_subclass_from_bytes_rejects_other_type():
    with pytest.raises(ValueError):
        CommitLogRecord.from_bytes(BeginLogRecord(1).serialize())


def test_from_bytes_rejects_truncated_insert():
    data = _insert_record().serialize()
    with pytest.raises(ValueError):
        LogRecord.from_bytes(data[:-1])


def test_format_lists_header_fields():
    text = _insert_record().format()
    assert "log_type_: INSERT" in text
    assert "lsn: 10" in text
    assert "insert rid: 1, 2" in text
    assert "table name: tb" in text
    assert "insert_value: abcd" in text


def test_records_of_different_kind_are_not_equal():
    assert BeginLogRecord(1) != CommitLogRecord(1)
    assert BeginLogRecord(1) == BeginLogRecord(1)
    assert BeginLogRecord(1) != BeginLogRecord(2)


def test_log_buffer_is_full():
    buf = LogBuffer(16)
    assert not buf.is_full(16)
    assert buf.is_full(17)
    buf.append(b"x" * 10)
    assert not buf.is_full(6)
    assert buf.is_full(7)


def test_log_buffer_append_returns_offsets():
    buf = LogBuffer(16)
    assert buf.append(b"abc") == 0
    assert buf.append(b"de") == 3
    assert buf.data == b"abcde"
    assert len(buf) == 5


def test_log_buffer_overflow_raises():
    buf = LogBuffer(4)
    buf.append(b"abc")
    with pytest.raises(BufferError):
        buf.append(b"de")
    assert buf.data == b"abc"


def test_log_buffer_clear():
    buf = LogBuffer(8)
    buf.append(b"abc")
    buf.clear()
    assert buf.data == b""
    assert buf.append(b"z") == 0


def test_log_buffer_rejects_bad_capacity():
    with pytest.raises(ValueError):
        LogBuffer(0)