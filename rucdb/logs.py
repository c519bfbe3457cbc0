"""Write-ahead log records and the in-memory log buffer."""

from __future__ import annotations

import struct
from enum import IntEnum
from typing import ClassVar

from rucdb.record import PAGE_SIZE, Rid, RmRecord

INVALID_LSN = -1
INVALID_TXN_ID = -1
LOG_BUFFER_SIZE = 1024 * PAGE_SIZE
FLUSH_TIMEOUT = 3.0  # seconds

# Header layout: log type, lsn, total length, transaction id, previous lsn.
_HEADER = struct.Struct("<iiIii")
_RID = struct.Struct("<ii")
_NAME_SIZE = struct.Struct("<Q")

OFFSET_LOG_TYPE = 0
OFFSET_LSN = 4
OFFSET_LOG_TOT_LEN = OFFSET_LSN + 4
OFFSET_LOG_TID = OFFSET_LOG_TOT_LEN + 4
OFFSET_PREV_LSN = OFFSET_LOG_TID + 4
OFFSET_LOG_DATA = OFFSET_PREV_LSN + 4
LOG_HEADER_SIZE = OFFSET_LOG_DATA


class LogType(IntEnum):
    """Kind of operation a log record describes."""

    UPDATE = 0
    INSERT = 1
    DELETE = 2
    BEGIN = 3
    COMMIT = 4
    ABORT = 5


class LogRecord:
    """A log record made of the common header only."""

    def __init__(
        self,
        log_type: LogType,
        log_tid: int = INVALID_TXN_ID,
        lsn: int = INVALID_LSN,
        prev_lsn: int = INVALID_LSN,
    ) -> None:
        self.log_type = LogType(log_type)
        self.log_tid = log_tid
        self.lsn = lsn
        self.prev_lsn = prev_lsn

    def _payload(self) -> bytes:
        return b""

    @property
    def log_tot_len(self) -> int:
        """Length in bytes of the whole serialized record."""
        return LOG_HEADER_SIZE + len(self._payload())

    def serialize(self) -> bytes:
        payload = self._payload()
        header = _HEADER.pack(
            int(self.log_type),
            self.lsn,
            LOG_HEADER_SIZE + len(payload),
            self.log_tid,
            self.prev_lsn,
        )
        return header + payload

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview) -> LogRecord:
        """Decode a record; called on ``LogRecord`` it picks the matching subclass."""
        data = bytes(data)
        if len(data) < LOG_HEADER_SIZE:
            raise ValueError(f"log record needs at least {LOG_HEADER_SIZE} bytes, got {len(data)}")
        type_value, lsn, tot_len, tid, prev_lsn = _HEADER.unpack_from(data, 0)
        try:
            log_type = LogType(type_value)
        except ValueError:
            raise ValueError(f"unknown log type: {type_value}") from None
        if tot_len < LOG_HEADER_SIZE or len(data) < tot_len:
            raise ValueError(f"log record claims {tot_len} bytes but {len(data)} are available")

        if cls is LogRecord:
            target: type[LogRecord] = _RECORD_TYPES.get(log_type, LogRecord)
        else:
            expected = getattr(cls, "LOG_TYPE", None)
            if expected is not None and log_type is not expected:
                raise ValueError(f"expected a {expected.name} record, got {log_type.name}")
            target = cls

        record = target._decode(log_type, data[LOG_HEADER_SIZE:tot_len])
        record.lsn = lsn
        record.log_tid = tid
        record.prev_lsn = prev_lsn
        return record

    @classmethod
    def _decode(cls, log_type: LogType, payload: bytes) -> LogRecord:
        if payload:
            raise ValueError(f"{log_type.name} record has {len(payload)} unexpected payload bytes")
        return cls(log_type)

    def format(self) -> str:
        """Human-readable description of the record, one field per line."""
        return "\n".join(
            [
                "Print Log Record:",
                f"log_type_: {self.log_type.name}",
                f"lsn: {self.lsn}",
                f"log_tot_len: {self.log_tot_len}",
                f"log_tid: {self.log_tid}",
                f"prev_lsn: {self.prev_lsn}",
            ]
        )

    def _key(self) -> tuple:
        return (self.log_type, self.lsn, self.log_tid, self.prev_lsn, self._payload())

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()  # type: ignore[attr-defined]

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(log_type={self.log_type.name}, lsn={self.lsn}, "
            f"log_tid={self.log_tid}, prev_lsn={self.prev_lsn})"
        )

    def __str__(self) -> str:
        return self.format()


class _TxnLogRecord(LogRecord):
    """Header-only record marking a transaction boundary."""

    LOG_TYPE: ClassVar[LogType]

    def __init__(self, txn_id: int = INVALID_TXN_ID) -> None:
        super().__init__(self.LOG_TYPE, txn_id)

    @classmethod
    def _decode(cls, log_type: LogType, payload: bytes) -> LogRecord:
        if payload:
            raise ValueError(f"{log_type.name} record has {len(payload)} unexpected payload bytes")
        return cls()


class BeginLogRecord(_TxnLogRecord):
    """Start of a transaction."""

    LOG_TYPE = LogType.BEGIN

    def __init__(self, txn_id: int = INVALID_TXN_ID) -> None:
        super().__init__(txn_id)


class CommitLogRecord(_TxnLogRecord):
    """Commit of a transaction."""

    LOG_TYPE = LogType.COMMIT

    def __init__(self, txn_id: int = INVALID_TXN_ID) -> None:
        super().__init__(txn_id)


class AbortLogRecord(_TxnLogRecord):
    """Abort of a transaction."""

    LOG_TYPE = LogType.ABORT

    def __init__(self, txn_id: int = INVALID_TXN_ID) -> None:
        super().__init__(txn_id)


class InsertLogRecord(LogRecord):
    """Insertion of a record into a table at a given location."""

    LOG_TYPE: ClassVar[LogType] = LogType.INSERT

    def __init__(
        self,
        txn_id: int = INVALID_TXN_ID,
        insert_value: RmRecord | None = None,
        rid: Rid | None = None,
        table_name: str = "",
    ) -> None:
        super().__init__(LogType.INSERT, txn_id)
        self.insert_value = insert_value if insert_value is not None else RmRecord(b"")
        self.rid = rid if rid is not None else Rid(-1, -1)
        self.table_name = table_name

    def _payload(self) -> bytes:
        name = self.table_name.encode("utf-8")
        return (
            self.insert_value.serialize()
            + _RID.pack(self.rid.page_no, self.rid.slot_no)
            + _NAME_SIZE.pack(len(name))
            + name
        )

    def serialize(self) -> bytes:
        return super().serialize()

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview) -> InsertLogRecord:
        record = super().from_bytes(data)
        assert isinstance(record, InsertLogRecord)
        return record

    @classmethod
    def _decode(cls, log_type: LogType, payload: bytes) -> LogRecord:
        value = RmRecord.from_bytes(payload)
        offset = 4 + value.size
        if len(payload) < offset + _RID.size + _NAME_SIZE.size:
            raise ValueError("insert log record is truncated")
        page_no, slot_no = _RID.unpack_from(payload, offset)
        offset += _RID.size
        (name_size,) = _NAME_SIZE.unpack_from(payload, offset)
        offset += _NAME_SIZE.size
        if len(payload) != offset + name_size:
            raise ValueError("insert log record table name does not match its length")
        name = payload[offset:offset + name_size].decode("utf-8")
        return cls(insert_value=value, rid=Rid(page_no, slot_no), table_name=name)

    def format(self) -> str:
        shown = self.insert_value.data.split(b"\0", 1)[0].decode("utf-8", errors="replace")
        return "\n".join(
            [
                "insert record",
                super().format(),
                f"insert_value: {shown}",
                f"insert rid: {self.rid.page_no}, {self.rid.slot_no}",
                f"table name: {self.table_name}",
            ]
        )


_RECORD_TYPES: dict[LogType, type[LogRecord]] = {
    LogType.BEGIN: BeginLogRecord,
    LogType.COMMIT: CommitLogRecord,
    LogType.ABORT: AbortLogRecord,
    LogType.INSERT: InsertLogRecord,
}


class LogBuffer:
    """Fixed-capacity buffer that serialized log records are appended to."""

    def __init__(self, capacity: int = LOG_BUFFER_SIZE) -> None:
        if capacity <= 0:
            raise ValueError(f"log buffer capacity must be positive: {capacity}")
        self.capacity = capacity
        self._buffer = bytearray(capacity)
        self.offset = 0

    def is_full(self, append_size: int) -> bool:
        """Return True if ``append_size`` more bytes would not fit."""
        return self.offset + append_size > self.capacity

    def append(self, data: bytes | bytearray | memoryview) -> int:
        """Copy ``data`` into the buffer and return the offset it was written at."""
        size = len(data)
        if self.is_full(size):
            raise BufferError(f"{size} bytes do not fit: {self.capacity - self.offset} free")
        start = self.offset
        self._buffer[start:start + size] = data
        self.offset += size
        return start

    def clear(self) -> None:
        """Discard everything written so far."""
        self._buffer[:self.offset] = bytes(self.offset)
        self.offset = 0

    @property
    def data(self) -> bytes:
        """The bytes written so far."""
        return bytes(self._buffer[:self.offset])

    def __len__(self) -> int:
        return self.offset