"""Fixed-size record files: slotted pages with a free-page list, and scans over them."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterator

from rucdb.bitmap import BITMAP_WIDTH, first_bit, is_set, new_bitmap, next_bit, reset_bit, set_bit

PAGE_SIZE = 4096

RM_NO_PAGE = -1
RM_FILE_HDR_PAGE = 0
RM_FIRST_RECORD_PAGE = 1
RM_MAX_RECORD_SIZE = 512

_FILE_HDR = struct.Struct("<5i")
_PAGE_HDR = struct.Struct("<2i")
_RECORD_SIZE = struct.Struct("<i")


class RecordError(Exception):
    """Base class for record-layer errors."""


class PageNotExistError(RecordError):
    """A page number outside the file was requested."""

    def __init__(self, page_no: int, where: str = "") -> None:
        self.page_no = page_no
        message = f"page {page_no} does not exist"
        if where:
            message += f" in {where}"
        super().__init__(message)


class InvalidRecordSizeError(RecordError):
    """A record size outside ``1..RM_MAX_RECORD_SIZE`` was given."""

    def __init__(self, record_size: int) -> None:
        self.record_size = record_size
        super().__init__(f"invalid record size: {record_size}")


class FileNotOpenError(OSError):
    """An operation used a file descriptor that is not open."""


class FileNotClosedError(OSError):
    """An operation needs a file to be closed, but it is open."""


@dataclass(frozen=True, order=True)
class Rid:
    """Location of a record: page number and slot number."""

    page_no: int
    slot_no: int


@dataclass
class RmFileHdr:
    """Metadata of a record file, stored in page 0."""

    record_size: int
    num_pages: int
    num_records_per_page: int
    first_free_page_no: int
    bitmap_size: int

    def to_bytes(self) -> bytes:
        return _FILE_HDR.pack(
            self.record_size,
            self.num_pages,
            self.num_records_per_page,
            self.first_free_page_no,
            self.bitmap_size,
        )

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview) -> RmFileHdr:
        if len(data) < _FILE_HDR.size:
            raise ValueError(f"file header needs {_FILE_HDR.size} bytes, got {len(data)}")
        return cls(*_FILE_HDR.unpack_from(data, 0))


@dataclass
class RmRecord:
    """The bytes of one record."""

    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    def serialize(self) -> bytes:
        """Return the record as a 4-byte little-endian size followed by its bytes."""
        return _RECORD_SIZE.pack(self.size) + bytes(self.data)

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview) -> RmRecord:
        if len(data) < _RECORD_SIZE.size:
            raise ValueError("record data too short for its size prefix")
        (size,) = _RECORD_SIZE.unpack_from(data, 0)
        end = _RECORD_SIZE.size + size
        if size < 0 or len(data) < end:
            raise ValueError(f"record claims {size} bytes but only {len(data) - _RECORD_SIZE.size} follow")
        return cls(bytes(data[_RECORD_SIZE.size:end]))


class PageStore:
    """In-memory paged files addressed by file descriptors.

    Pages returned by ``read_page`` and ``new_page`` are the live buffers:
    changes to them are visible to every later reader.
    """

    def __init__(self, page_size: int = PAGE_SIZE) -> None:
        if page_size <= 0:
            raise ValueError(f"page size must be positive: {page_size}")
        self.page_size = page_size
        self._files: dict[str, list[bytearray]] = {}
        self._open: dict[int, str] = {}
        self._next_fd = 3

    def create_file(self, filename: str) -> None:
        if filename in self._files:
            raise FileExistsError(filename)
        self._files[filename] = []

    def destroy_file(self, filename: str) -> None:
        if filename not in self._files:
            raise FileNotFoundError(filename)
        if filename in self._open.values():
            raise FileNotClosedError(filename)
        del self._files[filename]

    def open_file(self, filename: str) -> int:
        if filename not in self._files:
            raise FileNotFoundError(filename)
        if filename in self._open.values():
            raise FileNotClosedError(filename)
        fd = self._next_fd
        self._next_fd += 1
        self._open[fd] = filename
        return fd

    def close_file(self, fd: int) -> None:
        if self._open.pop(fd, None) is None:
            raise FileNotOpenError(f"file descriptor {fd} is not open")

    def _pages(self, fd: int) -> list[bytearray]:
        try:
            return self._files[self._open[fd]]
        except KeyError:
            raise FileNotOpenError(f"file descriptor {fd} is not open") from None

    def read_page(self, fd: int, page_no: int) -> bytearray:
        pages = self._pages(fd)
        if not 0 <= page_no < len(pages):
            raise PageNotExistError(page_no, self._open[fd])
        return pages[page_no]

    def write_page(self, fd: int, page_no: int, data: bytes | bytearray | memoryview) -> None:
        pages = self._pages(fd)
        if page_no < 0:
            raise PageNotExistError(page_no, self._open[fd])
        if len(data) > self.page_size:
            raise ValueError(f"{len(data)} bytes do not fit in a page of {self.page_size}")
        while len(pages) <= page_no:
            pages.append(bytearray(self.page_size))
        padded = bytes(data) + bytes(self.page_size - len(data))
        pages[page_no][:] = padded

    def new_page(self, fd: int) -> tuple[int, bytearray]:
        """Append a zeroed page to the file and return its number and buffer."""
        pages = self._pages(fd)
        page = bytearray(self.page_size)
        pages.append(page)
        return len(pages) - 1, page


class RmPageHandle:
    """View of one data page: page header, then bitmap, then record slots."""

    def __init__(self, file_hdr: RmFileHdr, page_no: int, page: bytearray) -> None:
        self.file_hdr = file_hdr
        self.page_no = page_no
        self.page = page
        start = _PAGE_HDR.size
        self.bitmap = memoryview(page)[start:start + file_hdr.bitmap_size]
        self._slots_offset = start + file_hdr.bitmap_size

    @property
    def next_free_page_no(self) -> int:
        return _PAGE_HDR.unpack_from(self.page, 0)[0]

    @next_free_page_no.setter
    def next_free_page_no(self, value: int) -> None:
        _PAGE_HDR.pack_into(self.page, 0, value, self.num_records)

    @property
    def num_records(self) -> int:
        return _PAGE_HDR.unpack_from(self.page, 0)[1]

    @num_records.setter
    def num_records(self, value: int) -> None:
        _PAGE_HDR.pack_into(self.page, 0, self.next_free_page_no, value)

    def _slot_range(self, slot_no: int) -> tuple[int, int]:
        size = self.file_hdr.record_size
        start = self._slots_offset + slot_no * size
        return start, start + size

    def get_slot(self, slot_no: int) -> bytes:
        start, end = self._slot_range(slot_no)
        return bytes(self.page[start:end])

    def set_slot(self, slot_no: int, data: bytes | bytearray | memoryview) -> None:
        if len(data) != self.file_hdr.record_size:
            raise ValueError(f"record must be {self.file_hdr.record_size} bytes, got {len(data)}")
        start, end = self._slot_range(slot_no)
        self.page[start:end] = data


class RmFileHandle:
    """Access to the records of one open table file."""

    def __init__(self, store: PageStore, fd: int) -> None:
        self.store = store
        self.fd = fd
        self.file_hdr = RmFileHdr.from_bytes(store.read_page(fd, RM_FILE_HDR_PAGE))

    def is_record(self, rid: Rid) -> bool:
        return is_set(self.fetch_page_handle(rid.page_no).bitmap, rid.slot_no)

    def get_record(self, rid: Rid) -> RmRecord:
        return RmRecord(self.fetch_page_handle(rid.page_no).get_slot(rid.slot_no))

    def insert_record(self, buf: bytes | bytearray) -> Rid:
        """Store ``buf`` in the first free slot and return where it went."""
        self._check_size(buf)
        handle = self._create_page_handle()
        slot_no = first_bit(False, handle.bitmap, self.file_hdr.num_records_per_page)
        self._fill_slot(handle, slot_no, buf)
        return Rid(handle.page_no, slot_no)

    def insert_record_at(self, rid: Rid, buf: bytes | bytearray) -> None:
        """Store ``buf`` at a given location."""
        self._check_size(buf)
        self._fill_slot(self.fetch_page_handle(rid.page_no), rid.slot_no, buf)

    def delete_record(self, rid: Rid) -> None:
        handle = self.fetch_page_handle(rid.page_no)
        reset_bit(handle.bitmap, rid.slot_no)
        handle.num_records -= 1
        if handle.num_records == self.file_hdr.num_records_per_page - 1:
            self._release_page_handle(handle)

    def update_record(self, rid: Rid, buf: bytes | bytearray) -> None:
        self._check_size(buf)
        self.fetch_page_handle(rid.page_no).set_slot(rid.slot_no, buf)

    def fetch_page_handle(self, page_no: int) -> RmPageHandle:
        if not 0 <= page_no < self.file_hdr.num_pages:
            raise PageNotExistError(page_no)
        return RmPageHandle(self.file_hdr, page_no, self.store.read_page(self.fd, page_no))

    def create_new_page_handle(self) -> RmPageHandle:
        """Allocate a page and make it the head of the free-page list."""
        page_no, page = self.store.new_page(self.fd)
        handle = RmPageHandle(self.file_hdr, page_no, page)
        handle.bitmap[:] = new_bitmap(self.file_hdr.bitmap_size)
        handle.num_records = 0
        handle.next_free_page_no = self.file_hdr.first_free_page_no
        self.file_hdr.first_free_page_no = page_no
        self.file_hdr.num_pages += 1
        return handle

    def flush(self) -> None:
        """Write the file header back to page 0."""
        self.store.write_page(self.fd, RM_FILE_HDR_PAGE, self.file_hdr.to_bytes())

    def _check_size(self, buf: bytes | bytearray) -> None:
        if len(buf) != self.file_hdr.record_size:
            raise ValueError(f"record must be {self.file_hdr.record_size} bytes, got {len(buf)}")

    def _fill_slot(self, handle: RmPageHandle, slot_no: int, buf: bytes | bytearray) -> None:
        handle.set_slot(slot_no, buf)
        set_bit(handle.bitmap, slot_no)
        handle.num_records += 1
        if handle.num_records == self.file_hdr.num_records_per_page:
            self.file_hdr.first_free_page_no = handle.next_free_page_no

    def _create_page_handle(self) -> RmPageHandle:
        if self.file_hdr.first_free_page_no == RM_NO_PAGE:
            return self.create_new_page_handle()
        return self.fetch_page_handle(self.file_hdr.first_free_page_no)

    def _release_page_handle(self, handle: RmPageHandle) -> None:
        handle.next_free_page_no = self.file_hdr.first_free_page_no
        self.file_hdr.first_free_page_no = handle.page_no


class RmManager:
    """Creates, opens, closes and removes table files."""

    def __init__(self, store: PageStore) -> None:
        self.store = store

    def create_file(self, filename: str, record_size: int) -> None:
        if not 1 <= record_size <= RM_MAX_RECORD_SIZE:
            raise InvalidRecordSizeError(record_size)
        self.store.create_file(filename)
        fd = self.store.open_file(filename)
        try:
            per_page = (BITMAP_WIDTH * (self.store.page_size - 1 - _FILE_HDR.size) + 1) // (
                1 + record_size * BITMAP_WIDTH
            )
            file_hdr = RmFileHdr(
                record_size=record_size,
                num_pages=1,
                num_records_per_page=per_page,
                first_free_page_no=RM_NO_PAGE,
                bitmap_size=(per_page + BITMAP_WIDTH - 1) // BITMAP_WIDTH,
            )
            self.store.write_page(fd, RM_FILE_HDR_PAGE, file_hdr.to_bytes())
        finally:
            self.store.close_file(fd)

    def destroy_file(self, filename: str) -> None:
        self.store.destroy_file(filename)

    def open_file(self, filename: str) -> RmFileHandle:
        return RmFileHandle(self.store, self.store.open_file(filename))

    def close_file(self, file_handle: RmFileHandle) -> None:
        file_handle.flush()
        self.store.close_file(file_handle.fd)


class RmScan:
    """Walks the locations of all stored records in page and slot order."""

    def __init__(self, file_handle: RmFileHandle) -> None:
        self.file_handle = file_handle
        self._rid = Rid(RM_NO_PAGE, -1)
        self._advance(RM_FIRST_RECORD_PAGE, -1)

    def _advance(self, page_no: int, slot_no: int) -> None:
        hdr = self.file_handle.file_hdr
        while page_no < hdr.num_pages:
            handle = self.file_handle.fetch_page_handle(page_no)
            slot_no = next_bit(True, handle.bitmap, hdr.num_records_per_page, slot_no)
            if slot_no < hdr.num_records_per_page:
                self._rid = Rid(page_no, slot_no)
                return
            page_no += 1
            slot_no = -1
        self._rid = Rid(RM_NO_PAGE, -1)

    def next(self) -> None:
        if not self.is_end():
            self._advance(self._rid.page_no, self._rid.slot_no)

    def is_end(self) -> bool:
        return self._rid.page_no == RM_NO_PAGE

    def rid(self) -> Rid:
        return self._rid

    def __iter__(self) -> Iterator[Rid]:
        while not self.is_end():
            yield self._rid
            self.next()