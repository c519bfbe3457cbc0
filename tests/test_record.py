import pytest

from rucdb.record import (
    RM_MAX_RECORD_SIZE,
    RM_NO_PAGE,
    FileNotClosedError,
    InvalidRecordSizeError,
    PageNotExistError,
    PageStore,
    Rid,
    RmFileHdr,
    RmManager,
    RmRecord,
    RmScan,
)


def _record(i, size=16):
    return bytes([i % 256]) * size


@pytest.fixture
def manager():
    return RmManager(PageStore(page_size=128))


@pytest.fixture
def handle(manager):
    manager.create_file("tb", 16)
    return manager.open_file("tb")


def test_record_serialize_wire_format():
    assert RmRecord(b"abc").serialize() == b"\x03\x00\x00\x00abc"


def test_record_round_trip():
    rec = RmRecord(b"hello world")
    assert RmRecord.from_bytes(rec.serialize()) == rec
    assert rec.size == len(b"hello world")


def test_record_truncated_raises():
    with pytest.raises(ValueError):
        RmRecord.from_bytes(RmRecord(b"abcdef").serialize()[:-2])


def test_file_hdr_round_trip():
    hdr = RmFileHdr(16, 3, 6, RM_NO_PAGE, 1)
    assert RmFileHdr.from_bytes(hdr.to_bytes()) == hdr


@pytest.mark.parametrize("size", [0, -1, RM_MAX_RECORD_SIZE + 1])
def test_invalid_record_size(manager, size):
    with pytest.raises(InvalidRecordSizeError):
        manager.create_file("bad", size)


def test_new_file_header(manager):
    manager.create_file("big", RM_MAX_RECORD_SIZE)
    manager.create_file("tb", 16)
    fh = manager.open_file("tb")
    hdr = fh.file_hdr
    assert hdr.num_pages == 1
    assert hdr.first_free_page_no == RM_NO_PAGE
    assert hdr.record_size == 16
    assert hdr.bitmap_size * 8 >= hdr.num_records_per_page
    assert 8 + hdr.bitmap_size + hdr.num_records_per_page * 16 <= 128


def test_insert_and_get(handle):
    rid = handle.insert_record(_record(7))
    assert rid.page_no == 1
    assert handle.is_record(rid)
    assert handle.get_record(rid).data == _record(7)


def test_wrong_buffer_size(handle):
    with pytest.raises(ValueError):
        handle.insert_record(b"short")


def test_filling_page_allocates_new_page(handle):
    per_page = handle.file_hdr.num_records_per_page
    rids = [handle.insert_record(_record(i)) for i in range(per_page + 1)]
    assert len(set(rids)) == len(rids)
    assert {r.page_no for r in rids[:per_page]} == {1}
    assert rids[per_page].page_no == 2
    assert handle.file_hdr.num_pages == 3
    for i, rid in enumerate(rids):
        assert handle.get_record(rid).data == _record(i)


def test_delete_frees_slot_for_reuse(handle):
    per_page = handle.file_hdr.num_records_per_page
    rids = [handle.insert_record(_record(i)) for i in range(per_page)]
    assert handle.file_hdr.first_free_page_no == RM_NO_PAGE
    handle.delete_record(rids[2])
    assert not handle.is_record(rids[2])
    assert handle.file_hdr.first_free_page_no == 1
    assert handle.insert_record(_record(99)) == rids[2]
    assert handle.get_record(rids[2]).data == _record(99)


def test_update_record(handle):
    rid = handle.insert_record(_record(1))
    handle.update_record(rid, _record(2))
    assert handle.get_record(rid).data == _record(2)


def test_insert_record_at(handle):
    rid = handle.insert_record(_record(1))
    handle.delete_record(rid)
    handle.insert_record_at(rid, _record(5))
    assert handle.is_record(rid)
    assert handle.get_record(rid).data == _record(5)


def test_fetch_missing_page(handle):
    with pytest.raises(PageNotExistError):
        handle.fetch_page_handle(5)
    with pytest.raises(PageNotExistError):
        handle.get_record(Rid(-2, 0))


def test_scan_empty_file(handle):
    scan = RmScan(handle)
    assert scan.is_end()
    assert list(scan) == []


def test_scan_visits_all_records(handle):
    per_page = handle.file_hdr.num_records_per_page
    rids = [handle.insert_record(_record(i)) for i in range(2 * per_page + 1)]
    handle.delete_record(rids[0])
    handle.delete_record(rids[per_page])
    expected = [r for r in rids if r not in (rids[0], rids[per_page])]
    assert list(RmScan(handle)) == sorted(expected)


def test_scan_next_and_rid(handle):
    a = handle.insert_record(_record(1))
    b = handle.insert_record(_record(2))
    scan = RmScan(handle)
    assert scan.rid() == a
    scan.next()
    assert scan.rid() == b
    scan.next()
    assert scan.is_end()


def test_close_and_reopen_persists(manager, handle):
    rid = handle.insert_record(_record(3))
    hdr = RmFileHdr(**vars(handle.file_hdr))
    manager.close_file(handle)
    reopened = manager.open_file("tb")
    assert reopened.file_hdr == hdr
    assert reopened.get_record(rid).data == _record(3)


def test_store_errors(manager):
    store = manager.store
    manager.create_file("tb", 8)
    with pytest.raises(FileExistsError):
        manager.create_file("tb", 8)
    with pytest.raises(FileNotFoundError):
        manager.open_file("missing")
    fh = manager.open_file("tb")
    with pytest.raises(FileNotClosedError):
        manager.destroy_file("tb")
    manager.close_file(fh)
    manager.destroy_file("tb")
    with pytest.raises(FileNotFoundError):
        store.open_file("tb")


def test_store_write_and_read_page():
    store = PageStore(page_size=32)
    store.create_file("f")
    fd = store.open_file("f")
    store.write_page(fd, 1, b"xyz")
    assert store.read_page(fd, 1)[:3] == b"xyz"
    assert len(store.read_page(fd, 0)) == 32
    page_no, page = store.new_page(fd)
    assert page_no == 2
    assert page == bytearray(32)
    with pytest.raises(ValueError):
        store.write_page(fd, 0, bytes(33))