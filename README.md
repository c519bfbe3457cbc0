# rucdb

Building blocks for a small relational database engine, in pure Python with
no dependencies outside the standard library.

## What is inside

### `rucdb.replacer`

- `Replacer` is the abstract interface: `victim()`, `pin(frame_id)`,
  `unpin(frame_id)` and `len()`.
- `LRUReplacer(num_pages)` keeps the frames that may be evicted. `unpin`
  makes a frame evictable and marks it as the most recently used. `pin`
  removes it. `victim()` removes and returns the least recently unpinned
  frame, or `None` when no frame can be evicted. The replacer is guarded by a
  lock, and supports `len()` and `in`.

### `rucdb.bitmap`

Functions for slot bitmaps stored in a `bytearray`. Bit 0 is the highest bit
of the first byte.

- `new_bitmap(size)` returns a zeroed bitmap of `size` bytes.
- `set_bit`, `reset_bit` and `is_set` work on a single bit.
- `next_bit(bit, bm, max_n, curr)` returns the first position in
  `[curr + 1, max_n)` whose bit equals `bit`, or `max_n` if there is none.
- `first_bit(bit, bm, max_n)` does the same search starting from 0.

### `rucdb.record`

A record layer for fixed-size records in slotted pages.

- `PageStore(page_size=4096)` holds paged files in memory and addresses
  them by file descriptor. It has `create_file`, `destroy_file`, `open_file`,
  `close_file`, `read_page`, `write_page` and `new_page`.
- `RmManager(store)` has the following methods:
  - `create_file(filename, record_size)` creates a file and writes its header
    page. A record size outside `1..512` raises `InvalidRecordSizeError`.
  - `open_file` returns an `RmFileHandle`.
  - `close_file` writes the header back and closes the file.
  - `destroy_file` removes a file.
- `RmFileHandle` has `insert_record(buf)`, `insert_record_at(rid, buf)`,
  `get_record(rid)`, `update_record(rid, buf)`, `delete_record(rid)`,
  `is_record(rid)` and `flush()`. Records are addressed by `Rid(page_no,
  slot_no)`. The handle keeps a list of pages that have free slots. A buffer
  of the wrong length raises `ValueError`. A page number outside the file
  raises `PageNotExistError`.
- `RmScan(file_handle)` visits every stored record's `Rid` in page and slot
  order. You can step through it with `next()`, `is_end()` and `rid()`, or
  iterate over it directly.
- `RmFileHdr` and `RmRecord` are the file header and a record's bytes. Both
  convert to and from bytes.

### `rucdb.logs`

Write-ahead log records and a bounded buffer for them.

- `LogType` lists the record kinds: `UPDATE`, `INSERT`, `DELETE`, `BEGIN`,
  `COMMIT` and `ABORT`.
- The record classes are `BeginLogRecord`, `CommitLogRecord`,
  `AbortLogRecord` and `InsertLogRecord`.
  - `serialize()` turns a record into bytes: a 20-byte little-endian header,
    then the payload.
  - `LogRecord.from_bytes` decodes a record back into the matching subclass.
  - `format()` gives a readable dump.
- `LogBuffer(capacity)` has `append(data)`, which returns the offset the data
  was written at and raises `BufferError` when the data does not fit. It also
  has `is_full(append_size)`, `clear()`, `data` and `len()`.

### `rucdb.ast`

Dataclass nodes for SQL statements, and two printers for a tree.

- Statements: `CreateTable`, `DropTable`, `DescTable`, `CreateIndex`,
  `DropIndex`, `InsertStmt`, `DeleteStmt`, `UpdateStmt`, `SelectStmt`,
  `SetStmt`, `Help`, `ShowTables`, `TxnBegin`, `TxnCommit`, `TxnAbort` and
  `TxnRollback`.
- Parts of statements: `ColDef`, `TypeLen`, `Col`, `IntLit`, `FloatLit`,
  `StringLit`, `BoolLit`, `SetClause`, `BinaryExpr`, `OrderBy` and
  `JoinExpr`.
- Enumerations: `SvType`, `SvCompOp`, `OrderByDir`, `JoinType` and
  `SetKnobType`.

`format_tree(node)` returns an indented text dump of a tree. `print_tree(node,
file=None)` writes that dump to a file, or to standard output when no file is
given. The dump of a `SELECT` lists its columns, tables and conditions. A node
that the printer does not handle raises `TypeError`; `SetStmt` and `BoolLit`
are among these.

## What it does not do

- There is no SQL parser. Syntax trees are built by constructing the node
  classes directly.
- There is no buffer pool manager and no disk I/O. `PageStore` keeps pages in
  memory only, and they are gone when the process ends.
- There is no log manager that hands out log sequence numbers, and no
  recovery. The package defines log records and a buffer to write them into.
  There are no log record classes for update or delete.
- There is no query executor, catalogue, or command-line shell.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Example

```python
from rucdb.record import PageStore, RmManager, RmScan

store = PageStore(4096)
manager = RmManager(store)
manager.create_file("people.tbl", 8)

handle = manager.open_file("people.tbl")
rid = handle.insert_record(b"alice\0\0\0")
print(handle.get_record(rid).data)

for rid in RmScan(handle):
    print(rid)

manager.close_file(handle)
```

```python
from rucdb.replacer import LRUReplacer

replacer = LRUReplacer(3)
replacer.unpin(1)
replacer.unpin(2)
print(replacer.victim())  # 1, the least recently unpinned frame
print(len(replacer))      # 1
```

```python
from rucdb.ast import Col, SelectStmt, format_tree

stmt = SelectStmt(cols=[Col("tb", "a")], tabs=["tb"], conds=[])
print(format_tree(stmt), end="")
```