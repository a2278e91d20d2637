"""
Payload encoders for typed records and Arrow data.

CSV is written with pyarrow's CSV writer, without header row and without
quoting, which is how the server parses CSV by default; values containing the
separator are rejected. JSON is written as a single array of objects whose
keys follow the column order.
"""

import io
from typing import Any, Dict, List, Optional, Union

import pyarrow as pa
import pyarrow.compute as pc
from pyarrow import csv
from pydantic import TypeAdapter

from .errors import ConfigurationError, EncodeError

# StarRocks reads \N as NULL in CSV payloads
CSV_NULL = '\\N'

_rows_adapter = TypeAdapter(List[Dict[str, Any]])


def encode_json(rows: List[Dict[str, Any]]) -> bytes:
    """Serialize rows as a JSON array."""
    try:
        return _rows_adapter.dump_json(rows)
    except Exception as e:
        raise EncodeError(f'Failed to marshal records to JSON: {e}') from e


def encode_csv(rows: List[Dict[str, Any]], column_separator: str = ',', row_delimiter: str = '') -> bytes:
    """Serialize rows as headerless CSV, in the key order of the rows."""
    try:
        table = pa.Table.from_pylist(rows)
    except (pa.ArrowInvalid, pa.ArrowTypeError) as e:
        raise EncodeError(f'Failed to marshal records to CSV: {e}') from e
    return encode_arrow_csv(table, column_separator, row_delimiter)


def encode_arrow_csv(
    data: Union[pa.Table, pa.RecordBatch], column_separator: str = ',', row_delimiter: str = ''
) -> bytes:
    """Write Arrow data as headerless CSV with \\N for nulls."""
    if len(column_separator) != 1:
        raise ConfigurationError(
            f'CSV marshaling needs a single-character column separator, got {column_separator!r}'
        )

    options = {'include_header': False, 'delimiter': column_separator, 'quoting_style': 'none'}
    if row_delimiter:
        options['eol'] = row_delimiter

    output = io.BytesIO()
    try:
        csv.write_csv(_fill_nulls(data), output, write_options=csv.WriteOptions(**options))
    except (pa.ArrowInvalid, pa.ArrowNotImplementedError, pa.ArrowTypeError) as e:
        raise EncodeError(f'Failed to write CSV: {e}') from e
    return output.getvalue()


def encode_arrow_json(data: Union[pa.Table, pa.RecordBatch]) -> bytes:
    return encode_json(data.to_pylist())


def arrow_columns(data: Union[pa.Table, pa.RecordBatch]) -> List[str]:
    return [f.name for f in data.schema]


def _fill_nulls(data: Union[pa.Table, pa.RecordBatch]) -> Union[pa.Table, pa.RecordBatch]:
    """Replace nulls with the CSV null marker, casting affected columns to string."""
    arrays = []
    changed = False
    for column in data.columns:
        if column.null_count:
            column = pc.fill_null(pc.cast(column, pa.string()), CSV_NULL)
            changed = True
        arrays.append(column)

    if not changed:
        return data
    if isinstance(data, pa.RecordBatch):
        return pa.RecordBatch.from_arrays(arrays, names=data.schema.names)
    return pa.Table.from_arrays(arrays, names=data.schema.names)


def read_payload(data: Any) -> bytes:
    """Buffer a payload into memory.

    Accepts bytes-like objects, str (UTF-8 encoded), or any object with a
    read() method returning bytes or str. The result can be sent any number
    of times.
    """
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return data.encode('utf-8')

    read = getattr(data, 'read', None)
    if read is None:
        raise EncodeError(f'Unsupported payload type {type(data).__name__}; expected bytes, str or a readable stream')
    try:
        chunk: Optional[Union[bytes, str]] = read()
    except OSError as e:
        raise EncodeError(f'Failed to buffer data: {e}') from e
    if chunk is None:
        return b''
    return chunk.encode('utf-8') if isinstance(chunk, str) else bytes(chunk)
