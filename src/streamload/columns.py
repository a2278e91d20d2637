"""
Column-name extraction for typed records.

A record type describes its columns once; the ordered (attribute, column)
pairs are cached per (type, tag) for the life of the process. Supported
record types, in resolution order:

1. any class with a ``__stream_load_columns__`` attribute, either a sequence of
   column names or a mapping of tag -> sequence of column names
2. dataclasses, using ``field(metadata={'csv': ..., 'json': ...})``
3. pydantic models, using ``json_schema_extra={tag: ...}`` or the field alias

A column named ``'-'`` excludes the field.
"""

import dataclasses
import threading
from collections.abc import Mapping
from typing import Any, Dict, List, NamedTuple, Sequence, Tuple

from pydantic import BaseModel

from .errors import ConfigurationError, EncodeError

DESCRIPTOR_ATTRIBUTE = '__stream_load_columns__'
SKIP = '-'
TAGS = ('csv', 'json')


class ColumnField(NamedTuple):
    attribute: str
    column: str


_cache: Dict[Tuple[type, str], Tuple[ColumnField, ...]] = {}
_cache_lock = threading.Lock()


def column_fields(record_type: type, tag: str = 'csv') -> Tuple[ColumnField, ...]:
    """Return the ordered (attribute, column) pairs for a record type.

    Derivation is idempotent, so two threads racing on the same type store
    identical values.
    """
    if tag not in TAGS:
        raise ConfigurationError(f'Unknown column tag {tag!r}. Expected one of: {", ".join(TAGS)}')

    key = (record_type, tag)
    with _cache_lock:
        cached = _cache.get(key)
    if cached is not None:
        return cached

    derived = _derive(record_type, tag)
    if not derived:
        raise ConfigurationError(f'No columns found in {record_type.__name__}')

    with _cache_lock:
        _cache[key] = derived
    return derived


def extract_columns(record_type: type, tag: str = 'csv') -> List[str]:
    """Ordered column names for a record type."""
    return [f.column for f in column_fields(record_type, tag)]


def columns_for(records: Sequence[Any], tag: str = 'csv') -> List[str]:
    """Ordered column names for a non-empty sequence of records.

    Mapping records use the keys of the first record and are not cached.
    """
    first = _first(records)
    if isinstance(first, Mapping):
        return [str(key) for key in first.keys()]
    return extract_columns(type(first), tag)


def record_rows(records: Sequence[Any], tag: str = 'csv') -> List[Dict[str, Any]]:
    """Convert records into dicts keyed by column name, in column order."""
    first = _first(records)
    if isinstance(first, Mapping):
        keys = list(first.keys())
        return [{str(key): record.get(key) for key in keys} for record in records]

    fields = column_fields(type(first), tag)
    return [{f.column: getattr(record, f.attribute) for f in fields} for record in records]


def clear_cache() -> None:
    with _cache_lock:
        _cache.clear()


def cache_size() -> int:
    with _cache_lock:
        return len(_cache)


def _first(records: Sequence[Any]) -> Any:
    if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Sequence):
        raise EncodeError(f'records must be a sequence, got {type(records).__name__}')
    if len(records) == 0:
        raise EncodeError('records sequence is empty, cannot extract columns')
    return records[0]


def _derive(record_type: type, tag: str) -> Tuple[ColumnField, ...]:
    descriptor = getattr(record_type, DESCRIPTOR_ATTRIBUTE, None)
    if descriptor is not None:
        return _from_descriptor(record_type, descriptor, tag)
    if dataclasses.is_dataclass(record_type):
        return _from_dataclass(record_type, tag)
    if isinstance(record_type, type) and issubclass(record_type, BaseModel):
        return _from_pydantic(record_type, tag)
    raise ConfigurationError(
        f'Cannot derive columns for {record_type.__name__}: '
        f'use a dataclass, a pydantic model, or define {DESCRIPTOR_ATTRIBUTE}'
    )


def _from_descriptor(record_type: type, descriptor: Any, tag: str) -> Tuple[ColumnField, ...]:
    if isinstance(descriptor, Mapping):
        if tag not in descriptor:
            raise ConfigurationError(f'{record_type.__name__}.{DESCRIPTOR_ATTRIBUTE} has no {tag!r} entry')
        descriptor = descriptor[tag]
    return tuple(ColumnField(name, name) for name in descriptor if name != SKIP)


def _from_dataclass(record_type: type, tag: str) -> Tuple[ColumnField, ...]:
    result = []
    for f in dataclasses.fields(record_type):
        column = f.metadata.get(tag) or f.name
        if tag == 'json':
            # 'name,omitempty' -> 'name'
            column = column.split(',', 1)[0] or f.name
        if column == SKIP:
            continue
        result.append(ColumnField(f.name, column))
    return tuple(result)


def _from_pydantic(record_type: type, tag: str) -> Tuple[ColumnField, ...]:
    result = []
    for name, info in record_type.model_fields.items():
        if info.exclude:
            continue
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        column = extra.get(tag) or info.alias or name
        if column == SKIP:
            continue
        result.append(ColumnField(name, column))
    return tuple(result)
