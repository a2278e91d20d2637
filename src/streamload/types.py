"""
Shared types for stream load operations.

This module holds the option types used by both the bulk load and the
transaction load paths, and the translation of options into protocol headers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from .errors import ConfigurationError


class CompressionType(str, Enum):
    NONE = ''
    GZIP = 'GZIP'
    LZ4 = 'LZ4_FRAME'
    ZSTD = 'ZSTD'
    BZIP2 = 'BZIP2'


class DataFormat(str, Enum):
    CSV = 'csv'
    JSON = 'json'


def _coerce(enum_class, value):
    if value is None:
        return None
    if isinstance(value, enum_class):
        return value
    try:
        return enum_class(value)
    except ValueError:
        choices = ', '.join(repr(member.value) for member in enum_class)
        raise ConfigurationError(f'Invalid {enum_class.__name__} {value!r}. Expected one of: {choices}') from None


@dataclass
class LoadOptions:
    """Per-call tunables for a stream load or transaction load.

    Every field maps to one protocol header. Unset fields are not sent,
    except strip_outer_array which is always sent.
    """

    format: Optional[DataFormat] = None
    compression: CompressionType = CompressionType.NONE
    columns: str = ''
    column_separator: str = ''
    row_delimiter: str = ''
    where: str = ''
    max_filter_ratio: Optional[float] = None
    timeout: Optional[int] = None  # seconds, enforced by the server
    strict_mode: bool = False
    strip_outer_array: bool = False

    label: str = ''
    partitions: List[str] = field(default_factory=list)
    temporary_partitions: List[str] = field(default_factory=list)

    log_rejected_record_num: int = 0
    timezone: str = ''
    load_mem_limit: int = 0  # bytes

    def __post_init__(self):
        self.format = _coerce(DataFormat, self.format)
        self.compression = _coerce(CompressionType, self.compression) or CompressionType.NONE

    @property
    def compressed(self) -> bool:
        return self.compression is not CompressionType.NONE

    def to_headers(self) -> Dict[str, str]:
        """Translate options into protocol headers."""
        headers = {'strip_outer_array': _bool_header(self.strip_outer_array)}

        if self.format is not None:
            headers['format'] = self.format.value
        if self.columns:
            headers['columns'] = self.columns
        if self.column_separator:
            headers['column_separator'] = self.column_separator
        if self.row_delimiter:
            headers['row_delimiter'] = self.row_delimiter
        if self.where:
            headers['where'] = self.where
        if self.max_filter_ratio is not None:
            headers['max_filter_ratio'] = _number_header(self.max_filter_ratio)
        if self.timeout is not None:
            headers['timeout'] = _number_header(self.timeout)
        if self.strict_mode:
            headers['strict_mode'] = 'true'
        if self.compressed:
            headers['compression'] = self.compression.value
        if self.label:
            headers['label'] = self.label
        if self.partitions:
            headers['partitions'] = ','.join(self.partitions)
        if self.temporary_partitions:
            headers['temporary_partitions'] = ','.join(self.temporary_partitions)
        if self.log_rejected_record_num != 0:
            headers['log_rejected_record_num'] = str(self.log_rejected_record_num)
        if self.timezone:
            headers['timezone'] = self.timezone
        if self.load_mem_limit > 0:
            headers['load_mem_limit'] = str(self.load_mem_limit)

        return headers


def _bool_header(value: bool) -> str:
    return 'true' if value else 'false'


def _number_header(value: Union[int, float]) -> str:
    # 0.1 -> '0.1', 600 -> '600', 600.0 -> '600'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
