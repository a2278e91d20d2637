"""Response records returned by the stream load and transaction APIs.

Field aliases match the server's JSON keys. Every field has a zero-value
default. Null values fall back to that default and unknown keys are
ignored, so partial or newer server replies still decode.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StatusResponse(BaseModel):
    """Fields shared by every response."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    status: str = Field('', alias='Status', description='Server status string (e.g. Success, OK, Fail)')
    message: str = Field('', alias='Message', description='Human readable server message')

    @model_validator(mode='before')
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        # null means "not set": fall back to the field default
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class LoadResponse(StatusResponse):
    """Reply to a stream load or a transaction load."""

    txn_id: int = Field(0, alias='TxnId')
    label: str = Field('', alias='Label')
    existing_job_status: str = Field('', alias='ExistingJobStatus')
    number_total_rows: int = Field(0, alias='NumberTotalRows')
    number_loaded_rows: int = Field(0, alias='NumberLoadedRows')
    number_filtered_rows: int = Field(0, alias='NumberFilteredRows')
    number_unselected_rows: int = Field(0, alias='NumberUnselectedRows')
    load_bytes: int = Field(0, alias='LoadBytes')
    load_time_ms: int = Field(0, alias='LoadTimeMs')
    begin_txn_time_ms: int = Field(0, alias='BeginTxnTimeMs')
    stream_load_plan_time_ms: int = Field(0, alias='StreamLoadPlanTimeMs')
    read_data_time_ms: int = Field(0, alias='ReadDataTimeMs')
    write_data_time_ms: int = Field(0, alias='WriteDataTimeMs')
    committed_and_publish_time_ms: int = Field(0, alias='CommittedAndPublishTimeMs')
    error_url: str = Field('', alias='ErrorURL', description='URL of the rejected-rows log, if any')
    timezone: str = Field('', alias='Timezone')


class TransactionBeginResponse(StatusResponse):
    """Reply to a transaction begin."""

    txn_id: int = Field(0, alias='TxnId', description='Server-assigned transaction id')
    label: str = Field('', alias='Label')


class TransactionSummary(StatusResponse):
    """Counters reported once a transaction is prepared or committed."""

    txn_id: int = Field(0, alias='TxnId')
    label: str = Field('', alias='Label')
    number_total_rows: int = Field(0, alias='NumberTotalRows')
    number_loaded_rows: int = Field(0, alias='NumberLoadedRows')
    number_filtered_rows: int = Field(0, alias='NumberFilteredRows')
    number_unselected_rows: int = Field(0, alias='NumberUnselectedRows')
    load_bytes: int = Field(0, alias='LoadBytes')
    load_time_ms: int = Field(0, alias='LoadTimeMs')
    stream_load_put_time_ms: int = Field(0, alias='StreamLoadPutTimeMs')
    received_data_time_ms: int = Field(0, alias='ReceivedDataTimeMs')
    write_data_time_ms: int = Field(0, alias='WriteDataTimeMs')
    commit_and_publish_time_ms: int = Field(0, alias='CommitAndPublishTimeMs')


class TransactionPrepareResponse(TransactionSummary):
    """Reply to a transaction prepare."""

    pass


class TransactionCommitResponse(TransactionSummary):
    """Reply to a transaction commit."""

    pass


class TransactionRollbackResponse(StatusResponse):
    """Reply to a transaction rollback."""

    txn_id: int = Field(0, alias='TxnId')
    label: str = Field('', alias='Label')
