#!/usr/bin/env python3
"""
Walk through the stream load client against a running cluster.

Expects a table created with:

    CREATE TABLE users (id INT, name VARCHAR(64), age INT)
    DUPLICATE KEY(id) DISTRIBUTED BY HASH(id) BUCKETS 1
    PROPERTIES ('replication_num' = '1');

Usage:
    export STREAMLOAD_ENDPOINTS=127.0.0.1:8030
    export STREAMLOAD_DATABASE=test_db
    export STREAMLOAD_USER=root
    python apps/stream_load_example.py
"""

import json
import logging
import uuid
from dataclasses import dataclass

from rich import print

from streamload import Client, CompressionType, DataFormat, LoadOptions, StreamLoadError

TABLE = 'users'


@dataclass
class User:
    id: int
    name: str
    age: int


def new_label(prefix: str) -> str:
    return f'{prefix}-{uuid.uuid4().hex[:12]}'


def load_csv(client: Client):
    print('[bold]CSV load[/bold]')
    resp = client.load(
        TABLE,
        b'1,Alice,25\n2,Bob,30\n3,Charlie,35\n',
        LoadOptions(format=DataFormat.CSV, columns='id,name,age', label=new_label('csv')),
    )
    print(f'  loaded {resp.number_loaded_rows}/{resp.number_total_rows} rows in {resp.load_time_ms} ms')


def load_json(client: Client):
    print('[bold]JSON load (gzip)[/bold]')
    rows = [{'id': 4, 'name': 'Dave', 'age': 40}, {'id': 5, 'name': 'Eve', 'age': 45}]
    resp = client.load(
        TABLE,
        json.dumps(rows),
        LoadOptions(
            format=DataFormat.JSON,
            strip_outer_array=True,
            compression=CompressionType.GZIP,
            timezone='UTC',
            label=new_label('json'),
        ),
    )
    print(f'  loaded {resp.number_loaded_rows} rows, label {resp.label}')


def load_records(client: Client):
    print('[bold]Typed records[/bold]')
    users = [User(6, 'Frank', 50), User(7, 'Grace', 55)]
    resp = client.load_records_csv(TABLE, users, LoadOptions(label=new_label('records-csv')))
    print(f'  CSV: loaded {resp.number_loaded_rows} rows')
    resp = client.load_records_json(TABLE, users, LoadOptions(label=new_label('records-json')))
    print(f'  JSON (zstd): loaded {resp.number_loaded_rows} rows')


def transaction_commit(client: Client):
    print('[bold]Transaction (commit)[/bold]')
    label = new_label('txn')
    txn = client.transactions

    begin = txn.begin(label, TABLE)
    print(f'  begin: txn {begin.txn_id}')
    try:
        txn.load(label, TABLE, b'8,Heidi,60\n9,Ivan,65\n', LoadOptions(format='csv', columns='id,name,age'))
        txn.prepare(label)
    except StreamLoadError as e:
        print(f'  [red]failed: {e}[/red], rolling back')
        txn.rollback(label)
        return

    resp = txn.commit(label)
    print(f'  commit: {resp.status}, {resp.number_loaded_rows} rows')


def transaction_rollback(client: Client):
    print('[bold]Transaction (rollback)[/bold]')
    label = new_label('txn')
    txn = client.transactions

    txn.begin(label, TABLE)
    txn.load(label, TABLE, b'10,Judy,70\n', LoadOptions(format='csv', columns='id,name,age'))
    resp = txn.rollback(label)
    print(f'  rollback: {resp.status}')


def main():
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    with Client.from_env() as client:
        for step in (load_csv, load_json, load_records, transaction_commit, transaction_rollback):
            try:
                step(client)
            except StreamLoadError as e:
                print(f'[red]{step.__name__} failed: {e}[/red]')


if __name__ == '__main__':
    main()
