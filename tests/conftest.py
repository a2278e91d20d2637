# tests/conftest.py
"""
Shared pytest configuration and fixtures for the stream load test suite.
"""

import logging
from dataclasses import dataclass

import pytest

from streamload import Client, Endpoint

logging.basicConfig(level=logging.INFO)

DATABASE = 'test_db'


@dataclass
class User:
    id: int
    name: str
    age: int


@pytest.fixture
def users():
    return [User(1, 'Alice', 25), User(2, 'Bob', 30), User(3, 'Charlie', 35)]


@pytest.fixture
def client():
    """Client over two front ends, fe1 then fe2"""
    with Client([Endpoint('fe1', 8030), Endpoint('fe2', 8030)], DATABASE, 'root', 'secret') as c:
        yield c


@pytest.fixture
def three_node_client():
    with Client(['fe1:8030', 'fe2:8030', 'fe3:8030'], DATABASE, 'root', 'secret') as c:
        yield c
