"""Tests for server utility helpers."""

import re

import pytest

from fileshare.exceptions import CodeAllocationError
from fileshare.utils import (
    allocate_code,
    compression_ratio,
    get_current_timestamp,
    is_valid_session_id,
    make_stored_filename,
    random_code,
)


def test_random_code_shape():
    for _ in range(50):
        assert re.fullmatch(r'[0-9a-f]{6}', random_code())


def test_allocate_code_skips_taken_codes():
    draws = iter(['aaaaaa', 'bbbbbb', 'cccccc'])

    code = allocate_code(lambda c: c in {'aaaaaa', 'bbbbbb'}, generator=lambda: next(draws))

    assert code == 'cccccc'


def test_allocate_code_gives_up():
    with pytest.raises(CodeAllocationError):
        allocate_code(lambda c: True, generator=lambda: 'aaaaaa', attempts=3)


@pytest.mark.parametrize('session_id,valid', [
    ('abc_DEF-123', True),
    ('a' * 128, True),
    ('a' * 129, False),
    ('', False),
    ('../etc', False),
    ('with space', False),
])
def test_is_valid_session_id(session_id, valid):
    assert is_valid_session_id(session_id) is valid


def test_stored_filename_keeps_extension():
    name = make_stored_filename('file', 'report.final.pdf')

    assert re.fullmatch(r'file-\d+-[0-9a-f]{8}\.pdf', name)


def test_stored_filename_compressed_suffix():
    name = make_stored_filename('chunked', 'data.csv', compressed=True)

    assert re.fullmatch(r'chunked-\d+-[0-9a-f]{8}\.csv\.gz', name)


def test_stored_filename_drops_unsafe_extension():
    assert '/' not in make_stored_filename('file', 'evil./../x')
    assert re.fullmatch(r'file-\d+-[0-9a-f]{8}', make_stored_filename('file', 'noext'))


def test_compression_ratio():
    assert compression_ratio(1000, 400) == 2.5
    assert compression_ratio(10, 3) == 3.33
    assert compression_ratio(10, 0) == 0.0


def test_timestamp_is_utc_iso():
    assert re.fullmatch(r'\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z', get_current_timestamp())
