"""Tests for the JSON record store."""

import json
import threading

import pytest

from fileshare.exceptions import CodeAllocationError
from fileshare.metadata_store import MetadataStore, build_file_record


def stored_document(db_path):
    return json.loads(db_path.read_text())


def make_record(name='a.txt', size=10, compressed=False):
    return build_file_record(
        filename=name,
        stored_filename=f'file-1-abcd{name}',
        content_type='text/plain',
        original_size=size * 3 if compressed else size,
        stored_size=size,
        compressed=compressed,
    )


def test_load_creates_empty_document(tmp_path):
    db_path = tmp_path / 'nested' / 'db.json'
    store = MetadataStore(db_path)

    assert store.load() is False
    assert json.loads(db_path.read_text()) == {'files': [], 'groups': []}


def test_commit_file_assigns_code_and_persists(metadata_store):
    committed = metadata_store.commit_file(make_record())

    assert len(committed.id) == 6
    assert metadata_store.get_file(committed.id) == committed

    data = json.loads(metadata_store.db_path.read_text())
    assert data['files'][0]['id'] == committed.id
    assert data['files'][0]['filename'] == 'a.txt'
    assert data['files'][0]['compressed'] is False
    assert data['files'][0]['originalSize'] is None


def test_compressed_record_fields(metadata_store):
    committed = metadata_store.commit_file(make_record(size=100, compressed=True))

    assert committed.mimetype == 'application/gzip'
    assert committed.originalMimetype == 'text/plain'
    assert committed.originalSize == 300
    assert committed.compressionRatio == 3.0


def test_records_survive_reload(metadata_store):
    f1 = metadata_store.commit_file(make_record('one.txt'))
    f2 = metadata_store.commit_file(make_record('two.txt'))
    group = metadata_store.commit_group('pair', [f1.id, f2.id])

    reloaded = MetadataStore(metadata_store.db_path)
    assert reloaded.load() is True

    assert reloaded.get_file(f1.id) == f1
    assert reloaded.get_group(group.id) == group
    assert reloaded.get_group(group.id).fileIds == [f1.id, f2.id]


def test_commit_group_reports_first_missing_file(metadata_store):
    f1 = metadata_store.commit_file(make_record())

    with pytest.raises(KeyError) as exc_info:
        metadata_store.commit_group('g', [f1.id, 'aaaaaa', 'bbbbbb'])

    assert exc_info.value.args[0] == 'aaaaaa'
    assert stored_document(metadata_store.db_path)['groups'] == []


def test_codes_are_unique_across_files_and_groups(tmp_path):
    draws = iter(['aaaaaa', 'aaaaaa', 'bbbbbb', 'aaaaaa', 'bbbbbb', 'cccccc'])
    store = MetadataStore(tmp_path / 'db.json', code_generator=lambda: next(draws))
    store.load()

    f1 = store.commit_file(make_record())
    f2 = store.commit_file(make_record())
    group = store.commit_group('g', [f1.id])

    assert (f1.id, f2.id, group.id) == ('aaaaaa', 'bbbbbb', 'cccccc')


def test_allocation_failure_leaves_store_unchanged(tmp_path):
    store = MetadataStore(tmp_path / 'db.json', code_generator=lambda: 'aaaaaa')
    store.load()
    store.commit_file(make_record())

    with pytest.raises(CodeAllocationError):
        store.commit_file(make_record())

    assert len(stored_document(store.db_path)['files']) == 1


def test_legacy_document_without_groups(tmp_path):
    db_path = tmp_path / 'db.json'
    db_path.write_text(json.dumps({'files': [{
        'id': 'abc123',
        'filename': 'old.txt',
        'storedFilename': 'file-1-x.txt',
        'mimetype': 'text/plain',
        'size': 4,
        'compressionRatio': '2.50',
    }]}))

    store = MetadataStore(db_path)
    assert store.load() is True

    record = store.get_file('abc123')
    assert record.internalId == 'abc123'
    assert record.compressionRatio == 2.5
    assert store.get_group('abc123') is None


def test_unreadable_document_loads_empty(tmp_path):
    db_path = tmp_path / 'db.json'
    db_path.write_text('{not json')

    store = MetadataStore(db_path)

    assert store.load() is False
    assert store.get_file('abc123') is None


def test_failed_write_records_nothing(metadata_store, monkeypatch):
    def failing_write(files, groups):
        raise OSError("disk full")

    monkeypatch.setattr(metadata_store, '_write', failing_write)

    with pytest.raises(OSError):
        metadata_store.commit_file(make_record())

    monkeypatch.undo()
    assert stored_document(metadata_store.db_path)['files'] == []
    committed = metadata_store.commit_file(make_record())
    assert metadata_store.get_file(committed.id) == committed


def test_lookups_do_not_wait_for_a_commit(metadata_store, monkeypatch):
    existing = metadata_store.commit_file(make_record('old.txt'))
    write_started = threading.Event()
    release_write = threading.Event()
    real_write = metadata_store._write

    def slow_write(files, groups):
        write_started.set()
        assert release_write.wait(timeout=5)
        real_write(files, groups)

    monkeypatch.setattr(metadata_store, '_write', slow_write)
    committer = threading.Thread(target=metadata_store.commit_file, args=(make_record('new.txt'),))
    committer.start()
    try:
        assert write_started.wait(timeout=5)

        assert metadata_store.get_file(existing.id) == existing
        assert len(stored_document(metadata_store.db_path)['files']) == 1
    finally:
        release_write.set()
        committer.join(timeout=5)

    assert len(stored_document(metadata_store.db_path)['files']) == 2
