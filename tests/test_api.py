"""Tests for the HTTP API."""

import asyncio
import gzip
import os
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient


def init_upload(client, total_chunks, file_size, **extra):
    body = {'filename': 'letters.txt', 'totalChunks': total_chunks, 'fileSize': file_size, 'mimeType': 'text/plain'}
    body.update(extra)
    response = client.post('/api/upload/init', json=body)
    assert response.status_code == 200, response.text
    return response.json()['uploadId']


def send_chunk(client, upload_id, index, payload):
    return client.post(
        '/api/upload/chunk',
        files={'chunk': ('blob', payload, 'application/octet-stream')},
        data={'uploadId': upload_id, 'chunkIndex': str(index)},
    )


def upload_whole(client, name, payload, optimized=False, content_type='text/plain'):
    return client.post(
        '/api/upload',
        files={'file': (name, payload, content_type)},
        data={'optimized': 'true' if optimized else 'false'},
    )


def test_health(api_client):
    response = api_client.get('/api/health')

    assert response.status_code == 200
    assert response.json() == {'status': 'ok', 'message': 'Server is running'}
    assert 'X-Request-ID' in response.headers


def test_chunked_upload_end_to_end(api_client):
    upload_id = init_upload(api_client, 3, 12)

    for index, payload in ((1, b'AAAA'), (2, b'BBBB'), (0, b'CCCC')):
        response = send_chunk(api_client, upload_id, index, payload)
        assert response.status_code == 200
    assert response.json() == {'success': True, 'receivedChunks': 3, 'totalChunks': 3, 'duplicate': False}

    response = api_client.post('/api/upload/complete', json={'uploadId': upload_id, 'compress': False})
    assert response.status_code == 200
    data = response.json()
    assert data['success'] is True
    assert data['size'] == 12
    assert data['compressed'] is False
    assert data['originalSize'] is None
    assert data['compressionRatio'] is None
    assert isinstance(data['uploadTime'], int)

    download = api_client.get(f"/api/file/{data['code']}")
    assert download.status_code == 200
    assert download.content == b'CCCCAAAABBBB'
    assert download.headers['content-disposition'] == 'attachment; filename="letters.txt"'
    assert download.headers['content-type'].startswith('text/plain')

    info = api_client.get(f"/api/download/{data['code']}").json()
    assert info['filename'] == 'letters.txt'
    assert info['size'] == 12


def test_init_with_client_id(api_client):
    upload_id = init_upload(api_client, 2, 8, uploadId='my-upload_1')

    assert upload_id == 'my-upload_1'


def test_reused_upload_id_ignores_leftover_chunk_files(api_client, data_dir):
    stale = data_dir / 'chunks' / 'reused-id'
    stale.mkdir(parents=True)
    (stale / '0').write_bytes(b'OLD!')

    upload_id = init_upload(api_client, 1, 4, uploadId='reused-id')
    receipt = send_chunk(api_client, upload_id, 0, b'NEW!').json()
    code = api_client.post('/api/upload/complete', json={'uploadId': upload_id}).json()['code']

    assert receipt['duplicate'] is False
    assert api_client.get(f'/api/file/{code}').content == b'NEW!'


def test_reinit_with_different_declaration_starts_over(api_client):
    init_upload(api_client, 3, 12, uploadId='up-1', filename='big.bin')
    send_chunk(api_client, 'up-1', 0, b'AAAA')

    response = api_client.post('/api/upload/init', json={
        'uploadId': 'up-1', 'filename': 'small.txt', 'totalChunks': 1, 'fileSize': 4,
    })
    assert response.json()['totalChunks'] == 1

    send_chunk(api_client, 'up-1', 0, b'NEW!')
    data = api_client.post('/api/upload/complete', json={'uploadId': 'up-1'}).json()
    assert data['filename'] == 'small.txt'
    assert api_client.get(f"/api/file/{data['code']}").content == b'NEW!'


@pytest.mark.parametrize('body', [
    {'totalChunks': 1, 'fileSize': 4},
    {'filename': 'a.txt', 'totalChunks': 0, 'fileSize': 4},
    {'filename': 'a.txt', 'fileSize': 4},
    {'filename': 'a.txt', 'totalChunks': 1, 'fileSize': 4, 'uploadId': 'bad/id'},
])
def test_init_invalid_params(api_client, body):
    response = api_client.post('/api/upload/init', json=body)

    assert response.status_code == 400
    assert response.json()['code'] == 'INVALID_PARAMS'
    assert response.json()['success'] is False


def test_duplicate_chunk(api_client):
    upload_id = init_upload(api_client, 2, 8)
    send_chunk(api_client, upload_id, 0, b'AAAA')

    response = send_chunk(api_client, upload_id, 0, b'AAAA')

    assert response.status_code == 200
    assert response.json()['duplicate'] is True
    assert response.json()['receivedChunks'] == 1


def test_chunk_for_unknown_session(api_client):
    response = send_chunk(api_client, 'does-not-exist', 0, b'AAAA')

    assert response.status_code == 400
    assert response.json()['code'] == 'UNKNOWN_SESSION'


def test_empty_chunk(api_client):
    upload_id = init_upload(api_client, 2, 8)

    response = send_chunk(api_client, upload_id, 0, b'')

    assert response.status_code == 400
    assert response.json()['code'] == 'EMPTY_CHUNK'


def test_chunk_index_out_of_range(api_client):
    upload_id = init_upload(api_client, 2, 8)

    response = send_chunk(api_client, upload_id, 5, b'AAAA')

    assert response.status_code == 400
    assert response.json()['code'] == 'INVALID_PARAMS'


def test_oversize_chunk(data_dir, monkeypatch):
    monkeypatch.setenv('FILESHARE_MAX_CHUNK_BYTES', '16')
    from fileshare.main import app

    with TestClient(app) as client:
        upload_id = init_upload(client, 1, 17)
        response = send_chunk(client, upload_id, 0, b'x' * 17)

    assert response.status_code == 413
    assert response.json()['code'] == 'CHUNK_TOO_LARGE'
    assert response.json()['limit'] == 16


def test_complete_incomplete_upload(api_client):
    upload_id = init_upload(api_client, 3, 12)
    send_chunk(api_client, upload_id, 0, b'AAAA')

    response = api_client.post('/api/upload/complete', json={'uploadId': upload_id})

    assert response.status_code == 400
    assert response.json()['code'] == 'INCOMPLETE_UPLOAD'
    assert response.json()['received'] == 1
    assert response.json()['expected'] == 3


def test_complete_twice(api_client):
    upload_id = init_upload(api_client, 1, 4)
    send_chunk(api_client, upload_id, 0, b'AAAA')

    first = api_client.post('/api/upload/complete', json={'uploadId': upload_id})
    second = api_client.post('/api/upload/complete', json={'uploadId': upload_id})

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json()['code'] == 'UNKNOWN_SESSION'


def test_complete_with_missing_chunk_file(api_client, data_dir):
    upload_id = init_upload(api_client, 2, 8)
    send_chunk(api_client, upload_id, 0, b'AAAA')
    send_chunk(api_client, upload_id, 1, b'BBBB')
    (data_dir / 'chunks' / upload_id / '1').unlink()

    response = api_client.post('/api/upload/complete', json={'uploadId': upload_id})

    assert response.status_code == 400
    assert response.json()['code'] == 'MISSING_CHUNK'
    assert response.json()['chunkIndex'] == 1


def test_chunked_upload_with_compression(api_client, data_dir):
    payload = b'0123456789abcdef' * 2048
    upload_id = init_upload(api_client, 2, len(payload))
    send_chunk(api_client, upload_id, 0, payload[:16384])
    send_chunk(api_client, upload_id, 1, payload[16384:])

    data = api_client.post('/api/upload/complete', json={'uploadId': upload_id, 'compress': True}).json()

    assert data['compressed'] is True
    assert data['originalSize'] == len(payload)
    assert data['size'] < len(payload)
    assert api_client.get(f"/api/file/{data['code']}").content == payload


def test_single_shot_upload(api_client):
    response = upload_whole(api_client, 'hello.txt', b'hello there')

    assert response.status_code == 201
    data = response.json()
    assert data['filename'] == 'hello.txt'
    assert data['size'] == 11
    assert len(data['code']) == 6

    assert api_client.get(f"/api/file/{data['code']}").content == b'hello there'


def test_single_shot_small_file_not_compressed(api_client):
    data = upload_whole(api_client, 'tiny.txt', b'a' * 100, optimized=True).json()

    assert data['compressed'] is False


def test_single_shot_compressed(api_client, data_dir):
    payload = b'the same line again\n' * 2000

    data = upload_whole(api_client, 'lines.txt', payload, optimized=True).json()

    assert data['compressed'] is True
    assert data['compressionRatio'] > 1
    stored = list((data_dir / 'uploads').glob('*.gz'))
    assert len(stored) == 1
    assert gzip.decompress(stored[0].read_bytes()) == payload

    download = api_client.get(f"/api/file/{data['code']}")
    assert download.content == payload
    assert download.headers['content-type'].startswith('text/plain')


def test_single_shot_incompressible(api_client):
    data = upload_whole(api_client, 'noise.bin', os.urandom(32 * 1024), optimized=True).json()

    assert data['compressed'] is False


def test_single_shot_without_file(api_client):
    response = api_client.post('/api/upload', data={'optimized': 'false'})

    assert response.status_code == 400
    assert response.json()['code'] == 'NO_FILE'


def test_single_shot_oversize(data_dir, monkeypatch):
    monkeypatch.setenv('FILESHARE_MAX_FILE_BYTES', '100')
    from fileshare.main import app

    with TestClient(app) as client:
        response = upload_whole(client, 'big.txt', b'x' * 101)

    assert response.status_code == 413
    assert response.json()['code'] == 'FILE_TOO_LARGE'


def test_download_filename_is_url_encoded(api_client):
    name = 'my report & notes.txt'
    code = upload_whole(api_client, name, b'cv').json()['code']

    download = api_client.get(f'/api/file/{code}')

    assert download.headers['content-disposition'] == f'attachment; filename="{quote(name, safe="")}"'


def test_unknown_code(api_client):
    for path in ('/api/file/ffffff', '/api/download/ffffff', '/api/group/ffffff'):
        response = api_client.get(path)
        assert response.status_code == 404
        assert response.json()['code'] == 'NOT_FOUND'


def test_missing_artifact(api_client, data_dir):
    code = upload_whole(api_client, 'a.txt', b'abc').json()['code']
    for stored in (data_dir / 'uploads').iterdir():
        stored.unlink()

    for path in (f'/api/file/{code}', f'/api/download/{code}'):
        response = api_client.get(path)
        assert response.status_code == 404
        assert response.json()['code'] == 'ARTIFACT_MISSING'


def test_group_lifecycle(api_client):
    c1 = upload_whole(api_client, 'one.txt', b'1').json()['code']
    c2 = upload_whole(api_client, 'two.txt', b'22').json()['code']

    response = api_client.post('/api/group', json={'fileIds': [c1, c2], 'groupName': 'pair'})
    assert response.status_code == 201
    created = response.json()
    assert created['name'] == 'pair'
    assert created['fileCount'] == 2
    assert [f['id'] for f in created['files']] == [c1, c2]

    info = api_client.get(f"/api/group/{created['groupCode']}").json()
    assert info['groupCode'] == created['groupCode']
    assert info['fileCount'] == 2
    assert [f['filename'] for f in info['files']] == ['one.txt', 'two.txt']
    assert all(f['uploadDate'] for f in info['files'])

    as_file = api_client.get(f"/api/file/{created['groupCode']}")
    assert as_file.status_code == 400
    assert as_file.json()['isGroup'] is True
    assert as_file.json()['groupCode'] == created['groupCode']
    assert as_file.json()['fileCount'] == 2

    info = api_client.get(f"/api/download/{created['groupCode']}")
    assert info.status_code == 400
    assert info.json()['code'] == 'IS_GROUP'


def test_group_default_name(api_client):
    code = upload_whole(api_client, 'one.txt', b'1').json()['code']

    created = api_client.post('/api/group', json={'fileIds': [code]}).json()

    assert created['name'] == 'File Group (1 files)'


def test_group_commit_runs_off_the_event_loop(api_client, monkeypatch):
    from fileshare.services.group_service import GroupService

    code = upload_whole(api_client, 'one.txt', b'1').json()['code']
    loops = []
    real_create = GroupService.create_group

    def recording_create(self, file_ids, name=None):
        try:
            loops.append(asyncio.get_running_loop())
        except RuntimeError:
            loops.append(None)
        return real_create(self, file_ids, name)

    monkeypatch.setattr(GroupService, 'create_group', recording_create)

    assert api_client.post('/api/group', json={'fileIds': [code]}).status_code == 201
    assert loops == [None]


def test_group_with_unknown_file(api_client):
    code = upload_whole(api_client, 'one.txt', b'1').json()['code']

    response = api_client.post('/api/group', json={'fileIds': [code, '000000']})

    assert response.status_code == 404
    assert response.json()['code'] == 'FILE_NOT_FOUND'
    assert response.json()['fileId'] == '000000'


def test_group_without_files(api_client):
    response = api_client.post('/api/group', json={'fileIds': []})

    assert response.status_code == 400
    assert response.json()['code'] == 'INVALID_PARAMS'


def test_decompression_fallback_serves_raw_bytes(api_client, data_dir):
    code = upload_whole(api_client, 'lines.txt', b'line\n' * 5000, optimized=True).json()['code']
    stored = next((data_dir / 'uploads').glob('*.gz'))
    stored.write_bytes(b'not gzip at all')

    download = api_client.get(f'/api/file/{code}')

    assert download.status_code == 200
    assert download.content == b'not gzip at all'
    assert download.headers['content-type'].startswith('application/gzip')


def test_decompression_strict_mode(data_dir, monkeypatch):
    monkeypatch.setenv('FILESHARE_DECOMPRESSION_FALLBACK', 'false')
    from fileshare.main import app

    with TestClient(app) as client:
        code = upload_whole(client, 'lines.txt', b'line\n' * 5000, optimized=True).json()['code']
        stored = next((data_dir / 'uploads').glob('*.gz'))
        stored.write_bytes(b'not gzip at all')

        response = client.get(f'/api/file/{code}')

    assert response.status_code == 500
    assert response.json()['code'] == 'DECOMPRESSION_FAILED'


def test_records_persist_across_restart(data_dir):
    from fileshare.main import app

    with TestClient(app) as client:
        code = upload_whole(client, 'keep.txt', b'persisted').json()['code']

    with TestClient(app) as client:
        assert client.get(f'/api/file/{code}').content == b'persisted'
