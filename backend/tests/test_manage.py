import pytest
from click.testing import CliRunner

from tableau_guide import manage
from tableau_guide.services.gemini import RemoteFile

from conftest import FakeFileStore


@pytest.fixture
def env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv('GEMINI_API_KEY', 'test-key')
    monkeypatch.setenv('POLL_INTERVAL_SECONDS', '0')
    monkeypatch.setenv('MAX_POLL_ATTEMPTS', '2')
    local = tmp_path / 'manual.pdf'
    local.write_bytes(b'%PDF-1.4 fake manual')
    monkeypatch.setenv('MANUAL_LOCAL_PATH', str(local))
    return local


def use_store(monkeypatch, store):
    monkeypatch.setattr(manage, 'GeminiFileStore', lambda api_key: store)


def test_upload_manual_success(monkeypatch, env):
    store = FakeFileStore()
    use_store(monkeypatch, store)

    result = CliRunner().invoke(manage.cli, ['upload-manual'])

    assert result.exit_code == 0, result.output
    assert 'File is ready to use!' in result.output
    assert len(store.uploads) == 1
    assert not env.exists()


def test_upload_manual_skips_when_already_active(monkeypatch, env):
    existing = RemoteFile(name='files/abc', display_name='Tableau Desktop Manual',
                          uri='https://example.test/files/abc', state='ACTIVE')
    store = FakeFileStore(files=[existing])
    use_store(monkeypatch, store)

    result = CliRunner().invoke(manage.cli, ['upload-manual'])

    assert result.exit_code == 0
    assert 'https://example.test/files/abc' in result.output
    assert store.uploads == []


def test_upload_manual_failure_exits_1(monkeypatch, env):
    use_store(monkeypatch, FakeFileStore(polls_until_active=100))

    result = CliRunner().invoke(manage.cli, ['upload-manual'])

    assert result.exit_code == 1


def test_missing_api_key_exits_1(monkeypatch, env):
    monkeypatch.delenv('GEMINI_API_KEY')

    result = CliRunner().invoke(manage.cli, ['upload-manual'])

    assert result.exit_code == 1
    assert 'GEMINI_API_KEY' in result.output


def test_status_reports_remote_state(monkeypatch, env):
    existing = RemoteFile(name='files/abc', display_name='Tableau Desktop Manual',
                          uri='https://example.test/files/abc', state='ACTIVE')
    use_store(monkeypatch, FakeFileStore(files=[existing]))

    result = CliRunner().invoke(manage.cli, ['status'])

    assert result.exit_code == 0
    assert 'files/abc' in result.output
    assert 'ACTIVE' in result.output


def test_serve_requires_api_key(monkeypatch, env):
    monkeypatch.delenv('GEMINI_API_KEY')

    result = CliRunner().invoke(manage.cli, ['serve'])

    assert result.exit_code == 1
