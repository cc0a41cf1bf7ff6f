"""
Test suite for the docstore CLI commands.

The gateway is replaced by a mock so no store is needed.
"""

import json
import logging
import logging.handlers
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from document_gateway.cli.cli import app
from document_gateway.core.store import HealthStatus, LargeObjectInfo, NotFoundError

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def mock_gateway():
    with patch('document_gateway.cli.cli.create_gateway') as mock_create:
        gateway = MagicMock()
        mock_create.return_value = gateway
        yield gateway


class TestCheckConfigCommand:
    
    def test_valid_config(self, config_dir):
        result = runner.invoke(app, ['-c', str(config_dir / 'config.json'), 'check-config'])
        
        assert result.exit_code == 0
        assert 'mongodb://db.example.com:27017/inventory' in result.stdout
    
    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ['-c', str(tmp_path / 'missing.json'), 'check-config'])
        
        assert result.exit_code == 1
        assert 'Configuration Error' in result.stdout


class TestHealthCommand:
    
    def test_unhealthy_store(self, mock_gateway):
        mock_gateway.health_check = AsyncMock(return_value=HealthStatus(
            status='unhealthy',
            connected=False,
            url='mongodb://localhost:27017/testdb',
            collections_count=0,
            collections=[],
            timestamp='2026-01-01T00:00:00+00:00',
            errors=['Health check failed: no servers'],
        ))
        
        result = runner.invoke(app, ['health'])
        
        assert result.exit_code == 1
        assert 'unhealthy' in result.stdout
        mock_gateway.close_connection.assert_called_once()


class TestQueryAllCommand:
    
    def test_json_output(self, mock_gateway):
        mock_gateway.query_all = AsyncMock(return_value=[
            {'_id': 'u1', 'name': 'ada', 'collection': 'users'},
        ])
        
        result = runner.invoke(app, [
            'query-all', 'users', 'orders',
            '--filter', '{"name": "ada"}',
            '--limit', '5',
            '--json',
        ])
        
        assert result.exit_code == 0
        assert json.loads(result.stdout) == [{'_id': 'u1', 'name': 'ada', 'collection': 'users'}]
        
        objects = mock_gateway.query_all.call_args.args[0]
        assert objects == [
            {'collection': 'users', 'values': {'name': 'ada'}},
            {'collection': 'orders', 'values': {'name': 'ada'}},
        ]
        assert objects[0]['values'] is not objects[1]['values']
        assert mock_gateway.query_all.call_args.kwargs == {'count': 5}
    
    def test_invalid_filter(self, mock_gateway):
        result = runner.invoke(app, ['query-all', 'users', '--filter', '{broken'])
        
        assert result.exit_code == 2
        assert 'not valid JSON' in result.stdout
    
    def test_store_error(self, mock_gateway):
        mock_gateway.query_all = AsyncMock(side_effect=NotFoundError('gone'))
        
        result = runner.invoke(app, ['query-all', 'users'])
        
        assert result.exit_code == 1
        assert 'gone' in result.stdout


class TestLargeObjectCommands:
    
    def test_put(self, mock_gateway, tmp_path):
        path = tmp_path / 'report.pdf'
        path.write_bytes(b'%PDF')
        mock_gateway.write_file = AsyncMock(return_value=LargeObjectInfo(
            file_id='64b7f0c2a1b2c3d4e5f60718', name='report.pdf', length=4, chunk_size=261120,
        ))
        
        result = runner.invoke(app, ['put', str(path), '--meta', '{"owner.id": 7}', '--type', 'application/pdf'])
        
        assert result.exit_code == 0
        assert '64b7f0c2a1b2c3d4e5f60718' in result.stdout
        mock_gateway.write_file.assert_awaited_once_with(
            path, name=None, metadata={'owner.id': 7}, content_type='application/pdf'
        )
    
    def test_get_to_file(self, mock_gateway, tmp_path):
        out = tmp_path / 'copy.bin'
        mock_gateway.read_large_object = AsyncMock(return_value=b'payload')
        
        result = runner.invoke(app, ['get', 'report.pdf', '--out', str(out)])
        
        assert result.exit_code == 0
        assert out.read_bytes() == b'payload'
    
    def test_exists_missing(self, mock_gateway):
        mock_gateway.object_exists = AsyncMock(return_value=False)
        
        result = runner.invoke(app, ['exists', '64b7f0c2a1b2c3d4e5f60718'])
        
        assert result.exit_code == 1
        assert 'not found' in result.stdout
    
    def test_rm_missing(self, mock_gateway):
        mock_gateway.remove_object = AsyncMock(side_effect=NotFoundError('File id not found'))
        
        result = runner.invoke(app, ['rm', '64b7f0c2a1b2c3d4e5f60718'])
        
        assert result.exit_code == 1
        assert 'File id not found' in result.stdout


class TestLoggingOptions:
    """Test that the logging section of config.json drives the CLI's logging."""
    
    def test_configured_level(self, config_dir):
        result = runner.invoke(app, ['-c', str(config_dir / 'config.json'), 'check-config'])
        
        assert result.exit_code == 0
        assert logging.getLogger().level == logging.INFO
    
    def test_verbose_overrides_configured_level(self, config_dir):
        result = runner.invoke(app, ['-c', str(config_dir / 'config.json'), '-v', 'check-config'])
        
        assert result.exit_code == 0
        assert logging.getLogger().level == logging.DEBUG
    
    def test_environment_level_override(self, config_dir, monkeypatch):
        monkeypatch.setenv('DOCSTORE_LOG_LEVEL', 'ERROR')
        
        result = runner.invoke(app, ['-c', str(config_dir / 'config.json'), 'check-config'])
        
        assert result.exit_code == 0
        assert logging.getLogger().level == logging.ERROR
    
    def test_default_level_without_config(self, tmp_path):
        runner.invoke(app, ['-c', str(tmp_path / 'missing.json'), 'check-config'])
        
        assert logging.getLogger().level == logging.WARNING
    
    def test_rotating_log_file(self, config_dir):
        log_file = config_dir / 'gateway.log'
        config = json.loads((config_dir / 'config.json').read_text())
        config['logging'].update({
            'file': str(log_file),
            'rotate': True,
            'maxFileSize': '1MB',
            'backupCount': 2,
        })
        (config_dir / 'config.json').write_text(json.dumps(config))
        
        result = runner.invoke(app, ['-c', str(config_dir / 'config.json'), 'check-config'])
        
        assert result.exit_code == 0
        rotating = [
            handler for handler in logging.getLogger().handlers
            if isinstance(handler, logging.handlers.RotatingFileHandler)
        ]
        assert len(rotating) == 1
        assert rotating[0].maxBytes == 1024 ** 2
        assert rotating[0].backupCount == 2
