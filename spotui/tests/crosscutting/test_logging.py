import pytest
import json
import logging
import tempfile
import os
import shutil
from unittest.mock import Mock

from spotui.crosscutting.logging import (
    SecretMasker, StructuredFormatter, CorrelationContext,
    setup_logging, get_logger, log_with_fields, log_context_loaded, log_error,
    context_uri_var, stage_var
)


def _record(message='Test message', levelname='INFO'):
    record = Mock()
    record.levelname = levelname
    record.name = 'test_logger'
    record.getMessage.return_value = message
    record.module = 'test_module'
    record.funcName = 'test_function'
    record.lineno = 42
    record.exc_info = None
    record.fields = None
    return record


class TestSecretMasker:
    """Tests for secret masking functionality."""

    def setup_method(self):
        self.masker = SecretMasker()

    def test_mask_api_token(self):
        masked = self.masker.mask_secrets("API token: abc123def456ghi789")
        assert masked == "API token: abc1**********i789"

    def test_mask_client_secret(self):
        masked = self.masker.mask_secrets("client_secret: my_super_secret_key_12345")
        assert "my_super_secret_key_12345" not in masked

    def test_mask_bearer_token(self):
        token = "BQD" + "x" * 40 + "END1"
        masked = self.masker.mask_secrets(f"Authorization: Bearer {token}")
        assert token not in masked
        assert masked.endswith("END1")

    def test_plain_text_is_untouched(self):
        text = "Loaded 25 tracks for spotify:playlist:37i9dQZF1DXcBWIGoYBM5M"
        assert self.masker.mask_secrets(text) == text

    def test_empty_text(self):
        assert self.masker.mask_secrets("") == ""
        assert self.masker.mask_secrets(None) is None


class TestStructuredFormatter:
    """Tests for structured logging formatter."""

    def setup_method(self):
        self.formatter = StructuredFormatter()

    def test_format_basic_log(self):
        data = json.loads(self.formatter.format(_record()))

        assert data['level'] == 'INFO'
        assert data['logger'] == 'test_logger'
        assert data['message'] == 'Test message'
        assert data['line'] == 42
        assert data['ts'].endswith('Z')
        assert 'contextUri' not in data

    def test_format_with_correlation(self):
        with CorrelationContext(context_uri='spotify:album:1', stage='load_context'):
            data = json.loads(self.formatter.format(_record()))

        assert data['contextUri'] == 'spotify:album:1'
        assert data['stage'] == 'load_context'

    def test_format_with_fields(self):
        record = _record()
        record.fields = {'track_count': 12}

        data = json.loads(self.formatter.format(record))

        assert data['fields'] == {'track_count': 12}


class TestCorrelationContext:
    """Tests for correlation context management."""

    def test_nested_contexts_restore(self):
        with CorrelationContext(context_uri='outer'):
            with CorrelationContext(stage='inner'):
                assert context_uri_var.get() == 'outer'
                assert stage_var.get() == 'inner'
            assert stage_var.get() is None
        assert context_uri_var.get() is None


class TestLoggingIntegration:
    """Integration tests writing JSON lines to a log file."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.log_file = os.path.join(self.temp_dir, 'test.log')

    def teardown_method(self):
        logger = logging.getLogger('spotui')
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()
        shutil.rmtree(self.temp_dir)

    def _read_entry(self):
        with open(self.log_file, 'r') as f:
            return json.loads(f.readline().strip())

    def test_setup_logging(self):
        logger = setup_logging(level='DEBUG', log_file=self.log_file, console=False)

        assert logger.name == 'spotui'
        assert logger.level == logging.DEBUG

        get_logger('spotui.application.loader').debug('child message')
        assert self._read_entry()['logger'] == 'spotui.application.loader'

    def test_log_with_fields(self):
        logger = setup_logging(level='INFO', log_file=self.log_file, console=False)

        log_with_fields(logger, 'INFO', 'Sorted', {'order': 'album'}, track_count=3)

        data = self._read_entry()
        assert data['fields'] == {'order': 'album', 'track_count': 3}

    def test_log_context_loaded(self):
        logger = setup_logging(level='INFO', log_file=self.log_file, console=False)

        log_context_loaded(logger, 'spotify:playlist:p1', 'playlist', 42)

        data = self._read_entry()
        assert data['contextUri'] == 'spotify:playlist:p1'
        assert data['stage'] == 'context_loaded'
        assert data['fields']['track_count'] == 42

    def test_log_error(self):
        logger = setup_logging(level='INFO', log_file=self.log_file, console=False)

        try:
            raise ValueError("bad payload")
        except ValueError as e:
            log_error(logger, "Conversion failed", e, index=3)

        data = self._read_entry()
        assert data['level'] == 'ERROR'
        assert data['fields']['error_type'] == 'ValueError'
        assert data['fields']['index'] == 3
        assert 'bad payload' in data['exception']
