"""
Tests for structured logging functionality.

This module tests the logging utilities and the logging middleware to ensure
proper logging behavior and request tracking.
"""

import json
import logging
import time
from io import StringIO
from unittest.mock import Mock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from mockmq.utils.logging import (
    get_logger,
    set_request_context,
    clear_request_context,
    get_request_context,
    log_performance,
    log_api_request,
    log_service_operation,
    StructuredFormatter,
    RequestTrackingFilter,
    LogContext
)
from mockmq.utils.metrics import MetricsCollector
from mockmq.middleware.logging_middleware import LoggingMiddleware


class TestStructuredLogging:
    """Test structured logging functionality."""

    def setup_method(self):
        """Set up test environment."""
        clear_request_context()

        self.log_buffer = StringIO()
        self.test_logger = logging.getLogger('test_logger')
        self.test_logger.setLevel(logging.DEBUG)

        for handler in self.test_logger.handlers[:]:
            self.test_logger.removeHandler(handler)

        handler = logging.StreamHandler(self.log_buffer)
        handler.setFormatter(StructuredFormatter())
        self.test_logger.addHandler(handler)

    def teardown_method(self):
        """Clean up test environment."""
        clear_request_context()

    def _last_record(self):
        return json.loads(self.log_buffer.getvalue().strip().splitlines()[-1])

    def test_structured_formatter(self):
        """Test structured JSON log formatting."""
        self.test_logger.info("Test message", extra={'queue': 'DEV.QUEUE.1', 'depth': 3})

        log_data = self._last_record()

        assert log_data['level'] == 'INFO'
        assert log_data['message'] == 'Test message'
        assert log_data['logger'] == 'test_logger'
        assert log_data['queue'] == 'DEV.QUEUE.1'
        assert log_data['depth'] == 3
        assert log_data['timestamp'].endswith('Z')
        assert 'module' in log_data
        assert 'function' in log_data
        assert 'line' in log_data

    def test_structured_formatter_exception(self):
        """Test exceptions are rendered with type and traceback."""
        try:
            raise RuntimeError("disk gone")
        except RuntimeError:
            self.test_logger.exception("Snapshot failed")

        exception = self._last_record()['exception']

        assert exception['type'] == 'RuntimeError'
        assert exception['message'] == 'disk gone'
        assert 'Traceback' in exception['traceback']

    def test_request_context_tracking(self):
        """Test request context tracking in logs."""
        set_request_context(request_id='test-123', method='POST', path='/mq/send')

        self.test_logger.info("Test with context")

        context = self._last_record()['request_context']
        assert context == {'request_id': 'test-123', 'method': 'POST', 'path': '/mq/send'}

    def test_request_context_accumulates(self):
        """Test context updates merge and clearing empties the context."""
        set_request_context(request_id='r1')
        set_request_context(path='/queues')

        assert get_request_context() == {'request_id': 'r1', 'path': '/queues'}

        clear_request_context()
        assert get_request_context() == {}

    def test_request_tracking_filter(self):
        """Test the filter copies context onto records without overwriting."""
        set_request_context(request_id='abc', path='/health')
        record = logging.LogRecord('x', logging.INFO, __file__, 1, 'msg', None, None)
        record.path = '/kept'

        assert RequestTrackingFilter().filter(record) is True
        assert record.request_id == 'abc'
        assert record.path == '/kept'

    def test_log_context_manager(self):
        """Test LogContext context manager."""
        with patch('mockmq.utils.logging.get_logger') as mock_get_logger:
            mock_logger = Mock()
            mock_get_logger.return_value = mock_logger

            with LogContext("create_imposter", port=2526):
                pass

            mock_logger.info.assert_called_once()
            call_args = mock_logger.info.call_args
            assert "Operation completed: create_imposter" in call_args[0][0]
            assert call_args[1]['extra']['status'] == 'success'
            assert call_args[1]['extra']['port'] == 2526
            assert 'duration_ms' in call_args[1]['extra']

    def test_log_context_manager_with_error(self):
        """Test LogContext context manager with exception."""
        with patch('mockmq.utils.logging.get_logger') as mock_get_logger:
            mock_logger = Mock()
            mock_get_logger.return_value = mock_logger

            with pytest.raises(ValueError):
                with LogContext("create_imposter"):
                    raise ValueError("Test error")

            call_args = mock_logger.error.call_args
            assert "Operation failed: create_imposter" in call_args[0][0]
            assert call_args[1]['extra']['status'] == 'error'
            assert call_args[1]['extra']['error_type'] == 'ValueError'
            assert call_args[1]['extra']['error_message'] == 'Test error'

    def test_log_performance_decorator(self):
        """Test log_performance decorator."""
        with patch('mockmq.utils.logging.get_logger') as mock_get_logger:
            mock_logger = Mock()
            mock_get_logger.return_value = mock_logger

            @log_performance("sync_operation")
            def sync_func():
                time.sleep(0.01)
                return "result"

            assert sync_func() == "result"
            assert "Operation completed: sync_operation" in mock_logger.info.call_args[0][0]

    async def test_log_performance_decorator_async(self):
        """Test log_performance decorator with async function."""
        with patch('mockmq.utils.logging.get_logger') as mock_get_logger:
            mock_logger = Mock()
            mock_get_logger.return_value = mock_logger

            @log_performance("async_operation")
            async def async_func():
                return "async_result"

            assert await async_func() == "async_result"
            mock_logger.info.assert_called_once()

    def test_log_api_request(self):
        """Test API request logging levels follow the status code."""
        with patch('mockmq.utils.logging.get_logger') as mock_get_logger:
            mock_logger = Mock()
            mock_get_logger.return_value = mock_logger

            log_api_request('GET', '/queues', 200, 1.234, 'r1')
            log_api_request('GET', '/queues/NOPE/depth', 404, 1.0, 'r2')
            log_api_request('POST', '/mq/send', 500, 1.0, 'r3')

            levels = [call[0][0] for call in mock_logger.log.call_args_list]
            assert levels == [logging.INFO, logging.WARNING, logging.ERROR]
            assert mock_logger.log.call_args_list[0][1]['extra']['duration_ms'] == 1.23

    def test_log_service_operation(self):
        """Test service operation logging."""
        with patch('mockmq.utils.logging.get_logger') as mock_get_logger:
            mock_logger = Mock()
            mock_get_logger.return_value = mock_logger

            log_service_operation('persistence', 'snapshot', True, 2.0)
            log_service_operation('persistence', 'snapshot', False, 2.0, error='disk full')

            mock_get_logger.assert_called_with('mockmq.services.persistence')
            mock_logger.debug.assert_called_once()
            assert "disk full" in mock_logger.warning.call_args[0][0]

    def test_get_logger(self):
        """Test loggers are looked up by name."""
        assert get_logger('mockmq.services') is logging.getLogger('mockmq.services')


class TestLoggingMiddleware:
    """Test logging middleware functionality."""

    def setup_method(self):
        """Set up test environment."""
        clear_request_context()

    def teardown_method(self):
        """Clean up test environment."""
        clear_request_context()

    def _app(self, **middleware_options):
        app = FastAPI()
        app.state.metrics = MetricsCollector()
        app.add_middleware(LoggingMiddleware, **middleware_options)

        @app.get("/test")
        async def test_endpoint():
            return {"message": "test"}

        @app.get("/health")
        async def health():
            return {"status": "ok"}

        @app.get("/error")
        async def error_endpoint():
            raise ValueError("Test error")

        return app

    def test_logging_middleware_basic(self):
        """Test requests are logged and tagged with a request id."""
        client = TestClient(self._app())

        with patch('mockmq.middleware.logging_middleware.log_api_request') as mock_log:
            response = client.get("/test")

            assert response.status_code == 200
            assert len(response.headers['X-Request-ID']) == 8
            call_args = mock_log.call_args[1]
            assert call_args['method'] == 'GET'
            assert call_args['path'] == '/test'
            assert call_args['status_code'] == 200
            assert call_args['request_id'] == response.headers['X-Request-ID']

    def test_logging_middleware_excludes_paths(self):
        """Test that middleware excludes specified paths."""
        client = TestClient(self._app(exclude_paths=['/health']))

        with patch('mockmq.middleware.logging_middleware.log_api_request') as mock_log:
            client.get("/health")
            assert mock_log.call_count == 0

            client.get("/test")
            assert mock_log.call_count == 1

    def test_logging_middleware_records_metrics(self):
        """Test API metrics go to the application collector."""
        app = self._app()
        client = TestClient(app)

        client.get("/test")

        summary = app.state.metrics.get_metric_summary('api.requests.total')
        assert summary.count == 1
        assert summary.tags['status_class'] == '2xx'

    def test_logging_middleware_error_handling(self):
        """Test unhandled errors become a 500 and are still logged."""
        client = TestClient(self._app())

        with patch('mockmq.middleware.logging_middleware.log_api_request') as mock_log:
            response = client.get("/error")

            assert response.status_code == 500
            assert response.json()['error'] == 'INTERNAL_SERVER_ERROR'
            assert mock_log.call_args[1]['status_code'] == 500

    def test_sensitive_headers_are_redacted(self):
        """Test credentials never reach the request log."""
        middleware = LoggingMiddleware(FastAPI())

        filtered = middleware._filter_sensitive_headers({
            'Authorization': 'Bearer x',
            'content-type': 'application/json'
        })

        assert filtered == {'Authorization': '<redacted>', 'content-type': 'application/json'}
