import json

import pytest

from reviewmirror.logging import StructuredLogger, configure_logging, get_logger


def _json_lines(out: str) -> list[dict]:
    return [json.loads(line) for line in out.strip().split('\n') if line]


def test_structured_logger_json_format(capsys):
    """Structured logger produces one JSON object per line when configured."""
    logger = StructuredLogger(name='test', json_logging=True, level='INFO')
    logger.log_operation('test_operation', param1='value1', param2=42)

    (entry,) = _json_lines(capsys.readouterr().out)
    assert entry['level'] == 'INFO'
    assert entry['logger'] == 'test'
    assert entry['operation'] == 'test_operation'
    assert entry['param1'] == 'value1'
    assert entry['param2'] == 42
    assert 'timestamp' in entry


def test_structured_logger_pr_action(capsys):
    logger = StructuredLogger(name='test_pr', json_logging=True)
    logger.log_pr_action('created', 42, branch='feature-a', issue_number=101, version=2)

    (entry,) = _json_lines(capsys.readouterr().out)
    assert entry['operation'] == 'pr_created'
    assert entry['pr_number'] == 42
    assert entry['branch'] == 'feature-a'
    assert entry['issue_number'] == 101
    assert entry['version'] == 2
    assert entry['message'] == 'PR #42 created -> issue #101'


def test_structured_logger_dry_run_marker(capsys):
    logger = StructuredLogger(name='test_dry', json_logging=True)
    logger.log_pr_action('planned', 7, dry_run=True)

    (entry,) = _json_lines(capsys.readouterr().out)
    assert entry['dry_run'] is True
    assert entry['message'].endswith('[DRY]')
    assert 'issue_number' not in entry


def test_structured_logger_plain_text(capsys):
    logger = StructuredLogger(name='test_plain', json_logging=False)
    logger.info('hello world')
    out = capsys.readouterr().out
    assert 'INFO hello world' in out
    with pytest.raises(json.JSONDecodeError):
        json.loads(out.strip())


def test_level_filters_debug(capsys):
    logger = StructuredLogger(name='test_level', json_logging=True, level='INFO')
    logger.debug('hidden')
    logger.warning('shown')
    entries = _json_lines(capsys.readouterr().out)
    assert [e['message'] for e in entries] == ['shown']


def test_timed_operation_logs_start_and_performance(capsys):
    logger = StructuredLogger(name='test_timed', json_logging=True)
    with logger.timed_operation('sync', dry_run=False):
        pass
    entries = _json_lines(capsys.readouterr().out)
    assert entries[0]['operation'] == 'sync_start'
    assert entries[1]['operation'] == 'sync'
    assert entries[1]['duration_ms'] >= 0


def test_timed_operation_logs_and_reraises(capsys):
    logger = StructuredLogger(name='test_timed_err', json_logging=True)
    with pytest.raises(RuntimeError):
        with logger.timed_operation('sync'):
            raise RuntimeError('boom')
    entries = _json_lines(capsys.readouterr().out)
    assert entries[-1]['level'] == 'ERROR'
    assert entries[-1]['error'] == 'boom'


def test_configure_logging_replaces_global(capsys):
    configured = configure_logging(json_logging=True, level='DEBUG')
    assert get_logger() is configured
    get_logger().debug('trace', attempt=1)
    (entry,) = _json_lines(capsys.readouterr().out)
    assert entry['attempt'] == 1
