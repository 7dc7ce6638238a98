from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from reviewmirror.config import ConfigError, MirrorConfig, config_from_mapping, load_config

FULL_CONFIG = textwrap.dedent(
    """\
    upstream:
      repo: acme/app
      base_branch: staging
      author: $MIRROR_AUTHOR
      bot_login: greptile-apps[bot]
    downstream:
      repo: acme/app-dev
      search_limit: 50
    markers:
      additional_comments: "Additional Comments"
      settings_footer: "Edit Code Review Agent Settings"
    posting:
      attempts: 4
      backoff_step: 1.5
      comment_delay: 0
    backend: REST
    logging:
      json_enabled: true
      level: DEBUG
    output:
      summary_json: out/summary.json
    """
)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / 'review_mirror.config.yaml'
    path.write_text(text, encoding='utf-8')
    return path


def test_load_full_config(tmp_path, monkeypatch):
    monkeypatch.setenv('MIRROR_AUTHOR', 'dev')
    cfg = load_config(_write(tmp_path, FULL_CONFIG))
    assert cfg.upstream_repo == 'acme/app'
    assert cfg.downstream_repo == 'acme/app-dev'
    assert cfg.base_branch == 'staging'
    assert cfg.author == 'dev'
    assert cfg.search_limit == 50
    assert (cfg.post_attempts, cfg.backoff_step, cfg.comment_delay) == (4, 1.5, 0.0)
    assert cfg.backend == 'rest'
    assert cfg.logging_json_enabled is True
    assert cfg.logging_level == 'DEBUG'
    assert cfg.summary_json == 'out/summary.json'
    assert cfg.source_file is not None
    cfg.validate()


def test_unresolved_env_var_keeps_literal(tmp_path, monkeypatch):
    monkeypatch.delenv('MIRROR_AUTHOR', raising=False)
    cfg = load_config(_write(tmp_path, FULL_CONFIG))
    assert cfg.author == '$MIRROR_AUTHOR'


def test_defaults_from_empty_mapping():
    cfg = config_from_mapping({})
    assert cfg.bot_login == 'greptile-apps[bot]'
    assert cfg.search_limit == 100
    assert cfg.post_attempts == 3
    assert cfg.backoff_step == 2.0
    assert cfg.comment_delay == 1.0
    assert cfg.backend == 'auto'
    with pytest.raises(ConfigError, match='upstream.repo'):
        cfg.validate()


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match='not found'):
        load_config(tmp_path / 'nope.yaml')


def test_invalid_yaml(tmp_path):
    with pytest.raises(ConfigError, match='Invalid YAML'):
        load_config(_write(tmp_path, 'upstream: [unclosed\n'))


def test_root_must_be_mapping(tmp_path):
    with pytest.raises(ConfigError, match='mapping'):
        load_config(_write(tmp_path, '- a\n- b\n'))


def test_section_must_be_mapping():
    with pytest.raises(ConfigError, match="'posting'"):
        config_from_mapping({'posting': 'fast'})


def test_non_numeric_value_rejected():
    with pytest.raises(ConfigError, match='Invalid configuration value'):
        config_from_mapping({'posting': {'attempts': 'many'}})


def _valid(**overrides) -> MirrorConfig:
    values = dict(
        upstream_repo='acme/app',
        downstream_repo='acme/app-dev',
        base_branch='staging',
        author='dev',
    )
    values.update(overrides)
    return MirrorConfig(**values)


@pytest.mark.parametrize(
    'overrides, message',
    [
        ({'downstream_repo': 'not-a-repo'}, 'owner/repo'),
        ({'post_attempts': 0}, 'attempts'),
        ({'comment_delay': -1.0}, 'negative'),
        ({'backoff_step': -0.5}, 'negative'),
        ({'search_limit': 0}, 'search_limit'),
        ({'backend': 'graphql'}, 'backend'),
        ({'author': None}, 'upstream.author'),
    ],
)
def test_validation_errors(overrides, message):
    with pytest.raises(ConfigError, match=message):
        _valid(**overrides).validate()


def test_valid_config_passes():
    _valid().validate()
