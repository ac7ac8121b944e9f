from __future__ import annotations

import logging

import yaml
from fastapi.testclient import TestClient

from photoguess import observability
from photoguess.main import app

client = TestClient(app)


def test_root():
    response = client.get('/')
    assert response.status_code == 200
    assert response.json() == {'message': 'Hello, PhotoGuess!'}


def test_health():
    response = client.get('/health')
    assert response.status_code == 200
    assert response.json() == {'status': 'ok'}


def test_openapi_lists_room_routes():
    paths = app.openapi()['paths']
    assert '/rooms' in paths
    assert '/rooms/{code}/advance' in paths
    assert '/rooms/{code}/submissions/{submission_id}/reveal' in paths
    assert '/rooms/{code}/state' in paths


def test_generate_openapi_writes_yaml(tmp_path, monkeypatch):
    from scripts import generate_openapi

    output = tmp_path / 'openapi' / 'openapi.yaml'
    monkeypatch.setattr(generate_openapi, 'OUTPUT_PATH', output)
    generate_openapi.main()

    text = output.read_text()
    assert text.startswith('# PhotoGuess HTTP API schema')
    spec = yaml.safe_load(text)
    assert spec['info']['title'] == 'PhotoGuess'
    assert '/rooms/{code}/players' in spec['paths']


def test_setup_logging_adds_one_handler(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(observability, '_configured', False)
    monkeypatch.setattr(root, 'handlers', [])
    monkeypatch.setattr(root, 'level', root.level)

    observability.setup_logging('debug')
    observability.setup_logging('warning')

    assert len(root.handlers) == 1
    assert root.level == logging.WARNING
