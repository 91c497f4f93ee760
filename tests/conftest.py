import pytest
from fastapi.testclient import TestClient

from tictactoe3d import main
from tictactoe3d.main_server import preferences


@pytest.fixture
def prefs_file(tmp_path, monkeypatch):
    path = tmp_path / "prefs" / "preferences.json"
    monkeypatch.setattr(preferences, "PREFS_FILE", str(path))
    return path


@pytest.fixture
def client(prefs_file):
    main.games.clear()
    with TestClient(main.app) as c:
        yield c
    main.games.clear()
