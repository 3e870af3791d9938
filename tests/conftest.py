import pytest

import db


@pytest.fixture(autouse=True)
def isolated_db(tmp_path, monkeypatch):
    """Keep settings and job archives out of the source tree."""
    monkeypatch.setattr(db, "DB_DIR", tmp_path)
    return tmp_path
