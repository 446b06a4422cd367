# tests/conftest.py
"""
Pytest configuration and fixtures.
Adds src to sys.path so `import paperportal` works without installing.
"""

import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
src_root = project_root / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))


@pytest.fixture(autouse=True)
def _isolated_logs(tmp_path, monkeypatch):
    """Route file logs under tmp_path and keep stray sqlite files out of the repo."""
    from paperportal.utils.logging_config import Logger

    Logger.close()
    monkeypatch.setenv("PAPERPORTAL_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("PAPERPORTAL_DB_URL", f"sqlite:///{tmp_path / 'default.db'}")
    yield
    Logger.close()
