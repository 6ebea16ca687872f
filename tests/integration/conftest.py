"""Integration test fixtures."""

import os
from pathlib import Path

import pytest

from openvoice.model_fetcher import DEFAULT_MODEL, resolve_model_path


@pytest.fixture
def installed_model_path() -> Path:
    """Path of an installed model, or skip when none is available."""
    data_dir = Path(os.environ.get("OPENVOICE_DATA_DIR") or Path.home() / ".openvoice")
    model_name = os.environ.get("OPENVOICE_MODEL", DEFAULT_MODEL)
    path = resolve_model_path(data_dir, model_name)
    if not path.is_file():
        pytest.skip(f"Model not installed: {path}")
    return path
