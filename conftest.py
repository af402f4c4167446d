import os
from pathlib import Path

import pytest


@pytest.fixture(scope="session")
def software_hive_path() -> Path:
    """Provide an offline SOFTWARE hive for tests that need real registry data."""
    env_path = os.environ.get("SOFTWARE_HIVE")
    path = Path(env_path) if env_path else Path("images/hives/SOFTWARE")
    if not path.exists():
        pytest.skip(f"SOFTWARE hive not found at {path}")
    return path
