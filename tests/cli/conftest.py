"""Shared fixtures for CLI tests."""

from pathlib import Path

import pytest
import yaml


@pytest.fixture
def tmp_config_path(tmp_path: Path) -> Path:
    """Config file pointing the policy store at a temporary SQLite database."""
    path = tmp_path / "regguard.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "policy_store": {
                    "backend": "sqlite",
                    "sqlite_path": str(tmp_path / "policies.db"),
                }
            }
        )
    )
    return path
