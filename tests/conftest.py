"""
Pytest configuration and shared fixtures for the configurator test suite.
"""

import sys
import tempfile
from pathlib import Path

import pytest
import yaml

# Ensure project root is on PYTHONPATH so 'configurator' can be imported
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

BUNDLED_CONFIG = PROJECT_ROOT / "configurator" / "pic32mz" / "config.yaml"


@pytest.fixture
def temp_yaml_file():
    """
    Fixture that provides a temporary YAML file.

    Yields:
        Path: Path to the temporary YAML file
    """
    with tempfile.NamedTemporaryFile(
        mode="w",
        suffix=".yaml",
        delete=False,
    ) as f:
        temp_path = Path(f.name)

    yield temp_path

    # Cleanup
    if temp_path.exists():
        temp_path.unlink()


@pytest.fixture
def bundled_config_dict():
    """
    Fixture providing the bundled PIC32MZ tables as a plain dictionary.

    Tests mutate the returned copy to build broken or substitute tables.
    """
    with open(BUNDLED_CONFIG, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


@pytest.fixture
def temp_config_yaml_file(temp_yaml_file, bundled_config_dict):
    """
    Fixture that writes a dictionary of family tables to a temporary file.

    Returns:
        Callable taking the dictionary (bundled tables when omitted) and
        returning the Path it was written to.
    """

    def _write(raw=None):
        with open(temp_yaml_file, "w", encoding="utf-8") as f:
            yaml.safe_dump(bundled_config_dict if raw is None else raw, f, sort_keys=False)
        return temp_yaml_file

    return _write


@pytest.fixture(scope="session")
def family():
    """The PIC32MZ family built from the bundled tables."""
    from configurator import create_family

    return create_family("pic32mz")


@pytest.fixture
def compiler(family):
    return family.compiler


@pytest.fixture
def catalog(family):
    return family.catalog


def pytest_configure(config):
    """
    Hook for initial pytest configuration.

    Used to add custom markers and configuration.
    """
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests",
    )
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
