"""Test that the project setup is working correctly."""

import nexusevent


def test_version() -> None:
    """Test that version is defined."""
    assert nexusevent.__version__ == "0.1.1"


def test_import_modules() -> None:
    """Test that all submodules can be imported."""
    from nexusevent import config, errors, models, registry, senders

    assert config is not None
    assert errors is not None
    assert models is not None
    assert registry is not None
    assert senders is not None


def test_public_api() -> None:
    """Test that the package root exposes the main entry points."""
    assert nexusevent.get_instance() is nexusevent.get_instance()
    nexusevent.reset_instance()
    assert isinstance(nexusevent.get_instance(), nexusevent.NexusEvent)
