"""Test fakes and factory helpers for provider testing."""

from tests.fakes.mock_provider import make_mock_provider
from tests.fakes.scripted_process import (
    build_script,
    make_scripted_provider,
    scripted_options,
)

__all__ = [
    "make_mock_provider",
    "build_script",
    "make_scripted_provider",
    "scripted_options",
]
