"""Shared fixtures for the annotation parser tests."""

import textwrap
from typing import List, Optional

import pytest

from parsing import ParseResult, parse_python3, parse_source


PROCESSOR = (
    '@data_processor(slug="foo", name="Foo", type="OPERATION", '
    'input_type="IMAGE", output_type="IMAGE", visibility="PUBLIC")'
)


def source(code: str) -> bytes:
    return textwrap.dedent(code).lstrip("\n").encode("utf-8")


@pytest.fixture
def parse():
    """Parse dedented source text, raising on a bad parameter name."""
    def _parse(code: str, errors: Optional[List[str]] = None, **kwargs) -> ParseResult:
        return parse_python3(source(code), errors, **kwargs)
    return _parse


@pytest.fixture
def outcome():
    """Parse dedented source text into a ParseOutcome."""
    def _outcome(code: str, errors: Optional[List[str]] = None, **kwargs):
        return parse_source(source(code), errors, **kwargs)
    return _outcome
