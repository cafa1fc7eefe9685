#!/usr/bin/env python3
"""
Grammar Front-End
=================
Turn a byte stream of Python source into an AST without executing it.

Syntax problems never raise out of this module: they are reported as
"Error in line {row}, column {col}: {msg}" entries into an optional
caller-supplied list, and the caller receives an empty module instead.
"""

import ast
import io
import logging
import tokenize
from typing import BinaryIO, List, NamedTuple, Optional, Union

from .base import SyntaxDiagnostic

logger = logging.getLogger("processor_scanner.parsing.frontend")

Source = Union[bytes, bytearray, BinaryIO]


class ParsedSource(NamedTuple):
    """A parsed module together with the decoded text it came from."""
    tree: ast.Module
    text: str
    diagnostics: List[SyntaxDiagnostic]


def decode_source(data: bytes) -> str:
    """Decode source bytes, honouring a PEP 263 coding cookie or BOM."""
    try:
        encoding, _ = tokenize.detect_encoding(io.BytesIO(data).readline)
    except SyntaxError as e:
        logger.debug(f"Bad coding cookie, falling back to utf-8: {e}")
        encoding = "utf-8"
    # a BOM makes detect_encoding answer utf-8-sig, which drops it on decode
    return data.decode(encoding, errors="replace")


def read_source(in_stream: Source) -> bytes:
    if isinstance(in_stream, (bytes, bytearray)):
        return bytes(in_stream)
    return in_stream.read()


def parse_tree(in_stream: Source, error_messages: Optional[List[str]] = None) -> ParsedSource:
    """
    Parse Python source into a module tree.

    Args:
        in_stream: Raw source bytes or a binary file object
        error_messages: Optional sink receiving formatted syntax diagnostics

    Returns:
        ParsedSource; its tree is an empty module if the source does not parse
    """
    text = decode_source(read_source(in_stream))
    diagnostics: List[SyntaxDiagnostic] = []

    try:
        tree = ast.parse(text, type_comments=False)
    except SyntaxError as e:
        # offset is 1-based, columns are reported 0-based
        diagnostic = SyntaxDiagnostic(
            line=e.lineno or 0,
            column=max((e.offset or 1) - 1, 0),
            message=e.msg,
        )
        diagnostics.append(diagnostic)
        tree = ast.Module(body=[], type_ignores=[])
    except ValueError as e:
        # e.g. source containing null bytes
        diagnostics.append(SyntaxDiagnostic(line=0, column=0, message=str(e)))
        tree = ast.Module(body=[], type_ignores=[])

    for diagnostic in diagnostics:
        logger.warning(f"Failed to parse source code: {diagnostic.format()}")
        if error_messages is not None:
            error_messages.append(diagnostic.format())

    return ParsedSource(tree=tree, text=text, diagnostics=diagnostics)
