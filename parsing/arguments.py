#!/usr/bin/env python3
"""
Argument Merger
===============
Reconcile the positional and keyword arguments of a decorator call into
field values.

String literals contribute their literal text, so prefixes, triple quotes and
implicit concatenation ("a" "b") never leak into a value. Any other argument
is kept as raw source text with a string prefix and surrounding quotes
stripped, so @parameter("epochs", int, True, 10) and
@parameter("epochs", "int", "True", "10") carry the same fields. Nothing is
evaluated.

Positional values are assumed to form a contiguous prefix, as Python's call
syntax requires. A keyword argument that names a field already filled
positionally is ignored without complaint.
"""

import ast
import logging
import re
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from .errors import MissingRequiredFieldError

logger = logging.getLogger("processor_scanner.parsing.arguments")

QUOTE_CHARS = "\"'"
STRING_PREFIX = re.compile(r"^[rRuUbBfF]{1,2}(?=[\"'])")


class CallArguments(NamedTuple):
    """Positional values in call order, keyword values by name."""
    positional: List[str]
    keywords: Dict[str, str]


class FieldSpec(NamedTuple):
    """One field of an annotation, in its positional slot order."""
    name: str
    keywords: Tuple[str, ...]
    required: bool = True
    default: Optional[str] = None


PARAMETER_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("name", ("name",)),
    FieldSpec("type", ("type",)),
    FieldSpec("required", ("required",)),
    FieldSpec("defaultValue", ("defaultValue",)),
    FieldSpec("description", ("description",), required=False, default=""),
)

# @metric(name='recall', ground_truth=test_truth, prediction=test_pred)
METRIC_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("type", ("name", "type")),
    FieldSpec("groundTruth", ("ground_truth", "groundTruth")),
    FieldSpec("prediction", ("prediction",)),
)


def clean(value: str) -> str:
    """Strip a string prefix and surrounding quote characters from a source text value."""
    return STRING_PREFIX.sub("", value).strip(QUOTE_CHARS)


def _source_text(node: ast.AST, source: str) -> str:
    text = ast.get_source_segment(source, node)
    if text is None:
        text = ast.unparse(node)
    return text


def _argument_value(node: ast.AST, source: str) -> str:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return clean(_source_text(node, source))


def collect_arguments(call: ast.Call, source: str) -> CallArguments:
    """Split a decorator call into cleaned positional and keyword values."""
    positional = []
    keywords = {}

    for arg in call.args:
        if isinstance(arg, ast.Starred):
            logger.debug(f"Ignoring starred argument: {_source_text(arg, source)}")
            continue
        positional.append(_argument_value(arg, source))

    for keyword in call.keywords:
        if keyword.arg is None:
            logger.debug(f"Ignoring **{_source_text(keyword.value, source)}")
            continue
        keywords[keyword.arg] = _argument_value(keyword.value, source)

    return CallArguments(positional=positional, keywords=keywords)


def _lookup_keyword(keywords: Dict[str, str], spec: FieldSpec) -> Optional[str]:
    for key in spec.keywords:
        if key in keywords:
            return keywords[key]
    return None


def merge_arguments(arguments: CallArguments, fields: Sequence[FieldSpec]) -> Dict[str, Optional[str]]:
    """
    Resolve every field from the positional prefix or the keyword mapping.

    Args:
        arguments: Collected call arguments
        fields: Field specs in positional slot order

    Returns:
        Mapping field name -> value (default for absent optional fields)

    Raises:
        MissingRequiredFieldError: a required field is in neither source
    """
    positional_count = len(arguments.positional)
    values: Dict[str, Optional[str]] = {}

    for index, spec in enumerate(fields):
        if index < positional_count:
            values[spec.name] = arguments.positional[index]
            continue

        value = _lookup_keyword(arguments.keywords, spec)
        if value is None:
            if spec.required:
                raise MissingRequiredFieldError(spec.keywords[0])
            value = spec.default
        values[spec.name] = value

    return values
