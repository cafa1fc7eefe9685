#!/usr/bin/env python3
"""
Descriptor Builders
===================
Build processor, parameter and metric descriptors from merged decorator fields.

Processor enums are strict: an unknown value fails the decorator.
Parameter and metric types are permissive: unknown values map to UNDEFINED,
and any "required" flag other than a case-insensitive "true" is False.
"""

import logging
import re
import uuid
from enum import Enum
from typing import Dict, Optional, Type, TypeVar
from uuid import UUID

from .arguments import (
    CallArguments,
    METRIC_FIELDS,
    PARAMETER_FIELDS,
    merge_arguments,
)
from .base import (
    DataAlgorithm,
    DataOperation,
    DataType,
    DataVisualization,
    MetricDescriptor,
    MetricType,
    ParameterDescriptor,
    ParameterType,
    ProcessorDescriptor,
    ProcessorType,
    VisibilityScope,
)
from .errors import (
    MissingOwningProcessorError,
    MissingRequiredFieldError,
    UnknownEnumValueError,
)

logger = logging.getLogger("processor_scanner.parsing.builders")

E = TypeVar("E", bound=Enum)

# Upper-cased alias → parameter type; anything else is UNDEFINED
PARAMETER_TYPE_ALIASES: Dict[str, ParameterType] = {
    "STRING": ParameterType.STRING,
    "STR": ParameterType.STRING,
    "INTEGER": ParameterType.INTEGER,
    "INT": ParameterType.INTEGER,
    "FLOAT": ParameterType.FLOAT,
    "BOOLEAN": ParameterType.BOOLEAN,
    "BOOL": ParameterType.BOOLEAN,
    "COMPLEX": ParameterType.COMPLEX,
    "DICTIONARY": ParameterType.DICTIONARY,
    "LIST": ParameterType.LIST,
    "TUPLE": ParameterType.TUPLE,
}

METRIC_TYPE_ALIASES: Dict[str, MetricType] = {
    "RECALL": MetricType.RECALL,
    "PRECISION": MetricType.PRECISION,
    "F1_SCORE": MetricType.F1_SCORE,
    "F1": MetricType.F1_SCORE,
}

# Anything not listed here, malformed values included, is False
BOOLEAN_VALUES: Dict[str, bool] = {
    "TRUE": True,
    "FALSE": False,
}

PROCESSOR_CLASSES: Dict[ProcessorType, Type[ProcessorDescriptor]] = {
    ProcessorType.OPERATION: DataOperation,
    ProcessorType.ALGORITHM: DataAlgorithm,
    ProcessorType.VISUALIZATION: DataVisualization,
}

_SLUG_SEPARATORS = re.compile(r"[\s\-_]+")


def to_slug(value: str) -> str:
    """'My Great_Op' → 'my-great-op'"""
    return _SLUG_SEPARATORS.sub("-", value.lower())


def parameter_type(value: str) -> ParameterType:
    return PARAMETER_TYPE_ALIASES.get(value.upper(), ParameterType.UNDEFINED)


def metric_type(value: str) -> MetricType:
    return METRIC_TYPE_ALIASES.get(value.upper(), MetricType.UNDEFINED)


def boolean(value: str) -> bool:
    return BOOLEAN_VALUES.get(value.upper(), False)


def _get_or_fail(values: Dict[str, str], key: str) -> str:
    if key not in values:
        raise MissingRequiredFieldError(key)
    return values[key]


def _enum_or_fail(values: Dict[str, str], key: str, enum_cls: Type[E]) -> E:
    """Case-insensitively match a required value against a closed enum."""
    raw = _get_or_fail(values, key)
    try:
        return enum_cls[raw.upper()]
    except KeyError:
        raise UnknownEnumValueError(key, raw, enum_cls.__members__) from None


def build_processor(values: Dict[str, str]) -> ProcessorDescriptor:
    """
    Build a processor descriptor from @data_processor keyword values.

    Slug and name stand in for each other when one is missing.

    Example:
        >>> build_processor({"name": "Resnet 50", "type": "algorithm",
        ...                  "input_type": "image", "output_type": "model",
        ...                  "visibility": "public"}).slug
        'resnet-50'
    """
    slug: Optional[str] = values.get("slug")
    name: Optional[str] = values.get("name")
    if slug is None and name is None:
        raise MissingRequiredFieldError("slug or name")
    if slug is None:
        slug = to_slug(name)
    if name is None:
        name = to_slug(slug)

    command = values.get("command", f"{slug}.py")
    description = values.get("description", "")

    processor_type = _enum_or_fail(values, "type", ProcessorType)
    input_type = _enum_or_fail(values, "input_type", DataType)
    visibility = _enum_or_fail(values, "visibility", VisibilityScope)

    output_type = None
    if processor_type is not ProcessorType.VISUALIZATION:
        output_type = _enum_or_fail(values, "output_type", DataType)

    processor_cls = PROCESSOR_CLASSES[processor_type]
    return processor_cls(
        id=uuid.uuid4(),
        slug=slug,
        name=name,
        command=command,
        description=description,
        input_type=input_type,
        output_type=output_type,
        visibility=visibility,
        author=None,
    )


def build_parameter(arguments: CallArguments, processor_id: Optional[UUID], order: int) -> ParameterDescriptor:
    """Build a parameter descriptor owned by the active processor."""
    if processor_id is None:
        name = arguments.positional[0] if arguments.positional else arguments.keywords.get("name", "")
        raise MissingOwningProcessorError(name)

    fields = merge_arguments(arguments, PARAMETER_FIELDS)

    return ParameterDescriptor(
        id=uuid.uuid4(),
        processor_id=processor_id,
        name=fields["name"],
        type=parameter_type(fields["type"]),
        required=boolean(fields["required"]),
        default_value=fields["defaultValue"],
        order=order,
        description=fields["description"],
    )


def build_metric(arguments: CallArguments) -> MetricDescriptor:
    fields = merge_arguments(arguments, METRIC_FIELDS)

    return MetricDescriptor(
        metric_type=metric_type(fields["type"]),
        ground_truth=fields["groundTruth"],
        prediction=fields["prediction"],
    )
