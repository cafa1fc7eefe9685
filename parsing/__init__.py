"""
Parsing package for the processor annotation scanner.

Exports the parse entry points, descriptor models and errors.
"""

from .base import (
    ProcessorType,
    DataType,
    VisibilityScope,
    ParameterType,
    MetricType,
    ProcessorDescriptor,
    DataOperation,
    DataAlgorithm,
    DataVisualization,
    ParameterDescriptor,
    MetricDescriptor,
    AnnotationRecord,
    SyntaxDiagnostic,
    SequenceContext,
    DecoratorOutcome,
    ParseResult,
    ParseOutcome,
)
from .errors import (
    AnnotationParserError,
    AnnotationError,
    UnsupportedAnnotationError,
    MissingRequiredFieldError,
    MissingOwningProcessorError,
    UnknownEnumValueError,
    MultipleDataProcessorsError,
    BadParameterNameError,
)
from .frontend import parse_tree
from .walker import AnnotationResolver, TreeWalker, parse_source, parse_python3

__all__ = [
    # Enums
    "ProcessorType",
    "DataType",
    "VisibilityScope",
    "ParameterType",
    "MetricType",
    # Descriptors
    "ProcessorDescriptor",
    "DataOperation",
    "DataAlgorithm",
    "DataVisualization",
    "ParameterDescriptor",
    "MetricDescriptor",
    "AnnotationRecord",
    # Traversal & results
    "SyntaxDiagnostic",
    "SequenceContext",
    "DecoratorOutcome",
    "ParseResult",
    "ParseOutcome",
    # Errors
    "AnnotationParserError",
    "AnnotationError",
    "UnsupportedAnnotationError",
    "MissingRequiredFieldError",
    "MissingOwningProcessorError",
    "UnknownEnumValueError",
    "MultipleDataProcessorsError",
    "BadParameterNameError",
    # Entry points
    "parse_tree",
    "parse_source",
    "parse_python3",
    "AnnotationResolver",
    "TreeWalker",
]
