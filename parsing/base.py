"""
Shared data models for the processor annotation parser.

All parsing modules import the descriptor records, enums and result
containers from this module.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, ClassVar, Dict, List, NamedTuple, Optional, Union
from uuid import UUID

from .errors import BadParameterNameError


# =============================================================================
# ENUMS
# =============================================================================

class ProcessorType(Enum):
    OPERATION = "OPERATION"
    ALGORITHM = "ALGORITHM"
    VISUALIZATION = "VISUALIZATION"


class DataType(Enum):
    ANYTHING = "ANYTHING"
    AUDIO = "AUDIO"
    HIERARCHY = "HIERARCHY"
    IMAGE = "IMAGE"
    MATRIX = "MATRIX"
    MODEL = "MODEL"
    NUMBER = "NUMBER"
    TABULAR = "TABULAR"
    TEXT = "TEXT"
    TIME_SERIES = "TIME_SERIES"
    VIDEO = "VIDEO"


class VisibilityScope(Enum):
    PRIVATE = "PRIVATE"
    PUBLIC = "PUBLIC"


class ParameterType(Enum):
    BOOLEAN = "BOOLEAN"
    COMPLEX = "COMPLEX"
    DICTIONARY = "DICTIONARY"
    FLOAT = "FLOAT"
    INTEGER = "INTEGER"
    LIST = "LIST"
    STRING = "STRING"
    TUPLE = "TUPLE"
    UNDEFINED = "UNDEFINED"


class MetricType(Enum):
    RECALL = "RECALL"
    PRECISION = "PRECISION"
    F1_SCORE = "F1_SCORE"
    UNDEFINED = "UNDEFINED"


# =============================================================================
# DESCRIPTORS
# =============================================================================

@dataclass(frozen=True)
class ProcessorDescriptor:
    """A data processor declared by a @data_processor decorator."""
    processor_type: ClassVar[ProcessorType]

    id: UUID
    slug: str
    name: str
    command: str
    description: str
    input_type: DataType
    output_type: Optional[DataType]
    visibility: VisibilityScope
    author: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "processor",
            "id": str(self.id),
            "processor_type": self.processor_type.value,
            "slug": self.slug,
            "name": self.name,
            "command": self.command,
            "description": self.description,
            "input_type": self.input_type.value,
            "output_type": self.output_type.value if self.output_type else None,
            "visibility": self.visibility.value,
            "author": self.author,
        }


@dataclass(frozen=True)
class DataOperation(ProcessorDescriptor):
    processor_type: ClassVar[ProcessorType] = ProcessorType.OPERATION


@dataclass(frozen=True)
class DataAlgorithm(ProcessorDescriptor):
    processor_type: ClassVar[ProcessorType] = ProcessorType.ALGORITHM


@dataclass(frozen=True)
class DataVisualization(ProcessorDescriptor):
    """Visualizations consume data but produce none, so output_type stays None."""
    processor_type: ClassVar[ProcessorType] = ProcessorType.VISUALIZATION


@dataclass(frozen=True)
class ParameterDescriptor:
    """A typed processor parameter declared by a @parameter decorator."""
    id: UUID
    processor_id: UUID  # copy of the owning processor's id, not a reference
    name: str
    type: ParameterType
    required: bool
    default_value: str
    order: int
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "parameter",
            "id": str(self.id),
            "processor_id": str(self.processor_id),
            "name": self.name,
            "type": self.type.value,
            "required": self.required,
            "default_value": self.default_value,
            "order": self.order,
            "description": self.description,
        }


@dataclass(frozen=True)
class MetricDescriptor:
    """An evaluation metric declared by a @metric decorator."""
    metric_type: MetricType
    ground_truth: str
    prediction: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "metric",
            "metric_type": self.metric_type.value,
            "ground_truth": self.ground_truth,
            "prediction": self.prediction,
        }


AnnotationRecord = Union[ProcessorDescriptor, ParameterDescriptor, MetricDescriptor]


# =============================================================================
# TRAVERSAL STATE & OUTCOMES
# =============================================================================

class SyntaxDiagnostic(NamedTuple):
    """A syntax problem reported by the grammar front-end."""
    line: int
    column: int
    message: str

    def format(self) -> str:
        return f"Error in line {self.line}, column {self.column}: {self.message}"


@dataclass(frozen=True)
class SequenceContext:
    """
    Running state for one function's decorator sequence.

    Replaced, never mutated: each successfully built record yields the next
    context via advance().
    """
    order: int = 0
    processor_id: Optional[UUID] = None

    def advance(self, record: AnnotationRecord) -> "SequenceContext":
        if isinstance(record, ProcessorDescriptor):
            return replace(self, processor_id=record.id)
        if isinstance(record, ParameterDescriptor):
            return replace(self, order=self.order + 1)
        return self


@dataclass(frozen=True)
class DecoratorOutcome:
    """Either a built record or the reason a decorator was skipped."""
    record: Optional[AnnotationRecord] = None
    skip_reason: Optional[str] = None

    @classmethod
    def built(cls, record: AnnotationRecord) -> "DecoratorOutcome":
        return cls(record=record)

    @classmethod
    def skipped(cls, reason: str) -> "DecoratorOutcome":
        return cls(skip_reason=reason)

    @property
    def is_built(self) -> bool:
        return self.record is not None


# =============================================================================
# PARSE RESULT
# =============================================================================

PARAMETER_NAME_PATTERN = re.compile(r"[a-zA-Z0-9_-]*")


@dataclass
class ParseResult:
    """All annotations found in one source file, in source order, plus counters."""
    annotations: List[AnnotationRecord] = field(default_factory=list)
    count_functions: int = 0
    count_decorated_functions: int = 0
    count_parameters: int = 0
    count_processors: int = 0
    count_metrics: int = 0

    def add(self, record: AnnotationRecord) -> None:
        self.annotations.append(record)
        if isinstance(record, ProcessorDescriptor):
            self.count_processors += 1
        elif isinstance(record, ParameterDescriptor):
            self.count_parameters += 1
        elif isinstance(record, MetricDescriptor):
            self.count_metrics += 1

    @property
    def processors(self) -> List[ProcessorDescriptor]:
        return [a for a in self.annotations if isinstance(a, ProcessorDescriptor)]

    @property
    def parameters(self) -> List[ParameterDescriptor]:
        return [a for a in self.annotations if isinstance(a, ParameterDescriptor)]

    @property
    def metrics(self) -> List[MetricDescriptor]:
        return [a for a in self.annotations if isinstance(a, MetricDescriptor)]

    def find_bad_parameter_name(self) -> Optional[str]:
        """Return the first parameter name outside [a-zA-Z0-9_-], if any."""
        for parameter in self.parameters:
            if not PARAMETER_NAME_PATTERN.fullmatch(parameter.name):
                return parameter.name
        return None

    def counters(self) -> Dict[str, int]:
        return {
            "functions": self.count_functions,
            "decorated_functions": self.count_decorated_functions,
            "parameters": self.count_parameters,
            "processors": self.count_processors,
            "metrics": self.count_metrics,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "annotations": [a.to_dict() for a in self.annotations],
            "counters": self.counters(),
        }


@dataclass(frozen=True)
class ParseOutcome:
    """Call-level outcome: a ParseResult or the fatal naming failure."""
    result: Optional[ParseResult] = None
    failure: Optional[BadParameterNameError] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def unwrap(self) -> ParseResult:
        if self.failure is not None:
            raise self.failure
        return self.result
