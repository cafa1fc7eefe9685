"""
Exceptions raised while turning decorators into descriptors.

AnnotationError and its subclasses only ever concern a single decorator and
are recovered by the resolver. BadParameterNameError aborts a whole parse.
"""

from typing import Iterable


class AnnotationParserError(Exception):
    """Base class for all parser errors."""


class AnnotationError(AnnotationParserError):
    """A single decorator could not be turned into a descriptor."""


class UnsupportedAnnotationError(AnnotationError):
    def __init__(self, name: str):
        super().__init__(f"Not supported annotation: {name}")
        self.name = name


class MissingRequiredFieldError(AnnotationError):
    def __init__(self, field_name: str):
        super().__init__(f"No {field_name} provided")
        self.field_name = field_name


class MissingOwningProcessorError(AnnotationError):
    def __init__(self, parameter_name: str = ""):
        super().__init__(
            f"Parameter {parameter_name or '<unnamed>'} declared before any @data_processor"
        )
        self.parameter_name = parameter_name


class UnknownEnumValueError(AnnotationError):
    def __init__(self, field_name: str, value: str, allowed: Iterable[str]):
        allowed = sorted(allowed)
        super().__init__(
            f"Unknown {field_name}: {value!r} (expected one of {', '.join(allowed)})"
        )
        self.field_name = field_name
        self.value = value
        self.allowed = allowed


class MultipleDataProcessorsError(AnnotationError):
    def __init__(self):
        super().__init__("Multiple DataProcessors were found, but just 1 is supported")


class BadParameterNameError(AnnotationParserError):
    def __init__(self, name: str):
        super().__init__(f"Bad parameter naming: {name}")
        self.name = name
