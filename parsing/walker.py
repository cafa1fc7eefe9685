#!/usr/bin/env python3
"""
Annotation Walker
=================
Find @data_processor, @parameter and @metric decorators in Python source and
turn them into descriptors, without executing anything.

Example:
    @data_processor(name="Resnet 50", type="ALGORITHM", input_type="IMAGE",
                    output_type="MODEL", visibility="PUBLIC")
    @parameter("epochs", int, True, 10)
    @parameter(name="lr", type="float", required=False, defaultValue=0.01)
    @metric("f1", y_true, y_pred)
    def train(epochs, lr):
        ...

A decorator that cannot be built is logged and skipped; the rest of its
function and file are unaffected. Only a bad parameter name, checked once all
functions are walked, fails the whole parse.
"""

import ast
import logging
from typing import Iterator, List, Optional, Union

from .arguments import collect_arguments
from .base import (
    DecoratorOutcome,
    ParseOutcome,
    ParseResult,
    ProcessorDescriptor,
    SequenceContext,
)
from .builders import build_metric, build_parameter, build_processor
from .errors import (
    AnnotationError,
    BadParameterNameError,
    MultipleDataProcessorsError,
    UnsupportedAnnotationError,
)
from .frontend import Source, parse_tree

logger = logging.getLogger("processor_scanner.parsing.walker")

PARAMETER = "parameter"
DATA_PROCESSOR = "data_processor"
METRIC = "metric"
RECOGNIZED_ANNOTATIONS = (PARAMETER, DATA_PROCESSOR, METRIC)

FunctionNode = Union[ast.FunctionDef, ast.AsyncFunctionDef]


def dotted_name(node: ast.expr) -> Optional[str]:
    """'mlreef.parameter' for an Attribute chain, None for anything else."""
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        owner = dotted_name(node.value)
        return f"{owner}.{node.attr}" if owner else None
    return None


class AnnotationResolver:
    """
    Resolve one decorator clause into a DecoratorOutcome.

    Never raises: every failure becomes a skip outcome with its reason.
    """

    def __init__(self, source: str, reject_multiple_processors: bool = False):
        self.source = source
        self.reject_multiple_processors = reject_multiple_processors

    def resolve(self, decorator: ast.expr, context: SequenceContext) -> DecoratorOutcome:
        text = ast.get_source_segment(self.source, decorator) or ast.unparse(decorator)
        logger.debug(f"Annotation: @{text}")

        try:
            return DecoratorOutcome.built(self._build(decorator, context))
        except AnnotationError as e:
            logger.warning(f"Skipping @{text}: {e}")
            return DecoratorOutcome.skipped(str(e))
        except Exception as e:
            logger.error(f"Unexpected error building @{text}: {e}")
            return DecoratorOutcome.skipped(f"{type(e).__name__}: {e}")

    def _build(self, decorator: ast.expr, context: SequenceContext):
        # @parameter without a call carries no arguments to read
        if not isinstance(decorator, ast.Call):
            raise UnsupportedAnnotationError(dotted_name(decorator) or ast.unparse(decorator))

        name = dotted_name(decorator.func)
        arguments = collect_arguments(decorator, self.source)

        if name == PARAMETER:
            return build_parameter(arguments, context.processor_id, context.order)
        elif name == DATA_PROCESSOR:
            if self.reject_multiple_processors and context.processor_id is not None:
                raise MultipleDataProcessorsError()
            return build_processor(arguments.keywords)
        elif name == METRIC:
            return build_metric(arguments)

        raise UnsupportedAnnotationError(name or ast.unparse(decorator.func))


class TreeWalker:
    """
    Single pass over a module, accumulating descriptors and counters.

    Descends through classes and compound statements but not into function
    bodies, so nested functions are neither counted nor analyzed.
    """

    def __init__(self, resolver: AnnotationResolver):
        self.resolver = resolver
        self.result = ParseResult()

    def walk(self, tree: ast.Module) -> ParseResult:
        for function in self._functions(tree):
            self.result.count_functions += 1
            if function.decorator_list:
                self._visit_decorated(function)
        return self.result

    def _functions(self, node: ast.AST) -> Iterator[FunctionNode]:
        for child in ast.iter_child_nodes(node):
            if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef)):
                yield child
            elif isinstance(child, (ast.stmt, ast.excepthandler, ast.match_case)):
                yield from self._functions(child)

    def _visit_decorated(self, function: FunctionNode) -> None:
        logger.info(f"parsing decorated function: {function.name} with {len(function.decorator_list)} decorators")

        context = SequenceContext()
        built = 0

        for decorator in function.decorator_list:
            outcome = self.resolver.resolve(decorator, context)
            if not outcome.is_built:
                continue

            self.result.add(outcome.record)
            context = context.advance(outcome.record)
            built += 1

            if isinstance(outcome.record, ProcessorDescriptor):
                logger.debug(f"Active processor for {function.name}: {outcome.record.slug} ({outcome.record.id})")

        if built:
            self.result.count_decorated_functions += 1


def parse_source(
    in_stream: Source,
    error_messages: Optional[List[str]] = None,
    reject_multiple_processors: bool = False,
) -> ParseOutcome:
    """
    Parse annotations from Python source and report the call-level outcome.

    Args:
        in_stream: Raw source bytes or a binary file object
        error_messages: Optional sink for syntax diagnostics
        reject_multiple_processors: Skip any @data_processor after the first
            one on the same function

    Returns:
        ParseOutcome holding the ParseResult, or the BadParameterNameError
        when a parameter name is outside [a-zA-Z0-9_-]
    """
    parsed = parse_tree(in_stream, error_messages)
    resolver = AnnotationResolver(parsed.text, reject_multiple_processors)
    result = TreeWalker(resolver).walk(parsed.tree)

    bad_name = result.find_bad_parameter_name()
    if bad_name is not None:
        logger.error(f"Bad parameter naming: {bad_name}")
        return ParseOutcome(failure=BadParameterNameError(bad_name))

    return ParseOutcome(result=result)


def parse_python3(
    in_stream: Source,
    error_messages: Optional[List[str]] = None,
    reject_multiple_processors: bool = False,
) -> ParseResult:
    """
    Parse annotations from Python source.

    Raises:
        BadParameterNameError: a parameter name is outside [a-zA-Z0-9_-];
            nothing is returned in that case
    """
    return parse_source(in_stream, error_messages, reject_multiple_processors).unwrap()
