"""Tests for positional/keyword argument merging."""

import ast

import pytest

from parsing.arguments import (
    CallArguments,
    METRIC_FIELDS,
    PARAMETER_FIELDS,
    clean,
    collect_arguments,
    merge_arguments,
)
from parsing.errors import MissingRequiredFieldError


def call_arguments(expression: str) -> CallArguments:
    call = ast.parse(expression, mode="eval").body
    return collect_arguments(call, expression)


class TestCollectArguments:

    def test_positional_and_keywords_are_split(self):
        args = call_arguments('parameter("epochs", int, True, defaultValue=10, description=\'Epochs\')')

        assert args.positional == ["epochs", "int", "True"]
        assert args.keywords == {"defaultValue": "10", "description": "Epochs"}

    def test_values_are_raw_source_text(self):
        args = call_arguments("parameter(name, [1, 2], 0.5, ground_truth=data.y)")

        assert args.positional == ["name", "[1, 2]", "0.5"]
        assert args.keywords == {"ground_truth": "data.y"}

    def test_starred_entries_are_ignored(self):
        args = call_arguments("metric('recall', *rest, prediction=p, **extra)")

        assert args.positional == ["recall"]
        assert args.keywords == {"prediction": "p"}

    def test_clean_strips_prefix_and_surrounding_quotes(self):
        assert clean('"hello"') == "hello"
        assert clean("'it''s'") == "it''s"
        assert clean('"""doc"""') == "doc"
        assert clean("plain") == "plain"
        assert clean("b'raw'") == "raw"

    def test_prefixed_string_literals_keep_only_their_text(self):
        args = call_arguments('parameter(u"epochs", r"int", name=b"x", description=f"{doc}")')

        assert args.positional == ["epochs", "int"]
        assert args.keywords == {"name": "x", "description": "{doc}"}

    def test_implicit_concatenation_is_joined(self):
        args = call_arguments('parameter("learning" "_rate", """int""")')
        assert args.positional == ["learning_rate", "int"]


class TestMergeArguments:

    def test_all_positional(self):
        fields = merge_arguments(
            CallArguments(["epochs", "int", "True", "10", "Epochs"], {}), PARAMETER_FIELDS
        )
        assert fields == {
            "name": "epochs",
            "type": "int",
            "required": "True",
            "defaultValue": "10",
            "description": "Epochs",
        }

    def test_all_keyword(self):
        fields = merge_arguments(
            CallArguments([], {"name": "epochs", "type": "int", "required": "True", "defaultValue": "10"}),
            PARAMETER_FIELDS,
        )
        assert fields["name"] == "epochs"
        assert fields["description"] == ""

    def test_positional_prefix_then_keywords(self):
        fields = merge_arguments(
            CallArguments(["epochs", "int"], {"required": "False", "defaultValue": "1"}),
            PARAMETER_FIELDS,
        )
        assert (fields["name"], fields["type"], fields["required"]) == ("epochs", "int", "False")

    def test_missing_required_field(self):
        with pytest.raises(MissingRequiredFieldError) as exc_info:
            merge_arguments(CallArguments(["epochs", "int", "True"], {}), PARAMETER_FIELDS)
        assert exc_info.value.field_name == "defaultValue"

    def test_keyword_duplicating_a_positional_slot_is_ignored(self):
        # the positional value wins, the keyword is silently dropped
        fields = merge_arguments(
            CallArguments(["epochs", "int"], {"name": "other", "required": "true", "defaultValue": "3"}),
            PARAMETER_FIELDS,
        )
        assert fields["name"] == "epochs"

    def test_extra_positional_values_are_ignored(self):
        fields = merge_arguments(CallArguments(["recall", "gt", "pred", "extra"], {}), METRIC_FIELDS)
        assert fields == {"type": "recall", "groundTruth": "gt", "prediction": "pred"}

    def test_metric_kind_accepts_name_or_type_keyword(self):
        by_name = merge_arguments(
            CallArguments([], {"name": "recall", "ground_truth": "t", "prediction": "p"}), METRIC_FIELDS
        )
        by_type = merge_arguments(
            CallArguments([], {"type": "recall", "groundTruth": "t", "prediction": "p"}), METRIC_FIELDS
        )
        assert by_name == by_type

    def test_metric_positional_kind_overrides_keyword(self):
        fields = merge_arguments(
            CallArguments(["recall", "t", "p"], {"name": "precision"}), METRIC_FIELDS
        )
        assert fields["type"] == "recall"

    def test_metric_missing_prediction(self):
        with pytest.raises(MissingRequiredFieldError) as exc_info:
            merge_arguments(CallArguments(["recall"], {"ground_truth": "t"}), METRIC_FIELDS)
        assert exc_info.value.field_name == "prediction"
