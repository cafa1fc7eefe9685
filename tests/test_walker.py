"""End-to-end tests for annotation parsing."""

import io

import pytest

from parsing import (
    BadParameterNameError,
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
    parse_python3,
)
from tests.conftest import PROCESSOR


def parameter_fields(p: ParameterDescriptor):
    return (p.name, p.type, p.required, p.default_value, p.order, p.description)


class TestProcessors:

    def test_valid_operation(self, parse):
        result = parse(f"""
            {PROCESSOR}
            def foo(image):
                pass
        """)

        assert result.count_processors == 1
        assert len(result.annotations) == 1
        processor = result.annotations[0]
        assert isinstance(processor, DataOperation)
        assert processor.processor_type == ProcessorType.OPERATION
        assert processor.slug == "foo"
        assert processor.name == "Foo"
        assert processor.input_type == DataType.IMAGE
        assert processor.output_type == DataType.IMAGE
        assert processor.visibility == VisibilityScope.PUBLIC
        assert processor.author is None
        assert processor.command == "foo.py"
        assert processor.description == ""
        assert processor.id is not None

    def test_fresh_id_per_parse(self, parse):
        code = f"""
            {PROCESSOR}
            def foo():
                pass
        """
        assert parse(code).processors[0].id != parse(code).processors[0].id

    def test_bogus_type_is_skipped_without_raising(self, parse):
        result = parse("""
            @data_processor(slug="foo", name="Foo", type="BOGUS", input_type="IMAGE",
                            output_type="IMAGE", visibility="PUBLIC")
            @metric("recall", y_true, y_pred)
            def foo():
                pass
        """)

        assert result.processors == []
        assert result.count_processors == 0
        assert result.count_metrics == 1
        assert result.count_decorated_functions == 1

    def test_function_with_only_failed_decorators_is_not_counted_as_decorated(self, parse):
        result = parse("""
            @data_processor(name="Foo", type="BOGUS", input_type="IMAGE",
                            output_type="IMAGE", visibility="PUBLIC")
            def foo():
                pass
        """)

        assert result.count_functions == 1
        assert result.count_decorated_functions == 0

    def test_algorithm_and_visualization_variants(self, parse):
        result = parse("""
            @data_processor(name="Resnet 50", type="algorithm", input_type="image",
                            output_type="model", visibility="private")
            def train():
                pass

            @data_processor(name="Histogram", type="VISUALIZATION", input_type="TABULAR",
                            visibility="PUBLIC")
            def plot():
                pass
        """)

        algorithm, visualization = result.processors
        assert isinstance(algorithm, DataAlgorithm)
        assert algorithm.slug == "resnet-50"
        assert algorithm.command == "resnet-50.py"
        assert algorithm.output_type == DataType.MODEL
        assert algorithm.visibility == VisibilityScope.PRIVATE
        assert isinstance(visualization, DataVisualization)
        assert visualization.output_type is None

    def test_operation_without_output_type_is_skipped(self, parse):
        result = parse("""
            @data_processor(name="Foo", type="OPERATION", input_type="IMAGE", visibility="PUBLIC")
            def foo():
                pass
        """)
        assert result.count_processors == 0

    def test_bare_name_values(self, parse):
        result = parse("""
            @data_processor(name=Foo, type=OPERATION, input_type=TEXT, output_type=TEXT, visibility=PUBLIC)
            def foo():
                pass
        """)
        assert result.processors[0].slug == "foo"
        assert result.processors[0].input_type == DataType.TEXT


class TestParameters:

    def test_positional_and_keyword_calls_are_equivalent(self, parse):
        positional = parse(f"""
            {PROCESSOR}
            @parameter("epochs", "INT", "True", "10", "Training epochs")
            def foo():
                pass
        """)
        keyword = parse(f"""
            {PROCESSOR}
            @parameter(name="epochs", type="INT", required="True", defaultValue="10",
                       description="Training epochs")
            def foo():
                pass
        """)

        assert parameter_fields(positional.parameters[0]) == parameter_fields(keyword.parameters[0])
        assert parameter_fields(positional.parameters[0]) == (
            "epochs", ParameterType.INTEGER, True, "10", 0, "Training epochs"
        )

    def test_consecutive_parameters_get_increasing_order(self, parse):
        result = parse(f"""
            {PROCESSOR}
            @parameter("epochs", int, True, 10)
            @parameter("lr", float, False, 0.01)
            def foo():
                pass
        """)

        assert [p.order for p in result.parameters] == [0, 1]
        assert [p.name for p in result.parameters] == ["epochs", "lr"]
        assert result.count_parameters == 2

    def test_order_restarts_per_function(self, parse):
        result = parse(f"""
            {PROCESSOR}
            @parameter("a", int, True, 1)
            def foo():
                pass

            {PROCESSOR}
            @parameter("b", int, True, 1)
            def bar():
                pass
        """)
        assert [p.order for p in result.parameters] == [0, 0]

    def test_skipped_parameter_does_not_consume_order(self, parse):
        result = parse(f"""
            {PROCESSOR}
            @parameter("a", int, True, 1)
            @parameter(name="broken")
            @parameter("c", int, True, 1)
            def foo():
                pass
        """)
        assert [(p.name, p.order) for p in result.parameters] == [("a", 0), ("c", 1)]

    def test_parameter_references_active_processor(self, parse):
        result = parse(f"""
            {PROCESSOR}
            @parameter("epochs", int, True, 10)
            def foo():
                pass
        """)
        assert result.parameters[0].processor_id == result.processors[0].id

    def test_parameter_without_processor_is_silently_omitted(self, parse):
        result = parse(f"""
            @parameter("epochs", int, True, 10)
            {PROCESSOR}
            def foo():
                pass
        """)

        assert result.parameters == []
        assert result.count_parameters == 0
        assert result.count_processors == 1

    def test_processor_does_not_leak_into_next_function(self, parse):
        result = parse(f"""
            {PROCESSOR}
            def foo():
                pass

            @parameter("epochs", int, True, 10)
            def bar():
                pass
        """)

        assert result.count_parameters == 0
        assert result.count_decorated_functions == 1

    def test_bad_parameter_name_fails_whole_parse(self, parse):
        with pytest.raises(BadParameterNameError) as exc_info:
            parse(f"""
                {PROCESSOR}
                @parameter(name="my param!", type="STRING", required="TRUE", defaultValue="x")
                def foo():
                    pass
            """)
        assert exc_info.value.name == "my param!"

    def test_bad_parameter_name_outcome(self, outcome):
        result = outcome(f"""
            {PROCESSOR}
            @parameter("ok-name", str, True, "x")
            @parameter("bad.name", str, True, "x")
            def foo():
                pass
        """)

        assert not result.ok
        assert result.result is None
        assert isinstance(result.failure, BadParameterNameError)
        with pytest.raises(BadParameterNameError):
            result.unwrap()

    def test_valid_name_characters(self, parse):
        result = parse(f"""
            {PROCESSOR}
            @parameter("learning-rate_2", float, True, 0.1)
            def foo():
                pass
        """)
        assert result.parameters[0].name == "learning-rate_2"

    def test_prefixed_string_literals(self, parse):
        errors = []
        result = parse(f"""
            {PROCESSOR}
            @parameter(name=u"epochs", type=r"int", required=True, defaultValue=1)
            @parameter(R"lr", U"float", "False", "0.1")
            def foo():
                pass
        """, errors)

        assert errors == []
        assert [(p.name, p.type) for p in result.parameters] == [
            ("epochs", ParameterType.INTEGER), ("lr", ParameterType.FLOAT)
        ]


class TestMultipleProcessors:

    CODE = f"""
        {PROCESSOR}
        @data_processor(name="Second", type="ALGORITHM", input_type="IMAGE",
                        output_type="MODEL", visibility="PUBLIC")
        @parameter("epochs", int, True, 10)
        def foo():
            pass
    """

    def test_second_processor_becomes_active_by_default(self, parse):
        result = parse(self.CODE)

        assert result.count_processors == 2
        first, second = result.processors
        assert first.id != second.id
        assert result.parameters[0].processor_id == second.id

    def test_single_processor_mode_skips_second(self, parse):
        result = parse(self.CODE, reject_multiple_processors=True)

        assert result.count_processors == 1
        assert result.parameters[0].processor_id == result.processors[0].id
        assert result.processors[0].slug == "foo"


class TestMetrics:

    def test_f1_keyword_metric(self, parse):
        result = parse("""
            @metric(type="f1", ground_truth="y_true", prediction="y_pred")
            def evaluate():
                pass
        """)

        metric = result.metrics[0]
        assert isinstance(metric, MetricDescriptor)
        assert metric.metric_type == MetricType.F1_SCORE
        assert metric.ground_truth == "y_true"
        assert metric.prediction == "y_pred"
        assert result.count_metrics == 1

    def test_metric_does_not_need_a_processor(self, parse):
        result = parse("""
            @metric(name='recall', ground_truth=test_truth, prediction=test_pred)
            def evaluate():
                pass
        """)
        assert result.metrics[0].metric_type == MetricType.RECALL
        assert result.metrics[0].ground_truth == "test_truth"

    def test_unknown_metric_is_undefined(self, parse):
        result = parse("""
            @metric("accuracy", a, b)
            def evaluate():
                pass
        """)
        assert result.metrics[0].metric_type == MetricType.UNDEFINED


class TestTraversal:

    def test_function_counting(self, parse):
        result = parse("""
            def plain():
                def nested():
                    pass

            async def coroutine():
                pass

            class Model:
                def method(self):
                    pass

                @staticmethod
                def helper():
                    pass

            if True:
                def conditional():
                    pass

            try:
                pass
            except ImportError:
                def fallback():
                    pass

            square = lambda x: x * x
        """)

        assert result.count_functions == 6
        assert result.count_decorated_functions == 0
        assert result.annotations == []

    def test_methods_and_async_functions_are_analyzed(self, parse):
        result = parse(f"""
            class Pipeline:
                {PROCESSOR}
                @parameter("epochs", int, True, 10)
                async def run(self):
                    pass
        """)

        assert result.count_processors == 1
        assert result.count_parameters == 1
        assert result.count_decorated_functions == 1

    def test_annotations_keep_source_order_across_functions(self, parse):
        result = parse(f"""
            @metric("recall", t, p)
            def first():
                pass

            {PROCESSOR}
            @parameter("x", str, True, "a")
            def second():
                pass
        """)

        kinds = [type(a) for a in result.annotations]
        assert kinds == [MetricDescriptor, DataOperation, ParameterDescriptor]
        assert isinstance(result.annotations[1], ProcessorDescriptor)

    def test_unrecognized_decorators_are_ignored(self, parse):
        result = parse(f"""
            @app.route("/train")
            @mlreef.parameter("x", str, True, "a")
            {PROCESSOR}
            @parameter
            @functools.lru_cache()
            def foo():
                pass
        """)

        assert len(result.annotations) == 1
        assert result.count_processors == 1
        assert result.count_decorated_functions == 1

    def test_syntax_error_yields_empty_result(self, parse):
        errors = []
        result = parse("""
            def broken(:
                pass
        """, errors)

        assert len(errors) == 1
        assert errors[0].startswith("Error in line 1, column ")
        assert result.count_functions == 0
        assert result.annotations == []

    def test_accepts_binary_stream(self):
        code = (PROCESSOR + "\ndef foo():\n    pass\n").encode("utf-8")
        result = parse_python3(io.BytesIO(code))
        assert result.count_processors == 1

    def test_counters_and_to_dict(self, parse):
        result = parse(f"""
            {PROCESSOR}
            @parameter("epochs", int, True, 10)
            @metric("f1", y, p)
            def foo():
                pass

            def bar():
                pass
        """)

        assert result.counters() == {
            "functions": 2,
            "decorated_functions": 1,
            "parameters": 1,
            "processors": 1,
            "metrics": 1,
        }
        data = result.to_dict()
        assert [a["kind"] for a in data["annotations"]] == ["processor", "parameter", "metric"]
        assert data["annotations"][1]["processor_id"] == data["annotations"][0]["id"]
        assert data["annotations"][1]["type"] == "INTEGER"
