"""
Tests for the transform pipeline.
"""

import uuid
from datetime import datetime

import pytest

from dbmigrator.exceptions import TransformError
from dbmigrator.specs import TransformSpec
from dbmigrator.transform import TransformPipeline


@pytest.fixture
def pipeline(registry):
    return TransformPipeline(registry)


class TestTransformPipeline:
    """Test applying transform specs to records."""

    def test_field_operators(self, pipeline):
        transform = TransformSpec(fields={
            "age": {"increment": 10},
            "name": {"rename": "full_name"},
            "legacy": {"unset": True},
        })
        result = pipeline.apply({"age": 1, "name": "Ada", "legacy": "x"}, transform)

        assert result == {"age": 11, "full_name": "Ada"}

    def test_source_record_not_modified(self, pipeline):
        record = {"tags": ["a"], "age": 1}
        transform = TransformSpec(fields={"tags": {"push": "b"}, "age": {"set": 2}})

        result = pipeline.apply(record, transform)

        assert record == {"tags": ["a"], "age": 1}
        assert result == {"tags": ["a", "b"], "age": 2}
        assert result["tags"] is not record["tags"]

    def test_operators_applied_in_declaration_order(self, pipeline):
        transform = TransformSpec(fields={
            "score": {"set": 2, "multiply": 10, "increment": 1},
        })
        assert pipeline.apply({}, transform) == {"score": 21}

        reordered = TransformSpec(fields={
            "score": {"increment": 1, "set": 2, "multiply": 10},
        })
        assert pipeline.apply({"score": 0}, reordered) == {"score": 20}

    def test_fields_applied_in_declaration_order(self, pipeline):
        transform = TransformSpec(fields={
            "first": {"rename": "second"},
            "second": {"increment": 1},
        })
        assert pipeline.apply({"first": 1}, transform) == {"second": 2}

    def test_dollar_aliases(self, pipeline):
        transform = TransformSpec(fields={
            "age": {"$inc": 1, "$mul": 2},
            "status": {"$default": "active"},
        })
        assert pipeline.apply({"age": 1}, transform) == {"age": 4, "status": "active"}

    def test_override_takes_precedence(self, pipeline):
        def override(record):
            return {"copied": record["name"]}

        transform = TransformSpec(override=override, fields={"name": {"set": "ignored"}})
        assert pipeline.apply({"name": "Ada"}, transform) == {"copied": "Ada"}

    def test_override_failure_raises_transform_error(self, pipeline):
        def override(record):
            raise KeyError("missing")

        with pytest.raises(TransformError):
            pipeline.apply({}, TransformSpec(override=override))

    def test_computed_field(self, pipeline):
        transform = TransformSpec(fields={"label": lambda record: f"{record['name']}-{record['age']}"})
        assert pipeline.apply({"name": "Ada", "age": 3}, transform)["label"] == "Ada-3"

    def test_empty_transform_copies_record(self, pipeline):
        record = {"name": "Ada"}
        result = pipeline.apply(record, TransformSpec(fields={}))
        assert result == record
        assert result is not record

    def test_unknown_operator_is_fatal(self, pipeline):
        transform = TransformSpec(fields={"name": {"explode": True}})
        with pytest.raises(TransformError, match="explode"):
            pipeline.apply({"name": "Ada"}, transform)

    def test_unregistered_operator_is_fatal(self, registry, pipeline):
        registry.unregister_operator("set")
        with pytest.raises(TransformError):
            pipeline.apply({}, TransformSpec(fields={"name": {"set": 1}}))


class TestFunctionResolution:
    """Test resolution of fn.* placeholders."""

    def test_function_called_per_record(self, pipeline):
        transform = TransformSpec(fields={"_id": {"set": "fn.uuid.v4"}})
        first = pipeline.apply({}, transform)
        second = pipeline.apply({}, transform)

        assert uuid.UUID(first["_id"]).version == 4
        assert first["_id"] != second["_id"]

    def test_date_function(self, pipeline):
        result = pipeline.apply({}, TransformSpec(fields={"created": {"set": "fn.date"}}))
        assert isinstance(result["created"], datetime)
        assert result["created"].tzinfo is not None

    def test_list_arguments_resolved_element_wise(self, registry, pipeline):
        registry.register_function("tenant", lambda: "acme")
        result = pipeline.apply(
            {}, TransformSpec(fields={"owners": {"set": ["fn.tenant", "static"]}})
        )
        assert result == {"owners": ["acme", "static"]}

    def test_unknown_function_passes_through(self, pipeline):
        assert pipeline.resolve("fn.nope") == "fn.nope"

    def test_literals_unchanged(self, pipeline):
        assert pipeline.resolve(5) == 5
        assert pipeline.resolve("plain") == "plain"
        assert pipeline.resolve(None) is None
