"""Tests for routing expression evaluation."""

import pytest

from pipealert.engine.expression import RouteExpressionEvaluator, evaluate_expression


@pytest.fixture
def evaluator() -> RouteExpressionEvaluator:
    return RouteExpressionEvaluator()


@pytest.fixture
def alarm_attributes() -> dict:
    return {
        "type": "AlarmNotification",
        "alert": {"type": "alarm", "name": "api-5xx-rate", "date": 1648635300000},
    }


def test_equality_predicate(evaluator: RouteExpressionEvaluator) -> None:
    assert evaluator.evaluate("type:PipelineNotification", {"type": "PipelineNotification"})
    assert not evaluator.evaluate("type:Pipeline", {"type": "PipelineNotification"})


def test_regex_predicate_searches_anywhere(evaluator: RouteExpressionEvaluator) -> None:
    assert evaluator.evaluate("name~prod", {"name": "checkout-prod-svc"})
    assert not evaluator.evaluate("name~^prod", {"name": "checkout-prod-svc"})


def test_dot_path_reaches_nested_attributes(
    evaluator: RouteExpressionEvaluator,
    alarm_attributes: dict,
) -> None:
    assert evaluator.evaluate("alert.type:alarm", alarm_attributes)
    assert evaluator.evaluate("alert.name~5xx", alarm_attributes)
    assert evaluator.evaluate("alert.date:1648635300000", alarm_attributes)


def test_missing_property_is_false(
    evaluator: RouteExpressionEvaluator,
    alarm_attributes: dict,
) -> None:
    assert not evaluator.evaluate("alert.owner:ops", alarm_attributes)
    assert not evaluator.evaluate("alert.type.inner:alarm", alarm_attributes)
    assert not evaluator.evaluate("commit.author~.*", alarm_attributes)


def test_negation_of_missing_property_is_true(evaluator: RouteExpressionEvaluator) -> None:
    assert evaluator.evaluate("!failureDetail.type:CodeBuild", {"failureDetail": None})


def test_invalid_regex_is_false_not_an_error(evaluator: RouteExpressionEvaluator) -> None:
    assert evaluator.evaluate("name~[unclosed", {"name": "[unclosed"}) is False


def test_booleans_and_none_compare_as_lowercase_words(evaluator: RouteExpressionEvaluator) -> None:
    attributes = {"successfull": False, "failureDetail": None, "done": True}

    assert evaluator.evaluate("successfull:false", attributes)
    assert evaluator.evaluate("done:true", attributes)
    assert evaluator.evaluate("failureDetail:null", attributes)
    assert not evaluator.evaluate("successfull:False", attributes)


def test_and_requires_every_part(evaluator: RouteExpressionEvaluator) -> None:
    attributes = {"type": "Pipeline", "name": "x"}

    assert evaluator.evaluate("type:Pipeline&name:x", attributes)
    assert not evaluator.evaluate("type:Pipeline&name~.*prod.*", attributes)


def test_or_requires_any_part(evaluator: RouteExpressionEvaluator) -> None:
    attributes = {"type": "Pipeline", "name": "x"}

    assert evaluator.evaluate("name:y|name:x", attributes)
    assert not evaluator.evaluate("name:y|name:z", attributes)


def test_or_binds_looser_than_and(evaluator: RouteExpressionEvaluator) -> None:
    # a&b|c is (a&b)|c
    assert evaluator.evaluate("name:a&name:b|name:c", {"name": "c"})
    assert not evaluator.evaluate("name:a&name:b|name:c", {"name": "a"})


def test_not_applies_after_and_split(evaluator: RouteExpressionEvaluator) -> None:
    attributes = {"type": "PipelineNotification", "successfull": True}

    assert evaluator.evaluate("type:PipelineNotification&!successfull:false", attributes)
    assert not evaluator.evaluate("!type:PipelineNotification&successfull:true", attributes)


def test_expression_without_operator_is_false(evaluator: RouteExpressionEvaluator) -> None:
    assert not evaluator.evaluate("type", {"type": "PipelineNotification"})
    assert not evaluator.evaluate("type:", {"type": ""})


def test_whitespace_around_parts_is_ignored() -> None:
    assert evaluate_expression("type : Pipeline | name : x", {"type": "Other", "name": "x"})


def test_numbers_and_lists_render_like_the_route_documents(evaluator: RouteExpressionEvaluator) -> None:
    attributes = {"count": 1.0, "ratio": 1.5, "tags": ["a", "b"], "empty": []}

    assert evaluator.evaluate("count:1", attributes)
    assert evaluator.evaluate("ratio:1.5", attributes)
    assert evaluator.evaluate("tags:a,b", attributes)
    assert evaluator.evaluate("tags~^a", attributes)
    assert not evaluator.evaluate("empty~.", attributes)
