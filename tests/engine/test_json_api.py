"""Tests for the JSON request boundary."""

import asyncio
import json

import pytest

from codementor import AnalysisEngine, handle_json, handle_request, handle_request_async
from codementor.scanning import AstParser

CODE = "def run(expr):\n    return eval(expr)\n"


@pytest.fixture
def engine():
    return AnalysisEngine(parser=AstParser(use_tree_sitter=False))


def _analyze(**extra):
    payload = {"schema_version": "1.0", "operation": "analyze", "file": "a.py", "language": "python", "code": CODE}
    payload.update(extra)
    return payload


class TestAnalyzeRequests:
    """analyze requests map onto AnalysisEngine.analyze."""

    def test_analyze(self, engine):
        response = handle_request(engine, _analyze())
        assert response["status"] == "ok"
        assert response["schema_version"] == "1.0"
        assert [p["kind"] for p in response["patterns"]] == ["eval-usage"]

    def test_changed_ranges_forms(self, engine):
        handle_request(engine, _analyze())
        edited = CODE.replace("expr)", "text)")
        pairs = handle_request(engine, _analyze(code=edited, changedRanges=[[1, 2]]))
        objects = handle_request(engine, _analyze(code=CODE, changedRanges=[{"start": 1, "end": 2}]))
        assert pairs["status"] == objects["status"] == "ok"
        assert objects["revision"] == 3

    def test_async_variant(self, engine):
        response = asyncio.run(handle_request_async(engine, _analyze()))
        assert response["status"] == "ok"

    def test_schema_version_optional(self, engine):
        payload = _analyze()
        del payload["schema_version"]
        assert handle_request(engine, payload)["status"] == "ok"

    def test_minor_version_accepted(self, engine):
        assert handle_request(engine, _analyze(schema_version="1.3"))["status"] == "ok"


class TestCheckAndRecord:
    """checkAndRecord requests map onto the notification cache."""

    def test_round_trip(self, engine):
        request = {"operation": "checkAndRecord", "file": "a.py", "identity": "abc", "action": "shown"}
        first = handle_request(engine, request)
        second = handle_request(engine, request)
        assert first == {
            "schema_version": "1.0",
            "file": "a.py",
            "identity": "abc",
            "action": "shown",
            "suppressed": False,
        }
        assert second["suppressed"] is True

    def test_action_defaults_to_shown(self, engine):
        response = handle_request(engine, {"operation": "checkAndRecord", "file": "a.py", "identity": "abc"})
        assert response["action"] == "shown"


class TestMalformedRequests:
    """Malformed input gets an error response, never an exception."""

    @pytest.mark.parametrize(
        "payload, field",
        [
            (_analyze(schema_version="2.0"), "schema_version"),
            (_analyze(operation="explode"), "operation"),
            (_analyze(file=""), "file"),
            (_analyze(code=None), "code"),
            (_analyze(changedRanges="1-3"), "changedRanges"),
            (_analyze(changedRanges=[[3, 1]]), "changedRanges"),
            (_analyze(changedRanges=[[0, 2]]), "changedRanges"),
            (_analyze(changedRanges=[[True, 2]]), "changedRanges"),
            (_analyze(workspace=""), "workspace"),
            ({"operation": "checkAndRecord", "file": "a.py", "identity": "x", "action": "snooze"}, "action"),
            ({"operation": "checkAndRecord", "file": "a.py"}, "identity"),
        ],
    )
    def test_field_errors(self, engine, payload, field):
        response = handle_request(engine, payload)
        assert response["status"] == "error"
        assert response["field"] == field
        assert response["schema_version"] == "1.0"

    def test_not_an_object(self, engine):
        response = handle_request(engine, ["analyze"])
        assert response["status"] == "error"
        assert "field" not in response

    def test_invalid_json(self, engine):
        response = json.loads(handle_json(engine, "{not json"))
        assert response["status"] == "error"
        assert response["error"].startswith("not valid JSON")

    def test_handle_json_round_trip(self, engine):
        response = json.loads(handle_json(engine, json.dumps(_analyze())))
        assert response["status"] == "ok"

    def test_handle_json_lone_surrogate(self, engine):
        request = json.dumps(_analyze(code=CODE + "s = '\ud800'\n"))
        assert "\\ud800" in request
        for _ in range(2):
            response = json.loads(handle_json(engine, request))
            assert response["status"] == "ok"
            assert [p["kind"] for p in response["patterns"]] == ["eval-usage"]
