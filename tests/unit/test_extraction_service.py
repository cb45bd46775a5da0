import json
import httpx
import pytest
from schemas.meeting_schemas import Priority
from services.extraction_service import ExtractionService, ExtractionError


def completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def make_service(handler, api_key="test-key"):
    return ExtractionService(
        api_key=api_key,
        base_url="https://llm.test/v1/",
        model="test-model",
        timeout=5,
        transport=httpx.MockTransport(handler)
    )


async def test_analyze_parses_reply():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=completion(json.dumps({
            "summary": "Planning.",
            "actionItems": [
                {"title": "Ship it", "description": None, "priority": "URGENT", "suggestedDueDate": "2026-11-01T00:00:00Z"},
                {"title": "Tidy up"}
            ]
        })))

    analysis = await make_service(handler).analyze("Jane ships it on the first.", "Jane")

    assert analysis.summary == "Planning."
    assert [item.title for item in analysis.action_items] == ["Ship it", "Tidy up"]
    assert analysis.action_items[0].priority is Priority.URGENT
    assert analysis.action_items[0].description == ""
    assert analysis.action_items[0].suggested_due_date.year == 2026
    assert analysis.action_items[1].priority is Priority.MEDIUM
    assert analysis.action_items[1].suggested_due_date is None

    request = requests[0]
    assert str(request.url) == "https://llm.test/v1/chat/completions"
    assert request.headers["authorization"] == "Bearer test-key"
    body = json.loads(request.content)
    assert body["model"] == "test-model"
    assert body["response_format"] == {"type": "json_object"}
    assert '"Jane"' in body["messages"][0]["content"]
    assert "Jane ships it on the first." in body["messages"][1]["content"]


async def test_analyze_without_api_key():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(ExtractionError):
        await make_service(handler, api_key="").analyze("a transcript", "Jane")


async def test_analyze_http_error():
    def handler(request):
        return httpx.Response(503, json={"error": "overloaded"})

    with pytest.raises(ExtractionError):
        await make_service(handler).analyze("a transcript", "Jane")


async def test_analyze_connection_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ExtractionError):
        await make_service(handler).analyze("a transcript", "Jane")


@pytest.mark.parametrize("reply", [
    {"choices": []},
    completion(None),
    completion("not json"),
    completion(json.dumps({"actionItems": []})),
])
async def test_analyze_unusable_reply(reply):
    def handler(request):
        return httpx.Response(200, json=reply)

    with pytest.raises(ExtractionError):
        await make_service(handler).analyze("a transcript", "Jane")


async def test_analyze_tolerates_imperfect_items():
    """Bad fields fall back to defaults and untitled items are skipped."""
    def handler(request):
        return httpx.Response(200, json=completion(json.dumps({
            "summary": "Retro.",
            "actionItems": [
                {"title": "Book the room", "priority": "someday", "suggestedDueDate": "next Tuesday-ish"},
                {"title": "Send notes", "priority": " high "},
                {"title": ""},
                "not an item"
            ]
        })))

    analysis = await make_service(handler).analyze("a transcript", "Jane")

    assert [item.title for item in analysis.action_items] == ["Book the room", "Send notes"]
    assert analysis.action_items[0].priority is Priority.MEDIUM
    assert analysis.action_items[0].suggested_due_date is None
    assert analysis.action_items[1].priority is Priority.HIGH
