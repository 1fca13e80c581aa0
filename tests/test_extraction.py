import pytest

from agent.extraction import (
    FOUND_CONFIDENCE,
    NOT_FOUND_CONFIDENCE,
    Extractor,
    classify_data_type,
    parse_extraction,
)
from agent.narration import NOT_FOUND_MESSAGE, detect_service, narrate, narrate_from_memory
from agent.tools.base import ToolResult
from conftest import ScriptedLanguageModel
from domain.exceptions import ExtractionParseError
from domain.models import ConversationTurn, DataType, ExtractedFact, Role


@pytest.mark.parametrize("query, expected", [
    ("what's my netflix password?", DataType.PASSWORD),
    ("what is my email password", DataType.EMAIL),
    ("show me recovery codes", DataType.CODE),
    ("github link please", DataType.URL),
    ("what's my address", DataType.OTHER),
])
def test_classify_data_type(query, expected):
    assert classify_data_type(query) is expected


@pytest.mark.parametrize("reply, expected", [
    ("S3cr3t!", "S3cr3t!"),
    ('"S3cr3t!"', "S3cr3t!"),
    ("```\nS3cr3t!\n```", "S3cr3t!"),
    ("null", None),
    ("NULL", None),
    ("n/a", None),
])
def test_parse_extraction(reply, expected):
    assert parse_extraction(reply) == expected


def test_parse_extraction_empty_raises():
    with pytest.raises(ExtractionParseError):
        parse_extraction("   ")


@pytest.mark.anyio
async def test_extractor_skips_model_without_usable_results():
    llm = ScriptedLanguageModel()
    fact = await Extractor(llm).extract("my password", [ToolResult.failure("search_notes", "boom")])
    assert fact.data is None
    assert fact.confidence == NOT_FOUND_CONFIDENCE
    assert llm.calls == []


@pytest.mark.anyio
async def test_extractor_sees_only_query_and_results():
    llm = ScriptedLanguageModel(["S3cr3t!"])
    results = [ToolResult.success("search_notes", {"notes": [{"id": "n1", "content": "pw: S3cr3t!"}]})]
    fact = await Extractor(llm, temperature=0.2).extract("netflix password", results)

    assert fact == ExtractedFact("S3cr3t!", DataType.PASSWORD, FOUND_CONFIDENCE)
    [call] = llm.calls
    assert call["system"] is None
    assert call["temperature"] == 0.2
    assert isinstance(call["prompt"], str)
    assert "netflix password" in call["prompt"]


@pytest.mark.anyio
async def test_extractor_treats_empty_reply_as_not_found():
    llm = ScriptedLanguageModel([""])
    results = [ToolResult.success("search_notes", {"notes": []})]
    fact = await Extractor(llm).extract("email", results)
    assert fact.data is None
    assert fact.confidence == NOT_FOUND_CONFIDENCE


def test_detect_service_prefers_query_then_titles():
    assert detect_service("my netflix password", ["GitHub"]) == "Netflix"
    assert detect_service("my password", ["GitHub account"]) == "GitHub"
    assert detect_service("my password") is None


def test_narrate_never_contains_the_value():
    fact = ExtractedFact("S3cr3t!", DataType.PASSWORD, FOUND_CONFIDENCE)
    narrative = narrate(fact, "what's my netflix password?")
    assert narrative == "I found your Netflix password."
    assert "S3cr3t!" not in narrative


def test_narrate_not_found():
    fact = ExtractedFact(None, DataType.PASSWORD, NOT_FOUND_CONFIDENCE)
    assert narrate(fact, "netflix password") == NOT_FOUND_MESSAGE


def test_narrate_from_memory():
    turns = [
        ConversationTurn(Role.USER, "netflix password"),
        ConversationTurn(Role.ASSISTANT, "I found your Netflix password."),
    ]
    assert narrate_from_memory("what did I just ask?", turns) == 'Your last question was: "netflix password"'
    assert narrate_from_memory("what did you say?", turns) == 'My last answer was: "I found your Netflix password."'
    assert narrate_from_memory("what did we talk about?", turns) == 'So far you asked: "netflix password".'


_REMEMBERED = [
    ConversationTurn(Role.USER, "netflix password"),
    ConversationTurn(Role.ASSISTANT, "I found your Netflix password."),
]


@pytest.mark.parametrize(
    "query, expected",
    [
        ("what did I just ask you?", 'Your last question was: "netflix password"'),
        ("What did I ask you", 'Your last question was: "netflix password"'),
        ("what was my last question to you?", 'Your last question was: "netflix password"'),
        ("what did you just tell me?", 'My last answer was: "I found your Netflix password."'),
        ("what was your last answer?", 'My last answer was: "I found your Netflix password."'),
        ("what did you reply?", 'My last answer was: "I found your Netflix password."'),
    ],
)
def test_narrate_from_memory_picks_the_right_speaker(query, expected):
    assert narrate_from_memory(query, _REMEMBERED) == expected
