import asyncio
import json

import pytest

from app.services.analysis import EntryAnalyzer, parse_json_response, validate_analysis
from app.services.keyword_analyzer import KeywordAnalyzer
from app.services.llm_errors import (
    ProviderBlocked,
    ProviderRateLimited,
    ProviderResponseError,
    ProviderUnavailable,
)
from helpers import FakeProvider

pytestmark = pytest.mark.unit

LONG_TEXT = (
    "Today I finally finished the project at work and my manager was thrilled. "
    "I feel happy and a little tired, but mostly proud of the team."
)


def analyze(analyzer, text=LONG_TEXT):
    return asyncio.run(analyzer.analyze(text))


def test_uses_provider_result():
    provider = FakeProvider(json.dumps({
        "emotions": [{"name": "Proud", "score": 82.6}, {"name": "Tired", "score": 40}],
        "themes": ["Work", "Teamwork"],
    }))

    analysis = analyze(EntryAnalyzer(provider))

    assert [(e.name, e.score) for e in analysis.emotions] == [("Proud", 83), ("Tired", 40)]
    assert analysis.themes == ["Work", "Teamwork"]
    assert LONG_TEXT in provider.prompts[0]


def test_code_fenced_response_is_accepted():
    provider = FakeProvider('```json\n{"emotions": [{"name": "Calm", "score": 60}], "themes": ["Rest"]}\n```')

    analysis = analyze(EntryAnalyzer(provider))

    assert analysis.emotions[0].name == "Calm"
    assert analysis.themes == ["Rest"]


def test_extra_items_are_trimmed_to_three():
    provider = FakeProvider(json.dumps({
        "emotions": [{"name": f"E{i}", "score": 10 * i} for i in range(5)],
        "themes": ["A", "B", "C", "D"],
    }))

    analysis = analyze(EntryAnalyzer(provider))

    assert len(analysis.emotions) == 3
    assert analysis.themes == ["A", "B", "C"]


@pytest.mark.parametrize("raw", [
    "I'm sorry, I can't help with that.",
    json.dumps({"emotions": [{"name": "Happy", "score": 150}], "themes": ["Work"]}),
    json.dumps({"emotions": [{"name": "Happy", "score": "80"}], "themes": ["Work"]}),
    json.dumps({"emotions": [], "themes": ["Work"]}),
    json.dumps({"emotions": [{"name": "Happy", "score": 80}], "themes": [42]}),
    json.dumps(["Happy", "Work"]),
])
def test_invalid_responses_fall_back_to_keywords(raw):
    analysis = analyze(EntryAnalyzer(FakeProvider(raw)))

    assert analysis == KeywordAnalyzer().analyze(LONG_TEXT)


@pytest.mark.parametrize("error", [
    ProviderBlocked("safety"),
    ProviderRateLimited("429"),
    ProviderResponseError("empty"),
    RuntimeError("sdk exploded"),
])
def test_provider_errors_fall_back_to_keywords(error):
    analysis = analyze(EntryAnalyzer(FakeProvider(error)))

    assert analysis == KeywordAnalyzer().analyze(LONG_TEXT)


def test_no_provider_uses_keywords():
    analysis = analyze(EntryAnalyzer(None))

    assert analysis == KeywordAnalyzer().analyze(LONG_TEXT)


def test_short_content_skips_provider():
    provider = FakeProvider()

    analysis = analyze(EntryAnalyzer(provider, min_content_length=50), "happy day")

    assert provider.prompts == []
    assert analysis.emotions[0].name == "Happy"


def test_errors_propagate_when_fallback_disabled():
    analyzer = EntryAnalyzer(FakeProvider(ProviderBlocked("safety")), fallback_on_error=False)

    with pytest.raises(ProviderBlocked):
        analyze(analyzer)

    with pytest.raises(ProviderUnavailable):
        analyze(EntryAnalyzer(None, fallback_on_error=False))


def test_parse_json_response_repairs_trailing_comma():
    payload = parse_json_response('{"emotions": [{"name": "Joy", "score": 70},], "themes": ["Play"],}')

    assert payload["themes"] == ["Play"]


def test_parse_json_response_rejects_empty():
    with pytest.raises(ProviderResponseError):
        parse_json_response("   ")


def test_validate_analysis_rejects_blank_labels():
    with pytest.raises(ProviderResponseError):
        validate_analysis({"emotions": [{"name": "  ", "score": 10}], "themes": ["Work"]})
