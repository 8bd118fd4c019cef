"""Tests for the LLM client, summarizer and script writer."""

import json
from unittest.mock import MagicMock

import pytest
from openai import OpenAIError

from newsreel.models.schemas import BriefSource, NewsBrief, RawNewsBrief, ResearchPackage, ResearchSource, VideoScript
from newsreel.services.llm_client import LLMClient, extract_json_object
from newsreel.services.script_writer import ScriptWriter
from newsreel.services.summarizer import Summarizer, coerce_sources, coerce_what_to_watch, normalize_brief
from newsreel.utils.error_handler import ExternalServiceError, ValidationFailure


def _openai_returning(content):
    client = MagicMock()
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    client.chat.completions.create.return_value = MagicMock(choices=[choice])
    return client


@pytest.fixture
def package():
    """Create a research package with two sources."""
    return ResearchPackage(
        topic="AI policy",
        sources=[
            ResearchSource(title="EU agrees AI rules", url="https://reuters.com/eu-ai", outlet="Reuters", excerpt="Deal"),
            ResearchSource(title="What the AI Act means", url="https://bbc.co.uk/ai-act", outlet="BBC"),
        ],
        notes="Separate facts from speculation.",
    )


def _raw_brief(**overrides):
    data = {
        "headline": "EU agrees AI rules",
        "lede": "Lawmakers reached a deal on Friday.",
        "why_it_matters": "It sets a template for other regulators.",
        "key_facts": ["Deal reached", "Bans some uses", "Two years to comply"],
        "the_big_picture": "Regulation is catching up with deployment.",
        "what_to_watch": ["Formal vote"],
        "sources": [{"title": "Reuters", "url": "https://reuters.com/eu-ai", "outlet": "Reuters"}],
    }
    data.update(overrides)
    return data


def test_extract_json_object_with_surrounding_text():
    """Test the outermost object is parsed from chatty output."""
    assert extract_json_object('Sure! {"a": {"b": 1}} Done.') == {"a": {"b": 1}}


def test_extract_json_object_failures():
    """Test missing, broken and non-object JSON raise validation failures."""
    with pytest.raises(ValidationFailure):
        extract_json_object("no json here")
    with pytest.raises(ValidationFailure):
        extract_json_object("{not: valid}")


def test_complete_json_validates_model(settings, logger):
    """Test responses are validated into the requested model."""
    client = _openai_returning(json.dumps(_raw_brief()))
    llm = LLMClient(settings, logger, client=client)

    raw = llm.complete_json(RawNewsBrief, system="sys", user="usr", temperature=0.2)

    assert raw.headline == "EU agrees AI rules"
    messages = client.chat.completions.create.call_args[1]["messages"]
    assert messages[0]["content"].endswith("Return ONLY valid JSON.")


def test_complete_json_schema_failure(settings, logger):
    """Test schema violations raise validation failures."""
    llm = LLMClient(settings, logger, client=_openai_returning('{"headline": "only"}'))

    with pytest.raises(ValidationFailure):
        llm.complete_json(RawNewsBrief, system="sys", user="usr")


def test_complete_json_api_error_is_redacted(settings, logger):
    """Test API errors become service errors without credentials."""
    settings.openai_api_key = "sk-secret"
    client = MagicMock()
    client.chat.completions.create.side_effect = OpenAIError("invalid key sk-secret")
    llm = LLMClient(settings, logger, client=client)

    with pytest.raises(ExternalServiceError) as exc_info:
        llm.complete_json_object(system="sys", user="usr")

    assert "sk-secret" not in str(exc_info.value)


def test_missing_api_key(settings, logger):
    """Test a missing key fails before any request."""
    with pytest.raises(ExternalServiceError, match="API key not configured"):
        LLMClient(settings, logger).complete_json_object(system="sys", user="usr")


def test_coerce_what_to_watch():
    """Test strings are split and lists capped at four."""
    assert coerce_what_to_watch("Vote; Court challenge, Industry response") == [
        "Vote",
        "Court challenge",
        "Industry response",
    ]
    assert coerce_what_to_watch(["a", "b", "c", "d", "e"]) == ["a", "b", "c", "d"]
    assert coerce_what_to_watch("") is None
    assert coerce_what_to_watch(None) is None


def test_coerce_sources_matches_strings_to_research(package):
    """Test bare strings resolve to research sources and junk is dropped."""
    sources = coerce_sources(
        ["EU agrees AI rules", "https://other.com/x", "unknown outlet", {"title": "No url"}, 42],
        package.sources,
    )

    assert [(s.title, s.url) for s in sources] == [
        ("EU agrees AI rules", "https://reuters.com/eu-ai"),
        ("https://other.com/x", "https://other.com/x"),
    ]
    assert coerce_sources("not a list", package.sources) == []


def test_normalize_brief_trims_and_falls_back_to_research_sources(package):
    """Test long fields are trimmed and missing sources are backfilled."""
    raw = RawNewsBrief.model_validate(_raw_brief(headline="H" * 120, sources=None, what_to_watch="Vote - Appeal"))

    brief = normalize_brief(raw, package)

    assert len(brief.headline) == 80
    assert [s.url for s in brief.sources] == ["https://reuters.com/eu-ai", "https://bbc.co.uk/ai-act"]
    assert brief.what_to_watch == ["Vote", "Appeal"]


def test_normalize_brief_too_few_facts(package):
    """Test briefs that remain invalid raise validation failures."""
    raw = RawNewsBrief.model_validate(_raw_brief(key_facts=["Only one"]))

    with pytest.raises(ValidationFailure):
        normalize_brief(raw, package)


def test_summarizer_generates_brief(settings, logger, package):
    """Test the summarizer sends research and returns a normalized brief."""
    llm = MagicMock()
    llm.complete_json.return_value = RawNewsBrief.model_validate(_raw_brief())
    summarizer = Summarizer(settings, logger, llm)

    brief = summarizer.generate_brief(package)

    assert isinstance(brief, NewsBrief)
    user_prompt = llm.complete_json.call_args[1]["user"]
    assert "Topic: AI policy" in user_prompt
    assert "https://reuters.com/eu-ai" in user_prompt
    assert llm.complete_json.call_args[1]["temperature"] == 0.2


def _brief():
    return NewsBrief(
        headline="EU agrees AI rules",
        lede="Lawmakers reached a deal.",
        why_it_matters="It sets global norms.",
        key_facts=["Fact one", "Fact two", "Fact three"],
        the_big_picture="Regulation is catching up.",
        sources=[BriefSource(title="Reuters", url="https://reuters.com/a")],
    )


def _script_data(duration):
    return {
        "duration_seconds_target": duration,
        "hook": "Europe just wrote the rulebook.",
        "voiceover": "Europe just agreed the first broad AI law.",
        "scenes": [
            {"seconds": 5, "description": "Parliament chamber", "overlay": "AI Act"},
            {"seconds": 5, "description": "Server racks"},
        ],
    }


def test_script_duration_forced_to_target(settings, logger):
    """Test the duration target is overwritten before validation."""
    llm = MagicMock()
    llm.complete_json_object.return_value = _script_data(60)
    writer = ScriptWriter(settings, logger, llm)

    script = writer.generate_script(_brief())

    assert isinstance(script, VideoScript)
    assert script.duration_seconds_target == 25
    assert llm.complete_json_object.call_args[1]["temperature"] == 0.35


def test_script_invalid_scenes(settings, logger):
    """Test scripts outside the scene limits are rejected."""
    data = _script_data(25)
    data["scenes"] = data["scenes"][:1]
    llm = MagicMock()
    llm.complete_json_object.return_value = data

    with pytest.raises(ValidationFailure):
        ScriptWriter(settings, logger, llm).generate_script(_brief())
