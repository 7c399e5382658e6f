"""Tests for the content stores and markdown helpers."""

import pytest

from smile_report.config.settings import Settings
from smile_report.content.file_store import FileContentStore
from smile_report.content.markdown import parse_scenario_sections, strip_frontmatter
from smile_report.content.memory_store import InMemoryContentStore
from smile_report.exceptions import ContentStoreError


@pytest.fixture
def library(tmp_path):
    (tmp_path / "en" / "TP-01").mkdir(parents=True)
    (tmp_path / "en" / "TP-02").mkdir(parents=True)
    (tmp_path / "nl" / "TP-01").mkdir(parents=True)
    (tmp_path / "en" / "TP-01" / "B_CTX_GENERAL.md").write_text("---\nid: B_CTX_GENERAL\n---\nNeutral text.")
    (tmp_path / "en" / "TP-02" / "B_CTX_GENERAL.md").write_text("Empathic text.")
    (tmp_path / "en" / "TP-01" / "B_OPT_BRIDGE.md").write_text("Bridge text.")
    (tmp_path / "nl" / "TP-01" / "B_CTX_GENERAL.md").write_text("Neutrale tekst.")
    return tmp_path


def chain(tone):
    return {"TP-02": ["TP-01"], "TP-04": ["TP-02", "TP-01"]}.get(tone, [])


def test_strip_frontmatter():
    assert strip_frontmatter("---\na: 1\n---\n\nBody") == "Body"
    assert strip_frontmatter("No frontmatter") == "No frontmatter"


def test_parse_scenario_sections(rules):
    text = (
        "---\nscenario_id: S01\n---\n"
        "## Section 2: Personal Summary *[120 words]*\nSummary text.\n"
        "## Your Situation\nContext text.\n"
        "## Unmapped Heading\nIgnored.\n"
        "## Treatment Options\n\n"
        "## Trade-offs\nTrade text.\n"
    )
    sections = parse_scenario_sections(text, rules.composition.scenario_headers)
    assert sections == {"personal_summary": "Summary text.", "context": "Context text.", "tradeoffs": "Trade text."}


def test_missing_root_raises(tmp_path):
    with pytest.raises(ContentStoreError):
        FileContentStore(tmp_path / "absent")


@pytest.mark.asyncio
async def test_exact_tone_preferred(library):
    store = FileContentStore(library, fallback_chain=chain)
    assert await store.get_content("B_CTX_GENERAL", "TP-02") == "Empathic text."
    assert await store.get_content("B_CTX_GENERAL", "TP-01") == "Neutral text."


@pytest.mark.asyncio
async def test_tone_fallback_chain(library):
    store = FileContentStore(library, fallback_chain=chain)
    assert await store.get_content("B_OPT_BRIDGE", "TP-04") == "Bridge text."
    assert await store.get_content("B_OPT_BRIDGE", "TP-03") is None


@pytest.mark.asyncio
async def test_language_fallback(library):
    store = FileContentStore(library, fallback_chain=chain)
    assert await store.get_content("B_CTX_GENERAL", "TP-01", "nl") == "Neutrale tekst."
    assert await store.get_content("B_OPT_BRIDGE", "TP-01", "nl") == "Bridge text."
    assert await store.get_content("B_OPT_BRIDGE", "TP-01", "de") == "Bridge text."


@pytest.mark.asyncio
async def test_results_are_cached(library):
    store = FileContentStore(library, fallback_chain=chain)
    assert await store.get_content("B_OPT_BRIDGE", "TP-01") == "Bridge text."
    (library / "en" / "TP-01" / "B_OPT_BRIDGE.md").write_text("Changed.")
    assert await store.get_content("B_OPT_BRIDGE", "TP-01") == "Bridge text."
    store.clear_cache()
    assert await store.get_content("B_OPT_BRIDGE", "TP-01") == "Changed."


def test_candidates_order(library):
    store = FileContentStore(library, fallback_chain=chain)
    paths = store.candidates("X", "TP-02", "nl")
    assert [(p.parts[-3], p.parts[-2]) for p in paths] == [
        ("nl", "TP-02"),
        ("nl", "TP-01"),
        ("en", "TP-02"),
        ("en", "TP-01"),
    ]


@pytest.mark.asyncio
async def test_bundled_library_has_disclaimer(rules, tone_selector):
    store = FileContentStore(Settings().content_dir, fallback_chain=tone_selector.get_fallback_chain)
    text = await store.get_content("STATIC_DISCLAIMER", "TP-04")
    assert text
    assert not text.startswith("---")


@pytest.mark.asyncio
async def test_memory_store_fallbacks():
    store = InMemoryContentStore(fallback_chain=chain)
    store.put("B_CTX_GENERAL", "TP-01", "---\nid: x\n---\nNeutral.")
    store.put("B_CTX_GENERAL", "TP-01", "Neutraal.", language="nl")

    assert len(store) == 2
    assert await store.get_content("B_CTX_GENERAL", "TP-04") == "Neutral."
    assert await store.get_content("B_CTX_GENERAL", "TP-01", "nl") == "Neutraal."
    assert await store.get_content("B_CTX_GENERAL", "TP-03", "fr") is None
