import asyncio

import pytest

from conftest import FakeKeywordGenerator, FakeProductSource, make_product

from phresearch.core.errors import GenerationError, InvalidKeywordSetError, SourceError
from phresearch.core.research.research_orchestrator import ResearchOrchestrator
from phresearch.models.config import PipelineConfig


def _orchestrator(generator, source, **config):
    return ResearchOrchestrator(generator, source, PipelineConfig(**config))


@pytest.mark.asyncio
async def test_crm_scenario():
    hubspot_old = make_product("HubSpot", votes=100)
    hubspot_new = make_product("HubSpot", votes=300, tagline="newer")
    generator = FakeKeywordGenerator(["crm", "sales", "lead-gen"])
    source = FakeProductSource({
        "crm": [hubspot_old, make_product("Pipedrive", 80)],
        "sales": [hubspot_new, make_product("Close", 50)],
        "lead-gen": [],
    })

    result = await _orchestrator(generator, source).run_research("CRM")

    assert generator.calls == ["CRM"]
    assert result.keywords == ["crm", "sales", "lead-gen"]
    assert len(result.products) == 3
    hubspot = next(p for p in result.products if p.name == "HubSpot")
    assert hubspot.votes_count == 300
    assert hubspot.tagline == "newer"
    assert result.content == ""
    assert sorted(source.calls) == [("crm", 10), ("lead-gen", 10), ("sales", 10)]


@pytest.mark.asyncio
async def test_adjusted_rerun_skips_generation():
    generator = FakeKeywordGenerator(["should", "not", "be", "used"])
    source = FakeProductSource({"crm": [make_product("HubSpot")], "sales": [make_product("Close")]})

    result = await _orchestrator(generator, source).run_research(
        "CRM", adjusted_keywords={"crm": 5, "sales": 20}, skip_generation=True
    )

    assert generator.calls == []
    assert len(source.calls) == 2
    assert sorted(source.calls) == [("crm", 5), ("sales", 20)]
    assert result.keywords == ["crm", "sales"]
    assert [(s.keyword, s.weight) for s in result.keyword_stats] == [("crm", 5), ("sales", 20)]


@pytest.mark.asyncio
@pytest.mark.parametrize("adjusted", [{}, {"": 10, "   ": 5}, None, {"crm": 0, "sales": -3}])
async def test_empty_adjusted_keyword_set_is_rejected_before_any_call(adjusted):
    generator = FakeKeywordGenerator(["crm"])
    source = FakeProductSource({"crm": [make_product("HubSpot")]})

    with pytest.raises(InvalidKeywordSetError):
        await _orchestrator(generator, source).run_research(
            "CRM", adjusted_keywords=adjusted, skip_generation=True
        )

    assert generator.calls == []
    assert source.calls == []


def test_adjusted_keywords_are_trimmed_and_collapsed():
    keywords = ResearchOrchestrator.normalize_adjusted_keywords(
        {" crm ": 5, "": 3, "sales": 20, "crm": 8, "bad": "x"}
    )
    assert [(k.keyword, k.weight) for k in keywords] == [("crm", 8), ("sales", 20)]


@pytest.mark.asyncio
async def test_empty_keyword_does_not_stop_the_others():
    source = FakeProductSource({
        "crm": [make_product("HubSpot"), make_product("Pipedrive")],
        "sales": RuntimeError("upstream 502"),
        "lead-gen": [make_product("Apollo"), make_product("HubSpot")],
    })

    result = await _orchestrator(FakeKeywordGenerator(["crm", "sales", "lead-gen"]), source).run_research("CRM")

    assert [p.name for p in result.products] == ["HubSpot", "Pipedrive", "Apollo"]
    stats = {s.keyword: s for s in result.keyword_stats}
    assert stats["sales"].failed is True
    assert stats["sales"].count == 0
    assert "upstream 502" in stats["sales"].error
    assert stats["crm"].failed is False and stats["crm"].count == 2


@pytest.mark.asyncio
async def test_zero_results_is_not_a_failure():
    source = FakeProductSource({"crm": [make_product("HubSpot")], "niche": []})

    result = await _orchestrator(FakeKeywordGenerator(["crm", "niche"]), source).run_research("CRM")

    niche = next(s for s in result.keyword_stats if s.keyword == "niche")
    assert niche.failed is False
    assert niche.count == 0


@pytest.mark.asyncio
async def test_generation_error_propagates_without_searching():
    source = FakeProductSource()
    generator = FakeKeywordGenerator(error=GenerationError(details={"cause": "timeout"}))

    with pytest.raises(GenerationError):
        await _orchestrator(generator, source).run_research("CRM")

    assert source.calls == []


@pytest.mark.asyncio
async def test_source_error_aborts_the_run():
    source = FakeProductSource({
        "crm": [make_product("HubSpot")],
        "sales": SourceError("bad token", status_code=401),
    })

    with pytest.raises(SourceError):
        await _orchestrator(FakeKeywordGenerator(["crm", "sales"]), source).run_research("CRM")


@pytest.mark.asyncio
async def test_sequential_mode_stops_at_first_source_error():
    source = FakeProductSource({
        "a": [make_product("A")],
        "b": SourceError("bad token", status_code=401),
        "c": [make_product("C")],
    })
    orchestrator = _orchestrator(FakeKeywordGenerator(["a", "b", "c"]), source, max_concurrent_searches=1)

    with pytest.raises(SourceError):
        await orchestrator.run_research("letters")

    assert source.calls == [("a", 10), ("b", 10)]


@pytest.mark.asyncio
async def test_sequential_mode_searches_in_keyword_order():
    source = FakeProductSource({k: [make_product(k.upper())] for k in ["z", "a", "m"]})
    orchestrator = _orchestrator(FakeKeywordGenerator(["z", "a", "m"]), source, max_concurrent_searches=1)

    result = await orchestrator.run_research("letters")

    assert [c[0] for c in source.calls] == ["z", "a", "m"]
    assert [p.name for p in result.products] == ["Z", "A", "M"]


@pytest.mark.asyncio
async def test_fan_out_respects_concurrency_limit():
    class SlowSource(FakeProductSource):
        def __init__(self):
            super().__init__()
            self.active = 0
            self.peak = 0

        async def _fetch(self, keyword, count):
            self.active += 1
            self.peak = max(self.peak, self.active)
            await asyncio.sleep(0.01)
            self.active -= 1
            return [make_product(keyword)]

    source = SlowSource()
    keywords = [f"k{i}" for i in range(10)]
    orchestrator = _orchestrator(FakeKeywordGenerator(keywords), source, max_concurrent_searches=3)

    result = await orchestrator.run_research("many")

    assert source.peak <= 3
    assert len(result.products) == 10
    # merged in keyword order regardless of completion order
    assert [p.name for p in result.products] == keywords


@pytest.mark.asyncio
async def test_existing_enrichment_is_overlaid():
    source = FakeProductSource({
        "crm": [
            make_product("HubSpot", website="https://hubspot.com"),
            make_product("Pipedrive", website="https://pipedrive.com"),
        ],
    })
    enrichment = {"https://hubspot.com": "HubSpot deep dive"}

    result = await _orchestrator(FakeKeywordGenerator(["crm"]), source).run_research(
        "CRM", existing_enrichment=enrichment
    )

    by_name = {p.name: p for p in result.products}
    assert by_name["HubSpot"].deep_research == "HubSpot deep dive"
    assert by_name["Pipedrive"].deep_research is None


@pytest.mark.asyncio
async def test_generated_keywords_use_default_weight():
    source = FakeProductSource()
    orchestrator = _orchestrator(FakeKeywordGenerator(["crm"]), source, default_weight=7)

    await orchestrator.run_research("CRM", adjusted_keywords={"ignored": 3})

    assert source.calls == [("crm", 7)]
