from conftest import make_product

from phresearch.core.storage.sqlite_manager import ResearchStore
from phresearch.models.config import IdentityStrategy, LLMProvider, load_config
from phresearch.models.research import KeywordStatus, ResearchResult


def _result():
    return ResearchResult(
        keywords=["crm", "sales"],
        products=[make_product("HubSpot", 300, website="https://hubspot.com"), make_product("Close", 50)],
        keyword_stats=[KeywordStatus(keyword="crm", weight=10, count=1), KeywordStatus(keyword="sales", weight=10, count=1)],
    )


def test_history_round_trip(db_path):
    store = ResearchStore(db_path)
    store.save_history("CRM", _result())

    cached = store.get_history("CRM")

    assert cached.keywords == ["crm", "sales"]
    assert [p.name for p in cached.products] == ["HubSpot", "Close"]
    assert cached.products[0].votes_count == 300
    assert cached.keyword_stats[0].keyword == "crm"
    assert store.get_history("crm") is None


def test_history_listing_and_deletion(db_path):
    store = ResearchStore(db_path)
    store.save_history("CRM", _result())
    store.save_history("Design", ResearchResult(keywords=["design"]))

    topics = store.list_history()
    assert {t["topic"] for t in topics} == {"CRM", "Design"}
    assert next(t for t in topics if t["topic"] == "CRM")["productCount"] == 2

    assert store.delete_history("CRM") is True
    assert store.delete_history("CRM") is False
    store.clear_history()
    assert store.list_history() == []


def test_favorites_keyed_by_enrichment_key(db_path):
    store = ResearchStore(db_path)
    store.add_favorite(make_product("HubSpot", website="https://hubspot.com"))
    store.add_favorite(make_product("Close", url="https://www.producthunt.com/posts/close"))

    keys = {f["key"] for f in store.get_favorites()}
    assert keys == {"https://hubspot.com", "https://www.producthunt.com/posts/close"}

    assert store.update_favorite_research("https://hubspot.com", "notes") is True
    hubspot = next(f for f in store.get_favorites() if f["key"] == "https://hubspot.com")
    assert hubspot["product"]["deepResearch"] == "notes"

    assert store.remove_favorite("https://hubspot.com") is True
    assert store.remove_favorite("https://hubspot.com") is False


def test_enrichments_overwrite(db_path):
    store = ResearchStore(db_path)
    store.save_enrichment("https://hubspot.com", "v1")
    store.save_enrichment("https://hubspot.com", "v2")

    assert store.get_enrichments() == {"https://hubspot.com": "v2"}


def test_load_config_from_mapping():
    config = load_config({
        "OPENAI_API_KEY": "sk-test",
        "PRODUCTHUNT_DEVELOPER_TOKEN": "ph",
        "COZE_API_KEY": "coze",
        "COZE_WORKFLOW_ID": "wf",
        "RESEARCH_MAX_CONCURRENT_SEARCHES": "1",
        "RESEARCH_IDENTITY_STRATEGY": "normalized_name",
        "PORT": "8080",
    })

    assert config.llm.provider == LLMProvider.OPENAI
    assert config.llm.api_key == "sk-test"
    assert config.producthunt.developer_token == "ph"
    assert config.deep_research.workflow_id == "wf"
    assert config.pipeline.max_concurrent_searches == 1
    assert config.pipeline.identity_strategy == IdentityStrategy.NORMALIZED_NAME
    assert config.pipeline.default_weight == 10
    assert config.port == 8080


def test_load_config_defaults_without_credentials():
    config = load_config({})

    assert config.llm.api_key is None
    assert config.producthunt.developer_token is None
    assert config.deep_research.api_key is None
    assert config.port == 3001
