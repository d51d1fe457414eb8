from __future__ import annotations

import asyncio

import pytest

from supportbot.core.exceptions import KnowledgeStoreError
from supportbot.database.db import build_engine, verify_database_connection
from supportbot.rag.knowledge.base import PROVENANCE_KEYWORD
from supportbot.rag.knowledge.sql_store import SQLKnowledgeStore


@pytest.fixture
def sql_store(sqlite_url):
    engine = build_engine(sqlite_url)
    store = SQLKnowledgeStore(engine, high_threshold=0.85, low_threshold=0.75)
    store.create_schema()
    yield store
    engine.dispose()


def _seed(store):
    return asyncio.run(
        store.insert_many(
            [
                {"question": "What is your return policy?", "answer": "30 days.", "category": "Returns", "embedding": [1.0, 0.0]},
                {"question": "How long does shipping take?", "answer": "3-5 days.", "category": "Shipping", "embedding": [0.0, 1.0]},
                {"question": "Do you ship abroad?", "answer": "Yes, to 50 countries.", "category": "Shipping"},
            ]
        )
    )


def test_connection_check(sqlite_url):
    assert verify_database_connection(build_engine(sqlite_url)) is True


def test_vector_search_only_scores_embedded_rows(sql_store):
    _seed(sql_store)

    outcome = asyncio.run(sql_store.vector_search([0.6, 0.8], limit=3, threshold=0.5))

    assert [item.question for item in outcome.results] == [
        "How long does shipping take?",
        "What is your return policy?",
    ]
    assert outcome.results[0].score == pytest.approx(0.8)
    assert outcome.categorized["high"] == []


def test_keyword_fallback_reaches_rows_without_embeddings(sql_store):
    _seed(sql_store)

    outcome = asyncio.run(sql_store.vector_search([1.0, 0.0, 0.0], limit=3, threshold=0.5, query_text="ship abroad"))

    assert outcome.fallback is True
    assert outcome.results[0].question == "Do you ship abroad?"
    assert all(item.provenance == PROVENANCE_KEYWORD for item in outcome.results)


def test_keyword_search_honours_category(sql_store):
    _seed(sql_store)
    outcome = asyncio.run(sql_store.text_search_fallback("return policy days", limit=5, category="Returns"))
    assert [item.category for item in outcome.results] == ["Returns"]


def test_crud_and_metadata(sql_store):
    created, *_ = _seed(sql_store)

    fetched = asyncio.run(sql_store.get_faq(created.id))
    assert fetched.answer == "30 days."
    assert fetched.embedding == [1.0, 0.0]

    updated = asyncio.run(sql_store.update_faq(created.id, answer="60 days."))
    assert updated.answer == "60 days."

    assert asyncio.run(sql_store.count()) == 3
    assert asyncio.run(sql_store.categories()) == ["Returns", "Shipping"]

    assert asyncio.run(sql_store.delete_faq(created.id)) is True
    assert asyncio.run(sql_store.get_faq(created.id)) is None
    assert asyncio.run(sql_store.get_faq("not-a-number")) is None
    assert asyncio.run(sql_store.delete_faq("not-a-number")) is False


def test_insert_rejects_blank_answer(sql_store):
    with pytest.raises(KnowledgeStoreError):
        asyncio.run(sql_store.insert_faq("Question?", " "))


def test_wrong_sized_embedding_is_stored_without_vector(sqlite_url):
    engine = build_engine(sqlite_url)
    store = SQLKnowledgeStore(engine, dimensions=2)
    store.create_schema()
    try:
        _seed(store)
        legacy = asyncio.run(store.insert_faq("Legacy entry", "Old answer.", "Legacy", embedding=[1.0, 0.0, 0.0]))

        assert asyncio.run(store.get_faq(legacy.id)).embedding is None
        outcome = asyncio.run(store.vector_search([1.0, 0.0], limit=3, threshold=0.75))
        assert outcome.fallback is False
        assert [item.category for item in outcome.results] == ["Returns"]
    finally:
        engine.dispose()
