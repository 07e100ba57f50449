import asyncio

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding

from tableau_guide.services.chunk_index import ChunkIndex

MANUAL_TEXT = "\n\n".join(
    f"Section {i}. " + ("Tableau lets you build views from your data. " * 12)
    for i in range(10)
)


def test_text_is_split_into_overlapping_chunks():
    index = ChunkIndex.from_text(MANUAL_TEXT, DeterministicFakeEmbedding(size=16),
                                 chunk_size=300, chunk_overlap=50)

    assert len(index) > 1


def test_search_returns_top_k_chunks():
    index = ChunkIndex.from_text(MANUAL_TEXT, DeterministicFakeEmbedding(size=16),
                                 chunk_size=300, chunk_overlap=50)

    results = asyncio.run(index.search('How do I build a view?', k=3))

    assert len(results) == 3
    assert all(isinstance(r, str) and r for r in results)


def test_empty_text_is_rejected():
    with pytest.raises(ValueError):
        ChunkIndex.from_text("   \n  ", DeterministicFakeEmbedding(size=16))
