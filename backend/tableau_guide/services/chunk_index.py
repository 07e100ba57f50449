import asyncio
import logging
from typing import List

import PyPDF2
from langchain_core.embeddings import Embeddings
from langchain_core.vectorstores import InMemoryVectorStore
from langchain_text_splitters import RecursiveCharacterTextSplitter

logger = logging.getLogger(__name__)


def extract_pdf_text(file_path: str) -> str:
    """Extract text from PDF file"""
    try:
        pages = []
        with open(file_path, 'rb') as file:
            pdf_reader = PyPDF2.PdfReader(file)
            for page in pdf_reader.pages:
                page_text = page.extract_text()
                if page_text:
                    pages.append(page_text)
        return "\n".join(pages)
    except Exception as e:
        logger.error(f"Error extracting text from PDF: {str(e)}")
        raise RuntimeError(f"Failed to extract text from PDF: {str(e)}")


class ChunkIndex:
    """In-memory similarity index over overlapping chunks of the manual."""

    def __init__(self, store: InMemoryVectorStore, chunk_count: int):
        self.store = store
        self.chunk_count = chunk_count

    def __len__(self) -> int:
        return self.chunk_count

    @classmethod
    def from_text(cls, text: str, embeddings: Embeddings,
                  chunk_size: int = 1000, chunk_overlap: int = 200) -> "ChunkIndex":
        if not text.strip():
            raise ValueError("No text content found in document")

        splitter = RecursiveCharacterTextSplitter(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
        chunks = splitter.split_text(text)
        if not chunks:
            raise ValueError("No text chunks generated from document")

        logger.info(f"Generated {len(chunks)} chunks, getting embeddings...")
        store = InMemoryVectorStore(embedding=embeddings)
        store.add_texts(chunks)
        logger.info("Successfully indexed chunks")
        return cls(store, len(chunks))

    @classmethod
    def from_pdf(cls, file_path: str, embeddings: Embeddings,
                 chunk_size: int = 1000, chunk_overlap: int = 200) -> "ChunkIndex":
        logger.info(f"Extracting text from {file_path}...")
        text = extract_pdf_text(file_path)
        return cls.from_text(text, embeddings, chunk_size=chunk_size, chunk_overlap=chunk_overlap)

    async def search(self, question: str, k: int = 4) -> List[str]:
        documents = await asyncio.to_thread(self.store.similarity_search, question, k)
        return [doc.page_content for doc in documents]


def build_pdf_index(file_path: str, embedding_model: str,
                    chunk_size: int, chunk_overlap: int) -> ChunkIndex:
    """Default index factory: HuggingFace sentence embeddings over the PDF text."""
    from langchain_huggingface import HuggingFaceEmbeddings

    embeddings = HuggingFaceEmbeddings(
        model_name=embedding_model,
        model_kwargs={'device': 'cpu'},
        encode_kwargs={'normalize_embeddings': True}
    )
    logger.info(f"Successfully initialized embedding model {embedding_model}")
    return ChunkIndex.from_pdf(file_path, embeddings, chunk_size=chunk_size, chunk_overlap=chunk_overlap)
