"""Question answering over the Tableau Desktop manual.

Three interchangeable strategies share one ``answer(question)`` interface:
whole-document grounding through the Gemini File API, retrieval over an
in-memory chunk index, and an ungrounded fallback. ``KnowledgeBase`` holds
the active one and is swapped exactly once when background initialization
finishes.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from langchain_core.prompts import PromptTemplate

from ..config import Settings
from ..models.document import KnowledgeMode, ReferenceDocument
from .chunk_index import ChunkIndex, build_pdf_index
from .gemini import ProviderError

logger = logging.getLogger(__name__)

EMPTY_ANSWER = "I couldn't find an answer to that question. Please try rephrasing it."

DOCUMENT_PROMPT = PromptTemplate.from_template(
    "You are an expert on Tableau Software. Answer the user's question accurately "
    "based strictly on the provided Tableau Desktop manual.\n\n"
    "User Question: {question}"
)

CHUNKS_PROMPT = PromptTemplate.from_template(
    "You are an expert on Tableau Software. Answer the user's question accurately "
    "based strictly on the following excerpts from the Tableau Desktop manual. "
    "If the excerpts do not contain the answer, say so.\n\n"
    "Excerpts:\n{context}\n\n"
    "User Question: {question}"
)

GENERAL_PROMPT = PromptTemplate.from_template(
    "You are an expert on Tableau Software aka \"Tee's Guide\". The Tableau Desktop "
    "manual is not available right now, so answer from your general knowledge and "
    "begin by noting that the answer is not drawn from the official manual.\n\n"
    "User Question: {question}"
)


class AnswerStrategy(ABC):
    mode: KnowledgeMode

    def __init__(self, client):
        self.client = client

    @abstractmethod
    async def answer(self, question: str) -> str:
        """Answer a question; raises ProviderError when generation fails."""

    async def _generate(self, parts) -> str:
        try:
            text = await self.client.generate(parts)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(str(e)) from e
        return text.strip() if text and text.strip() else EMPTY_ANSWER


class DocumentGrounding(AnswerStrategy):
    mode = KnowledgeMode.DOCUMENT

    def __init__(self, client, document: ReferenceDocument):
        super().__init__(client)
        self.document = document

    async def answer(self, question: str) -> str:
        file_part = {
            'file_data': {
                'mime_type': self.document.mime_type,
                'file_uri': self.document.uri,
            }
        }
        return await self._generate([file_part, DOCUMENT_PROMPT.format(question=question)])


class ChunkRetrieval(AnswerStrategy):
    mode = KnowledgeMode.CHUNKS

    def __init__(self, client, index: ChunkIndex, top_k: int = 4):
        super().__init__(client)
        self.index = index
        self.top_k = top_k

    async def answer(self, question: str) -> str:
        try:
            chunks = await self.index.search(question, k=self.top_k)
        except Exception as e:
            raise ProviderError(f"Retrieval failed: {str(e)}") from e
        logger.debug(f"Retrieved {len(chunks)} relevant chunks")
        context = "\n\n---\n\n".join(chunks)
        return await self._generate([CHUNKS_PROMPT.format(context=context, question=question)])


class GeneralKnowledge(AnswerStrategy):
    mode = KnowledgeMode.GENERAL

    async def answer(self, question: str) -> str:
        return await self._generate([GENERAL_PROMPT.format(question=question)])


class KnowledgeBase:
    """Process-wide answering context shared by every request handler."""

    def __init__(self, client, strategy: Optional[AnswerStrategy] = None):
        self.client = client
        self._strategy = strategy or GeneralKnowledge(client)
        self._ready = False

    @property
    def mode(self) -> KnowledgeMode:
        return self._strategy.mode

    @property
    def ready(self) -> bool:
        return self._ready

    def activate(self, strategy: AnswerStrategy) -> None:
        logger.info(f"Knowledge base switching to '{strategy.mode.value}' mode")
        self._strategy = strategy

    def mark_ready(self) -> None:
        self._ready = True

    async def ask(self, question: str) -> str:
        strategy = self._strategy
        return await strategy.answer(question)

    async def query(self, question: str) -> str:
        """Like ``ask`` but never raises for provider failures."""
        try:
            return await self.ask(question)
        except ProviderError as e:
            logger.error(f"Error querying Gemini: {str(e)}")
            return f"Error querying Gemini: {str(e)}"


async def initialize_knowledge(knowledge: KnowledgeBase, settings: Settings, provisioner,
                               index_factory: Optional[Callable[..., ChunkIndex]] = None) -> KnowledgeBase:
    """Background initialization: pick the configured strategy, or stay in fallback."""
    mode = settings.knowledge_mode
    logger.info(f"Initializing knowledge base in '{mode.value}' mode...")
    try:
        if mode == KnowledgeMode.DOCUMENT:
            document = await provisioner.ensure_available()
            if document.is_active:
                knowledge.activate(DocumentGrounding(knowledge.client, document))
            else:
                logger.warning(f"Manual unavailable ({document.error}); answering from general knowledge")

        elif mode == KnowledgeMode.CHUNKS:
            document = await provisioner.fetch_local()
            if document.local_path:
                factory = index_factory or build_pdf_index
                try:
                    index = await asyncio.to_thread(
                        factory, document.local_path, settings.embedding_model,
                        settings.chunk_size, settings.chunk_overlap
                    )
                finally:
                    provisioner.discard_local(document)
                logger.info(f"Indexed {len(index)} chunks of the manual")
                knowledge.activate(ChunkRetrieval(knowledge.client, index, top_k=settings.retrieval_top_k))
            else:
                logger.warning(f"Manual unavailable ({document.error}); answering from general knowledge")

    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.error(f"Failed to initialize knowledge base: {str(e)}", exc_info=True)
    finally:
        knowledge.mark_ready()

    logger.info(f"Knowledge base ready (mode: {knowledge.mode.value})")
    return knowledge
