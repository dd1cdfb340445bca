"""
Search Orchestrator
===================

Runs one regulatory search request through its stages and streams
progress events to the caller.

Stages:
1. analyze - readiness pause
2. decompose - split the question into sub-queries (skipped in
   sources-only mode)
3. search - embed and retrieve each sub-query, merge and rank hits
4. synthesize - stream a cited answer from the top sources (skipped in
   sources-only mode)

Version: 0.1.0
"""

import asyncio
import contextlib
import time
import uuid
from collections.abc import AsyncIterator, Iterable

from services.regulatory_search.decomposer import MAIN_QUERY_INTENT, QueryDecomposer
from services.regulatory_search.errors import MalformedRequest, TransportCancelled
from services.regulatory_search.models import (
    AnswerChunkEvent,
    DoneEvent,
    ErrorEvent,
    PipelineEvent,
    PipelineStep,
    SearchRequest,
    SourceHit,
    SourcesEvent,
    StepEvent,
    StepStatus,
    SubQueriesEvent,
    SubQuery,
    SubQueryStatus,
    SubQueryStatusEvent,
)
from services.regulatory_search.policies import RETRIEVAL_FALLBACK, FallbackPolicy
from services.regulatory_search.retrieval import BaseEmbeddingProvider, OpenSearchClient
from services.regulatory_search.streaming import EventChannel, EventOrderError
from shared.config import settings
from shared.config.settings import SearchSettings
from shared.llm import LLMMessage, LLMProvider
from shared.logging import bind_context, clear_context, get_logger


logger = get_logger(__name__)

NO_RESULTS_MESSAGE = "No relevant documents found for your query. Please try rephrasing your question."

ANSWER_SYSTEM_PROMPT = (
    "You are a regulatory expert specializing in pharmaceutical and medical device regulations. "
    "Provide accurate, well-cited answers based on the provided sources. "
    "Use citations like [1], [2] to reference sources. "
    "Be concise but comprehensive. Format your response with clear paragraphs."
)

ANSWER_USER_PROMPT = """Answer this regulatory question using the provided sources:

Question: {query}

Sources:
{sources}

Provide a well-structured answer with citations to the numbered sources."""


def merge_sources(results: Iterable[list[SourceHit]], limit: int) -> list[SourceHit]:
    """
    Merge per-sub-query hits into the final source list.

    Duplicates by id keep the higher score; on a tie the hit seen first
    wins. The result is sorted by descending score (stable) and cut to
    ``limit``.
    """
    merged: dict[str, SourceHit] = {}
    for hits in results:
        for hit in hits:
            existing = merged.get(hit.id)
            if existing is None or hit.relevance_score > existing.relevance_score:
                merged[hit.id] = hit

    ranked = sorted(merged.values(), key=lambda h: h.relevance_score, reverse=True)
    return ranked[:limit]


def build_sources_context(sources: list[SourceHit]) -> str:
    """Number sources as ``[n] title (code)`` followed by their text."""
    return "\n\n".join(
        f"[{i}] {source.title} ({source.code})\n{source.full_text}" for i, source in enumerate(sources, start=1)
    )


def build_answer_messages(query: str, sources: list[SourceHit]) -> list[LLMMessage]:
    return [
        LLMMessage(role="system", content=ANSWER_SYSTEM_PROMPT),
        LLMMessage(
            role="user",
            content=ANSWER_USER_PROMPT.format(query=query, sources=build_sources_context(sources)),
        ),
    ]


class RegulatorySearchOrchestrator:
    """
    Drives the search pipeline for one request at a time.

    The orchestrator holds only pooled clients and read-only settings;
    every run gets its own event channel and sub-query state.

    Example:
        orchestrator = RegulatorySearchOrchestrator(llm, embeddings, retriever)
        async for event in orchestrator.stream(SearchRequest(query="...")):
            ...
    """

    def __init__(
        self,
        llm: LLMProvider,
        embeddings: BaseEmbeddingProvider,
        retriever: OpenSearchClient,
        decomposer: QueryDecomposer | None = None,
        config: SearchSettings | None = None,
        retrieval_policy: FallbackPolicy = RETRIEVAL_FALLBACK,
    ) -> None:
        self.llm = llm
        self.embeddings = embeddings
        self.retriever = retriever
        self.decomposer = decomposer or QueryDecomposer(llm)
        self.config = config or settings.search
        self.retrieval_policy = retrieval_policy

    async def stream(self, request: SearchRequest) -> AsyncIterator[PipelineEvent]:
        """
        Run the pipeline in a background task and yield its events.

        Closing this iterator before the terminal event cancels the
        pipeline task, which aborts any in-flight upstream calls.
        """
        channel = EventChannel()
        task = asyncio.create_task(self.run(request, channel))
        task.add_done_callback(lambda _: channel.close())

        try:
            async for event in channel:
                yield event
        finally:
            channel.close()
            if not task.done():
                logger.info("search_client_disconnected")
                task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def run(self, request: SearchRequest, channel: EventChannel) -> None:
        """Execute every stage, ending the channel with ``done`` or ``error``."""
        request_id = uuid.uuid4().hex[:12]
        bind_context(request_id=request_id)
        start = time.perf_counter()

        try:
            query = request.query.strip()
            if not query:
                raise MalformedRequest("Query is required")

            logger.info("search_started", query=query[:100], sources_only=request.sources_only)

            await self._analyze(channel)
            sub_queries = await self._decompose(query, request.sources_only, channel)
            sources = await self._search(sub_queries, request.sources_only, channel)

            if not request.sources_only:
                await self._synthesize(query, sources, channel)

            await channel.emit(DoneEvent())
            logger.info(
                "search_complete",
                sources=len(sources),
                latency_ms=round((time.perf_counter() - start) * 1000, 1),
            )
        except TransportCancelled:
            logger.info("search_cancelled")
        except MalformedRequest as e:
            logger.warning("search_request_rejected", error=str(e))
            await self._fail(channel, str(e))
        except Exception as e:
            logger.exception("search_stage_failed", error=str(e), error_type=type(e).__name__)
            await self._fail(channel, str(e) or "Search failed")
        finally:
            clear_context()

    async def _fail(self, channel: EventChannel, message: str) -> None:
        try:
            await channel.emit(ErrorEvent(message=message))
        except (TransportCancelled, EventOrderError) as e:
            logger.debug("search_error_not_delivered", error=str(e))

    async def _analyze(self, channel: EventChannel) -> None:
        await channel.emit(StepEvent(step=PipelineStep.ANALYZE, status=StepStatus.ACTIVE))
        if self.config.analyze_pause_ms > 0:
            await asyncio.sleep(self.config.analyze_pause_ms / 1000)
        await channel.emit(StepEvent(step=PipelineStep.ANALYZE, status=StepStatus.COMPLETE))

    async def _decompose(self, query: str, sources_only: bool, channel: EventChannel) -> list[SubQuery]:
        if sources_only:
            return [SubQuery(id="sq-0", query=query, intent=MAIN_QUERY_INTENT)]

        await channel.emit(StepEvent(step=PipelineStep.DECOMPOSE, status=StepStatus.ACTIVE))

        decomposed = await self.decomposer.decompose(query)
        sub_queries = [
            SubQuery(id=f"sq-{i}", query=item.query, intent=item.intent) for i, item in enumerate(decomposed)
        ]

        await channel.emit(SubQueriesEvent(sub_queries=[sq.model_copy() for sq in sub_queries]))
        await channel.emit(StepEvent(step=PipelineStep.DECOMPOSE, status=StepStatus.COMPLETE))
        return sub_queries

    async def retrieve(self, query: str, size_hint: int) -> list[SourceHit]:
        """Embed then search one sub-query; raises on either failure."""
        vector = await self.embeddings.embed(query)
        return await self.retriever.fetch(query, vector, size_hint)

    async def _search(
        self,
        sub_queries: list[SubQuery],
        sources_only: bool,
        channel: EventChannel,
    ) -> list[SourceHit]:
        await channel.emit(StepEvent(step=PipelineStep.SEARCH, status=StepStatus.ACTIVE))

        size_hint = self.config.sources_only_size_hint if sources_only else self.config.size_hint
        semaphore = asyncio.Semaphore(self.config.concurrency)

        async def search_one(sub_query: SubQuery) -> list[SourceHit]:
            async with semaphore:
                sub_query.status = SubQueryStatus.SEARCHING
                if not sources_only:
                    await channel.emit(SubQueryStatusEvent(id=sub_query.id, status="searching"))

                hits = await self.retrieval_policy.run(
                    lambda: self.retrieve(sub_query.query, size_hint),
                    list,
                    sub_query=sub_query.id,
                )

                sub_query.status = SubQueryStatus.COMPLETE
                if not sources_only:
                    await channel.emit(
                        SubQueryStatusEvent(id=sub_query.id, status="complete", result_count=len(hits))
                    )
                return hits

        # Results are read in submission order, so the merge is independent of
        # completion order. A failing sub-query cancels its siblings.
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(search_one(sq)) for sq in sub_queries]
        except ExceptionGroup as failure:
            raise failure.exceptions[0] from None

        results = [task.result() for task in tasks]
        sources = merge_sources(results, self.config.max_sources)

        logger.info(
            "search_results_merged",
            sub_queries=len(sub_queries),
            raw_hits=sum(len(r) for r in results),
            sources=len(sources),
        )

        await channel.emit(StepEvent(step=PipelineStep.SEARCH, status=StepStatus.COMPLETE))
        await channel.emit(SourcesEvent(sources=sources))
        return sources

    async def _synthesize(self, query: str, sources: list[SourceHit], channel: EventChannel) -> None:
        await channel.emit(StepEvent(step=PipelineStep.SYNTHESIZE, status=StepStatus.ACTIVE))

        if not sources:
            await channel.emit(AnswerChunkEvent(text=NO_RESULTS_MESSAGE))
        else:
            messages = build_answer_messages(query, sources[: self.config.context_sources])
            chunks = self.llm.stream(
                messages,
                temperature=settings.llm.answer_temperature,
                max_tokens=settings.llm.answer_max_tokens,
            )
            async with contextlib.aclosing(chunks):
                async for chunk in chunks:
                    if chunk:
                        await channel.emit(AnswerChunkEvent(text=chunk))

        await channel.emit(StepEvent(step=PipelineStep.SYNTHESIZE, status=StepStatus.COMPLETE))

    async def close(self) -> None:
        """Release pooled HTTP clients."""
        await self.llm.close()
        await self.embeddings.close()
        await self.retriever.close()
