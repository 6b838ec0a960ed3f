# arch_provider/architecture_provider.py

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar

from arch_provider.aggregation import build_aggregator
from arch_provider.architecture_prompts import PromptTemplateSet
from arch_provider.cancellation import CancellationToken, OperationCancelledError
from arch_provider.conversation import ChatModel, ConversationDriver
from arch_provider.data_repository import DataRepository, get_default_repository
from arch_provider.evidence import EvidenceProvider, RepositoryEvidenceProvider
from arch_provider.llm_client import build_chat_llm
from arch_provider.model_builder import ModelBuilder
from arch_provider.models import ArchitectureModel
from arch_provider.response_parser import ResponseParser
from arch_provider.sanitizer import NameSanitizer
from arch_provider.similarity import LevenshteinMeasure, SimilarityMeasure

logger = logging.getLogger("arch_provider")

T = TypeVar("T")


class ArchitectureProvider:
    """
    Derives an architecture model (component names only) from documentation
    text and/or the code package structure by asking an LLM.

    documentation ─┐
                   ├─> aggregate ─> sanitize ─> build + register model
    code packages ─┘

    The two evidence branches run concurrently in worker threads; the
    registry is only touched after both have finished successfully.
    """

    def __init__(
        self,
        chat_llm: ChatModel,
        prompt_set: PromptTemplateSet,
        repository: Optional[DataRepository] = None,
        evidence: Optional[EvidenceProvider] = None,
        sanitizer: Optional[NameSanitizer] = None,
        measure: Optional[SimilarityMeasure] = None,
        parser: Optional[ResponseParser] = None,
    ):
        self.chat_llm = chat_llm
        self.prompt_set = prompt_set
        self.repository = repository or get_default_repository()
        self.evidence = evidence or RepositoryEvidenceProvider(self.repository)
        self.sanitizer = sanitizer or NameSanitizer()
        self.parser = parser or ResponseParser()
        self.aggregator = build_aggregator(
            prompt_set,
            ConversationDriver(chat_llm, "aggregation"),
            measure or LevenshteinMeasure(),
            self.parser,
        )
        self.model_builder = ModelBuilder(self.repository)

    @classmethod
    def from_settings(
        cls,
        settings,
        chat_llm: Optional[ChatModel] = None,
        repository: Optional[DataRepository] = None,
        evidence: Optional[EvidenceProvider] = None,
    ) -> "ArchitectureProvider":
        settings.validate()
        return cls(
            chat_llm=chat_llm or build_chat_llm(settings),
            prompt_set=PromptTemplateSet.from_settings(settings),
            repository=repository,
            evidence=evidence,
            sanitizer=NameSanitizer.from_settings(settings),
            measure=LevenshteinMeasure.from_settings(settings),
        )

    # -----------------------
    # Evidence branches
    # -----------------------

    def documentation_to_architecture(self, token: CancellationToken) -> List[str]:
        input_text = self.evidence.get_input_text()
        if not (input_text or "").strip():
            logger.warning("Input text not found, documentation yields no component names")
            return []
        reply = ConversationDriver(self.chat_llm, "documentation").run(self.prompt_set.documentation, input_text, token)
        return self.parser.parse(reply)

    def code_to_architecture(self, token: CancellationToken) -> List[str]:
        packages = self.evidence.get_code_packages()
        if packages is None:
            logger.warning("Code model not found, code yields no component names")
            return []
        reply = ConversationDriver(self.chat_llm, "code").run(self.prompt_set.code, "\n".join(packages), token)
        return self.parser.parse(reply)

    @staticmethod
    async def _in_worker(executor: ThreadPoolExecutor, fn: Callable[..., T], *args) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(executor, fn, *args)

    @staticmethod
    async def _with_deadline(awaitable: Awaitable[T], token: CancellationToken, where: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=token.remaining())
        except asyncio.TimeoutError as e:
            token.cancel("timed out")
            raise OperationCancelledError(f"Operation timed out while querying the model ({where})") from e

    async def _collect_candidates(
        self, executor: ThreadPoolExecutor, token: CancellationToken
    ) -> Tuple[List[str], List[str]]:
        async def nothing() -> List[str]:
            return []

        doc_task = (
            self._in_worker(executor, self.documentation_to_architecture, token)
            if self.prompt_set.documentation is not None else nothing()
        )
        code_task = (
            self._in_worker(executor, self.code_to_architecture, token)
            if self.prompt_set.code is not None else nothing()
        )
        doc_names, code_names = await self._with_deadline(asyncio.gather(doc_task, code_task), token, "evidence")
        return doc_names, code_names

    # -----------------------
    # Runs
    # -----------------------

    async def aextract_component_names(self, token: Optional[CancellationToken] = None) -> List[str]:
        """
        Everything but the model registration: candidates from both sources,
        aggregated and sanitized.
        """
        token = token or CancellationToken()
        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="arch-provider")
        try:
            doc_names, code_names = await self._collect_candidates(executor, token)
            logger.info(
                f"Candidates: {len(doc_names)} from documentation, {len(code_names)} from code "
                f"(aggregation: {self.aggregator.strategy})"
            )
            aggregated = await self._with_deadline(
                self._in_worker(executor, self.aggregator.aggregate, doc_names, code_names, token),
                token,
                "aggregation",
            )
        except BaseException:
            # stop the sibling branch at its next checkpoint
            token.cancel()
            raise
        finally:
            # never join a worker still blocked in a model call
            executor.shutdown(wait=False, cancel_futures=True)

        component_names = self.sanitizer.sanitize(aggregated)
        logger.info("Component names:\n" + "\n".join(component_names))
        usage = getattr(self.chat_llm, "last_usage", None)
        if usage:
            logger.debug(f"LLM usage so far: {usage}")
        return component_names

    async def arun(self, token: Optional[CancellationToken] = None) -> ArchitectureModel:
        token = token or CancellationToken()
        component_names = await self.aextract_component_names(token)
        token.raise_if_cancelled("before model building")
        return self.model_builder.build(component_names)

    def extract_component_names(self, timeout: Optional[float] = None) -> List[str]:
        return asyncio.run(self.aextract_component_names(CancellationToken(timeout)))

    def run(self, timeout: Optional[float] = None) -> ArchitectureModel:
        return asyncio.run(self.arun(CancellationToken(timeout)))
