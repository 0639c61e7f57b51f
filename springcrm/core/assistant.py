"""Business assistant: prompt, then plain or search-backed completion."""

from __future__ import annotations

from springcrm.config import PromptConfig
from springcrm.core.fallback import FallbackController
from springcrm.core.llm import ChatCompletionClient, ChatMessage
from springcrm.core.snapshot import SnapshotProvider
from springcrm.core.system_prompt import PromptKind, build_system_prompt
from springcrm.utils.logging import get_logger

log = get_logger(__name__)

_CUSTOMER_ANALYSIS_REQUEST = "Please analyse this customer using the data provided."


class CustomerNotFound(Exception):
    def __init__(self, customer_id: str) -> None:
        self.customer_id = customer_id
        super().__init__(f"Unknown customer: {customer_id}")


class Assistant:
    """Answers one question per call; nothing is remembered between calls.

    General questions and customer analysis go straight to the plain client.
    Company research goes through the fallback controller so the model can
    use web search.
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        client: ChatCompletionClient,
        fallback: FallbackController,
        config: PromptConfig,
    ) -> None:
        self._provider = provider
        self._client = client
        self._fallback = fallback
        self._config = config

    async def ask(self, question: str, credential: str) -> str:
        system = build_system_prompt(
            PromptKind.GENERAL,
            self._provider.snapshot(),
            company=self._config.company_name,
            sample_size=self._config.sample_size,
        )
        log.info("assistant_request", kind=PromptKind.GENERAL.value)
        completion = await self._client.complete(
            [ChatMessage.system(system), ChatMessage.user(question)], credential
        )
        return completion.content

    async def research_company(self, query: str, credential: str) -> str:
        system = build_system_prompt(
            PromptKind.COMPANY_RESEARCH,
            self._provider.snapshot(),
            subject=query,
            company=self._config.company_name,
        )
        log.info("assistant_request", kind=PromptKind.COMPANY_RESEARCH.value)
        return await self._fallback.answer_with_search(
            [ChatMessage.system(system), ChatMessage.user(query)], credential
        )

    async def analyze_customer(self, customer_id: str, credential: str) -> str:
        """Raises `CustomerNotFound` before any upstream call for an unknown id."""
        snapshot = self._provider.snapshot()
        if snapshot.find_customer(customer_id) is None:
            raise CustomerNotFound(customer_id)
        system = build_system_prompt(
            PromptKind.CUSTOMER_ANALYSIS,
            snapshot,
            subject=customer_id,
            company=self._config.company_name,
        )
        log.info("assistant_request", kind=PromptKind.CUSTOMER_ANALYSIS.value, customer_id=customer_id)
        completion = await self._client.complete(
            [ChatMessage.system(system), ChatMessage.user(_CUSTOMER_ANALYSIS_REQUEST)], credential
        )
        return completion.content
