"""Retrieval service.

Answers a question about one document: the question is stored first, then
embedded and matched against the document's namespace, combined with the
recent conversation into a prompt and streamed through the LLM. The answer is
stored only once the LLM signals the end of the stream.
"""

from contextlib import aclosing
from typing import AsyncIterator

from pydantic import BaseModel

from services.retrieval.PromptAssembler import PromptAssembler
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.database.DocumentStore import DocumentStore
from shared.database.MessageStore import MessageStore
from shared.errors import NotFoundError, UnauthorizedError, UpstreamFailureError, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperContent import normalize_whitespace, to_namespace
from shared.models.message import ChatTurn, MessagePage

TOP_K = 4         # retrieved excerpts per question
HISTORY_SIZE = 6  # prior messages included in the prompt


class PreparedAnswer(BaseModel):
    """Everything needed to stream the answer to a stored question."""

    file_id: str
    user_id: str
    question_id: str
    prompt: str
    context: list[str] = []
    history: list[ChatTurn] = []


class RetrievalService:
    def __init__(
        self,
        helper_config: HelperConfig,
        document_store: DocumentStore,
        message_store: MessageStore,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
        llm_client: LLMClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._documents = document_store
        self._messages = message_store
        self._embed_client = embed_client
        self._rag_client = rag_client
        self._llm_client = llm_client
        self.top_k = helper_config.get_positive_int_val("RETRIEVAL_TOP_K", default=TOP_K)
        self.history_size = helper_config.get_positive_int_val("RETRIEVAL_HISTORY_SIZE", default=HISTORY_SIZE)

    ##########################################
    ################ PREPARE #################
    ##########################################

    async def do_prepare(self, file_id: str, message: str, user_id: str) -> PreparedAnswer:
        """Store the question and build the prompt for it.

        Runs before any answer text is sent, so its errors reach the caller
        as a plain error response.

        Args:
            file_id (str): Document the question is about.
            message (str): The question.
            user_id (str): The asking user, must own the document.

        Returns:
            PreparedAnswer: The rendered prompt and its inputs.

        Raises:
            UnauthorizedError: If no user id is given.
            ValidationError: If the question is empty.
            NotFoundError: If the document does not exist or belongs to someone else.
            UpstreamFailureError: If embedding or the vector query fails. The
                question stays stored.
        """
        if not user_id:
            raise UnauthorizedError("Missing caller identity.")
        if not message or not message.strip():
            raise ValidationError("Message must not be empty.")

        document = await self._documents.do_get_for_owner(file_id, user_id)
        if document is None:
            raise NotFoundError(f"File '{file_id}' not found.")

        question = await self._messages.do_append(file_id=file_id, user_id=user_id, text=message, is_user_message=True)

        vector = await self._embed_client.do_embed(normalize_whitespace(message))
        matches = await self._rag_client.do_query(to_namespace(document.id), vector, self.top_k, include_metadata=True)
        context = [match.metadata.text for match in matches if match.metadata]

        recent = await self._messages.do_fetch_recent(file_id, self.history_size, exclude_id=question.id)
        history = PromptAssembler.to_turns(recent)

        self.logging.debug(
            "Prepared answer for file %s: %d context excerpts, %d history turns.", file_id, len(context), len(history)
        )
        return PreparedAnswer(
            file_id=file_id,
            user_id=user_id,
            question_id=question.id,
            prompt=PromptAssembler.render(history, context, message),
            context=context,
            history=history,
        )

    ##########################################
    ################# STREAM #################
    ##########################################

    async def stream_answer(self, prepared: PreparedAnswer) -> AsyncIterator[str]:
        """Yield the answer increments and store the full answer afterwards.

        Nothing is stored if the LLM fails or the consumer stops iterating
        before the end-of-stream signal.

        Raises:
            UpstreamFailureError: If the completion fails, possibly after some
                increments were yielded.
        """
        parts: list[str] = []
        try:
            async with aclosing(self._llm_client.do_stream_completion(prepared.prompt)) as stream:
                async for text in stream:
                    parts.append(text)
                    yield text
        except UpstreamFailureError as e:
            self.logging.error("Answer generation for file %s failed after %d increments: %s", prepared.file_id, len(parts), e.message)
            raise

        answer = await self._messages.do_append(
            file_id=prepared.file_id,
            user_id=prepared.user_id,
            text="".join(parts),
            is_user_message=False,
        )
        self.logging.info("Stored answer %s for file %s (%d increments).", answer.id, prepared.file_id, len(parts))

    async def do_answer(self, file_id: str, message: str, user_id: str) -> AsyncIterator[str]:
        """Prepare and stream in one call, for callers without a separate response phase."""
        prepared = await self.do_prepare(file_id, message, user_id)
        async with aclosing(self.stream_answer(prepared)) as stream:
            async for text in stream:
                yield text

    async def do_fetch_history(self, file_id: str, user_id: str, limit: int, cursor: str | None = None) -> MessagePage:
        """Return one newest-first page of the caller's conversation about ``file_id``.

        Raises:
            NotFoundError: If the document does not exist or belongs to someone else.
        """
        if await self._documents.do_get_for_owner(file_id, user_id) is None:
            raise NotFoundError(f"File '{file_id}' not found.")
        return await self._messages.do_fetch_page(file_id, limit, cursor)
