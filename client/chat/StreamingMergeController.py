"""Optimistic merge of a streaming answer into the cached message list.

On submit the question appears at once, the answer grows in place as its
increments arrive, and a failed stream rolls the cache and the input field
back to exactly where they were. Afterwards the authoritative list is
refetched in the background so placeholder ids are replaced by stored ones.
"""

import asyncio
import uuid
from contextlib import aclosing, suppress
from datetime import datetime, timezone

from client.api.ChatApiClient import ChatApiClient
from client.chat.ChatSession import ChatSession
from client.chat.StreamFrameDecoder import StreamFrameDecoder
from shared.errors import DocChatError
from shared.helper.HelperConfig import HelperConfig
from shared.models.message import Message, MessagePage

MESSAGES_PAGE_SIZE = 10


class StreamingMergeController:
    def __init__(self, helper_config: HelperConfig, api_client: ChatApiClient) -> None:
        self.logging = helper_config.get_logger()
        self._api_client = api_client
        self.page_size = helper_config.get_positive_int_val("MESSAGES_PAGE_SIZE", default=MESSAGES_PAGE_SIZE)

    ##########################################
    ################ SUBMIT ##################
    ##########################################

    async def do_submit(self, session: ChatSession) -> bool:
        """Send the session's input and merge the streamed answer into its cache.

        Args:
            session (ChatSession): The chat to submit in; modified in place.

        Returns:
            bool: True if the answer was received completely. On False the
                cache equals its pre-submit state, the input is restored and
                ``session.last_error`` holds the cause.
        """
        message = session.input_text
        if not message.strip():
            return False

        session.backup_text = message
        session.input_text = ""
        session.last_error = None
        await self.cancel_refresh(session)

        snapshot = session.cache.snapshot()
        session.cache.retire_sentinel()
        session.cache.prepend_to_first_page(
            Message(
                id=str(uuid.uuid4()),
                text=message,
                is_user_message=True,
                file_id=session.file_id,
                created_at=datetime.now(timezone.utc),
            )
        )
        session.is_loading = True

        try:
            await self._merge_stream(session, message)
            return True
        except DocChatError as e:
            self.logging.warning("Sending message for file %s failed, rolling back: %s", session.file_id, e.message)
            self._rollback(session, snapshot)
            session.last_error = e
            return False
        except asyncio.CancelledError:
            self._rollback(session, snapshot)
            raise
        finally:
            session.is_loading = False
            self.schedule_refresh(session)

    async def _merge_stream(self, session: ChatSession, message: str) -> None:
        decoder = StreamFrameDecoder()
        answer = ""
        async with aclosing(self._api_client.do_stream_message(session.file_id, message)) as stream:
            async for chunk in stream:
                for text in decoder.feed(chunk):
                    answer += text
                    session.cache.upsert_sentinel(answer)
        for text in decoder.flush():
            answer += text
            session.cache.upsert_sentinel(answer)

    @staticmethod
    def _rollback(session: ChatSession, snapshot: list[MessagePage]) -> None:
        session.input_text = session.backup_text
        session.cache.restore(snapshot)

    ##########################################
    ################ REFRESH #################
    ##########################################

    async def do_load(self, session: ChatSession) -> None:
        """Replace the cache with the newest page."""
        page = await self._api_client.do_fetch_messages(session.file_id, self.page_size)
        session.cache.replace([page])

    async def do_load_more(self, session: ChatSession) -> bool:
        """Append the next older page. Returns False if there is none."""
        pages = session.cache.pages
        cursor = pages[-1].next_cursor if pages else None
        if pages and cursor is None:
            return False
        page = await self._api_client.do_fetch_messages(session.file_id, self.page_size, cursor)
        session.cache.append_page(page)
        return True

    async def do_refresh(self, session: ChatSession) -> None:
        """Refetch as many pages as are cached and replace the cache with them."""
        wanted = max(len(session.cache.pages), 1)
        pages: list[MessagePage] = []
        cursor: str | None = None
        for _ in range(wanted):
            page = await self._api_client.do_fetch_messages(session.file_id, self.page_size, cursor)
            pages.append(page)
            cursor = page.next_cursor
            if cursor is None:
                break
        session.cache.replace(pages)

    def schedule_refresh(self, session: ChatSession) -> asyncio.Task:
        """Start a background refresh, replacing one that is still running."""
        if session.refresh_task and not session.refresh_task.done():
            session.refresh_task.cancel()
        session.refresh_task = asyncio.create_task(self._refresh_in_background(session))
        return session.refresh_task

    async def _refresh_in_background(self, session: ChatSession) -> None:
        try:
            await self.do_refresh(session)
        except DocChatError as e:
            self.logging.warning("Refreshing messages of file %s failed: %s", session.file_id, e.message)

    async def cancel_refresh(self, session: ChatSession) -> None:
        """Stop a running background refresh so it cannot overwrite an optimistic write."""
        task = session.refresh_task
        session.refresh_task = None
        if task and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    async def wait_for_refresh(self, session: ChatSession) -> None:
        if session.refresh_task:
            await session.refresh_task
