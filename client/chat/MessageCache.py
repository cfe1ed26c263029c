import uuid
from datetime import datetime, timezone

from shared.models.message import SENTINEL_MESSAGE_ID, Message, MessagePage


class MessageCache:
    """Client-side copy of a file's paginated, newest-first message list.

    ``pages[0]`` holds the newest messages; optimistic writes go to its head.
    """

    def __init__(self, pages: list[MessagePage] | None = None) -> None:
        self._pages: list[MessagePage] = list(pages or [])

    @property
    def pages(self) -> list[MessagePage]:
        return self._pages

    def messages(self) -> list[Message]:
        """All cached messages, newest first."""
        return [message for page in self._pages for message in page.messages]

    def snapshot(self) -> list[MessagePage]:
        """Deep copy of the cached pages, unaffected by later writes."""
        return [page.model_copy(deep=True) for page in self._pages]

    def restore(self, snapshot: list[MessagePage]) -> None:
        self._pages = [page.model_copy(deep=True) for page in snapshot]

    def replace(self, pages: list[MessagePage]) -> None:
        self._pages = list(pages)

    def append_page(self, page: MessagePage) -> None:
        self._pages.append(page)

    def prepend_to_first_page(self, message: Message) -> None:
        if not self._pages:
            self._pages.append(MessagePage())
        self._pages[0].messages.insert(0, message)

    def find(self, message_id: str) -> Message | None:
        for message in self.messages():
            if message.id == message_id:
                return message
        return None

    def retire_sentinel(self) -> None:
        """Give a leftover in-progress assistant message a placeholder id of its own.

        Keeps an unrefreshed earlier answer from being taken over by the next one.
        """
        for message in self.messages():
            if message.id == SENTINEL_MESSAGE_ID:
                message.id = str(uuid.uuid4())

    def upsert_sentinel(self, text: str) -> Message:
        """Create or update the in-progress assistant message.

        The first call puts it at the head of the first page, later calls only
        replace its text. There is never more than one.
        """
        sentinel = self.find(SENTINEL_MESSAGE_ID)
        if sentinel is not None:
            sentinel.text = text
            return sentinel
        sentinel = Message(
            id=SENTINEL_MESSAGE_ID,
            text=text,
            is_user_message=False,
            created_at=datetime.now(timezone.utc),
        )
        self.prepend_to_first_page(sentinel)
        return sentinel
