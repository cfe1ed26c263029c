import asyncio

from pydantic import BaseModel, ConfigDict, Field

from client.chat.MessageCache import MessageCache
from shared.errors import DocChatError


class ChatSession(BaseModel):
    """State of one open chat about one file.

    Attributes:
        file_id:      The file the conversation is about.
        input_text:   Current content of the input field.
        is_loading:   True while an answer is being received.
        backup_text:  Input of the last submit, restored on rollback.
        cache:        Cached message pages.
        last_error:   Error of the last failed submit, if any.
        refresh_task: Background refetch of the cached pages, if running.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    file_id: str
    input_text: str = ""
    is_loading: bool = False
    backup_text: str = ""
    cache: MessageCache = Field(default_factory=MessageCache)
    last_error: DocChatError | None = None
    refresh_task: asyncio.Task | None = None
