from sqlalchemy import and_, or_, select

from shared.database.DatabaseManager import DatabaseManager
from shared.database.orm import MessageRow
from shared.models.message import Message, MessagePage


class MessageStore:
    """Append-only conversation log per document."""

    def __init__(self, database: DatabaseManager) -> None:
        self._database = database
        self.logging = database.logging

    async def do_append(self, file_id: str, user_id: str, text: str, is_user_message: bool) -> Message:
        async with self._database.session() as session:
            row = MessageRow(file_id=file_id, user_id=user_id, text=text, is_user_message=is_user_message)
            session.add(row)
            await session.commit()
            self.logging.debug("Appended %s message %s to file %s.", "user" if is_user_message else "assistant", row.id, file_id)
            return Message.model_validate(row)

    async def do_fetch_recent(self, file_id: str, limit: int, exclude_id: str | None = None) -> list[Message]:
        """Return the newest ``limit`` messages of a file, oldest first.

        Args:
            file_id (str): Document the conversation belongs to.
            limit (int): Maximum number of messages.
            exclude_id (str | None): Message to leave out, typically the question being answered.
        """
        query = select(MessageRow).where(MessageRow.file_id == file_id)
        if exclude_id:
            query = query.where(MessageRow.id != exclude_id)
        query = query.order_by(MessageRow.created_at.desc(), MessageRow.seq.desc()).limit(limit)
        async with self._database.session() as session:
            rows = list(await session.scalars(query))
        rows.reverse()
        return [Message.model_validate(row) for row in rows]

    async def do_fetch_page(self, file_id: str, limit: int, cursor: str | None = None) -> MessagePage:
        """Return one newest-first page of a file's messages.

        One extra row is read to find out whether an older page exists; its id
        becomes ``next_cursor``. A cursor that does not belong to the file yields
        an empty page.
        """
        async with self._database.session() as session:
            query = select(MessageRow).where(MessageRow.file_id == file_id)
            if cursor:
                anchor = await session.scalar(
                    select(MessageRow).where(MessageRow.id == cursor, MessageRow.file_id == file_id)
                )
                if anchor is None:
                    return MessagePage()
                query = query.where(
                    or_(
                        MessageRow.created_at < anchor.created_at,
                        and_(MessageRow.created_at == anchor.created_at, MessageRow.seq <= anchor.seq),
                    )
                )
            query = query.order_by(MessageRow.created_at.desc(), MessageRow.seq.desc()).limit(limit + 1)
            rows = list(await session.scalars(query))

        next_cursor = None
        if len(rows) > limit:
            next_cursor = rows.pop().id
        return MessagePage(messages=[Message.model_validate(row) for row in rows], next_cursor=next_cursor)
