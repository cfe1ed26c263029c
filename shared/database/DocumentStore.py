from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from shared.database.DatabaseManager import DatabaseManager
from shared.database.orm import DocumentRow
from shared.models.document import Document, UploadStatus


class DocumentStore:
    """Persistence of Document rows. Status changes are the only mutation."""

    def __init__(self, database: DatabaseManager) -> None:
        self._database = database
        self.logging = database.logging

    ##########################################
    ################ READ ####################
    ##########################################

    async def do_get(self, document_id: str) -> Document | None:
        async with self._database.session() as session:
            row = await session.get(DocumentRow, document_id)
            return Document.model_validate(row) if row else None

    async def do_get_by_key(self, key: str) -> Document | None:
        async with self._database.session() as session:
            row = await session.scalar(select(DocumentRow).where(DocumentRow.key == key))
            return Document.model_validate(row) if row else None

    async def do_get_for_owner(self, document_id: str, owner_id: str) -> Document | None:
        """Return the document only if it belongs to ``owner_id``."""
        async with self._database.session() as session:
            row = await session.scalar(
                select(DocumentRow).where(DocumentRow.id == document_id, DocumentRow.owner_id == owner_id)
            )
            return Document.model_validate(row) if row else None

    async def do_list_for_owner(self, owner_id: str) -> list[Document]:
        async with self._database.session() as session:
            rows = await session.scalars(
                select(DocumentRow).where(DocumentRow.owner_id == owner_id).order_by(DocumentRow.created_at.desc())
            )
            return [Document.model_validate(row) for row in rows]

    ##########################################
    ################ WRITE ###################
    ##########################################

    async def do_create(self, key: str, name: str, url: str, owner_id: str, status: UploadStatus) -> Document | None:
        """Insert a document row.

        Returns:
            Document | None: The new document, or None if a row with this key
                exists already (the unique constraint settles concurrent inserts).
        """
        async with self._database.session() as session:
            row = DocumentRow(key=key, name=name, url=url, owner_id=owner_id, upload_status=status.value)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                self.logging.info("Document with key '%s' exists already, insert skipped.", key)
                return None
            return Document.model_validate(row)

    async def do_set_status(self, document_id: str, status: UploadStatus) -> Document:
        """Move a document to ``status`` if the transition is allowed.

        The check and the write are one conditional UPDATE, so two callers
        cannot both win the same transition.

        Raises:
            ValueError: If the document is unknown or the transition is not allowed.
        """
        sources = [s.value for s in UploadStatus if s.can_transition_to(status)]
        async with self._database.session() as session:
            result = await session.execute(
                update(DocumentRow)
                .where(DocumentRow.id == document_id, DocumentRow.upload_status.in_(sources))
                .values(upload_status=status.value)
            )
            await session.commit()

        document = await self.do_get(document_id)
        if document is None:
            raise ValueError(f"Document '{document_id}' does not exist.")
        if result.rowcount == 0:
            raise ValueError(
                f"Document '{document_id}' cannot move from {document.upload_status.value} to {status.value}."
            )
        self.logging.info("Document %s is now %s.", document_id, status.value)
        return document
