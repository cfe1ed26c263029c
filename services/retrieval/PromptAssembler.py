"""Prompt assembly for answers grounded in a document's retrieved excerpts."""

from shared.models.message import ChatTurn, Message

SYSTEM_INSTRUCTIONS = (
    "Use the following pieces of context (or previous conversation if needed) to answer the users question "
    "in markdown format.\nIf you don't know the answer, just say that you don't know, don't try to make up an answer."
)
SEPARATOR = "----------------"


class PromptAssembler:
    """Renders system instructions, prior turns, retrieved context and the question into one prompt.

    Rendering is deterministic: equal inputs always give the identical string.
    """

    @staticmethod
    def to_turns(messages: list[Message]) -> list[ChatTurn]:
        return [
            ChatTurn(role="user" if message.is_user_message else "assistant", content=message.text)
            for message in messages
        ]

    @staticmethod
    def render(history: list[ChatTurn], context: list[str], question: str) -> str:
        """Build the completion prompt.

        Args:
            history (list[ChatTurn]): Prior turns, oldest first.
            context (list[str]): Retrieved excerpts, most similar first.
            question (str): The question to answer.

        Returns:
            str: The prompt. Empty history or context leave their section empty.
        """
        conversation = "\n".join(
            f"{'User' if turn.role == 'user' else 'Assistant'}: {turn.content}" for turn in history
        )
        sections = [
            f"System message:\n{SYSTEM_INSTRUCTIONS}",
            SEPARATOR,
            f"PREVIOUS CONVERSATION:\n{conversation}",
            SEPARATOR,
            "CONTEXT:\n" + "\n\n".join(context),
            f"USER INPUT: {question}",
        ]
        return "\n\n".join(sections)
