from datetime import datetime, timezone

from services.retrieval.PromptAssembler import SYSTEM_INSTRUCTIONS, PromptAssembler
from shared.models.message import ChatTurn, Message


def test_prompt_layout():
    history = [ChatTurn(role="user", content="Hi"), ChatTurn(role="assistant", content="Hello!")]
    prompt = PromptAssembler.render(history, ["first excerpt", "second excerpt"], "What now?")

    assert prompt.startswith(f"System message:\n{SYSTEM_INSTRUCTIONS}")
    assert "PREVIOUS CONVERSATION:\nUser: Hi\nAssistant: Hello!" in prompt
    assert "CONTEXT:\nfirst excerpt\n\nsecond excerpt" in prompt
    assert prompt.endswith("USER INPUT: What now?")
    assert prompt.index("PREVIOUS CONVERSATION") < prompt.index("CONTEXT") < prompt.index("USER INPUT")


def test_rendering_is_deterministic():
    args = ([ChatTurn(role="user", content="a")], ["ctx"], "q")
    assert PromptAssembler.render(*args) == PromptAssembler.render(*args)


def test_messages_map_to_roles():
    now = datetime.now(timezone.utc)
    turns = PromptAssembler.to_turns(
        [
            Message(id="1", text="question", is_user_message=True, created_at=now),
            Message(id="2", text="answer", is_user_message=False, created_at=now),
        ]
    )
    assert [(t.role, t.content) for t in turns] == [("user", "question"), ("assistant", "answer")]
