from agent_dispatch.agent.capabilities import CALENDAR_PROMPT, EMAIL_PROMPT, TRAVEL_PROMPT
from agent_dispatch.agent.triggers import _CLASSIFIER_PROMPT, ClassifierTrigger
from agent_dispatch.types import Request


def test_specialist_prompts_describe_their_domain() -> None:
    assert "travel" in TRAVEL_PROMPT.lower()
    assert "calendar" in CALENDAR_PROMPT.lower()
    assert "email" in EMAIL_PROMPT.lower()


def test_classifier_prompt_demands_single_word_answer() -> None:
    assert "YES or NO" in _CLASSIFIER_PROMPT
    assert "{name}" in _CLASSIFIER_PROMPT
    assert "{description}" in _CLASSIFIER_PROMPT


class _RecordingModel:
    def __init__(self) -> None:
        self.messages = None

    def invoke(self, messages):
        self.messages = messages
        return "no"


def test_classifier_fills_specialist_details() -> None:
    model = _RecordingModel()
    trigger = ClassifierTrigger(llm=model, name="travel", description="Book flights.")

    assert trigger.matches(Request(text="hi")) is False
    system, human = model.messages
    assert "Specialist: travel" in system.content
    assert "Responsibilities: Book flights." in system.content
    assert human.content == "hi"
