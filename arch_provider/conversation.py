# arch_provider/conversation.py

import logging
from typing import Optional, Protocol, Sequence

from langchain_community.chat_message_histories import ChatMessageHistory
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from arch_provider.architecture_prompts import PREVIOUS_REPLY, SEED, PromptFamily
from arch_provider.base_utils import BaseUtils
from arch_provider.cancellation import CancellationToken

logger = logging.getLogger("arch_provider")


class ChatModel(Protocol):
    def invoke(self, messages: Sequence[BaseMessage]) -> str:
        ...


class ConversationDriver(BaseUtils):
    """
    Runs one prompt family as a multi-turn exchange and returns the last reply.

    The history lives only for the duration of run(); two drivers (or two
    runs of the same driver) never share messages. No retries here: whatever
    the chat model raises reaches the caller as-is.
    """

    def __init__(self, chat_llm: ChatModel, label: str = "conversation"):
        self.chat_llm = chat_llm
        self.label = label

    def _stage_text(self, stage, seed_text: str, previous_reply: Optional[str]) -> str:
        if stage.fills_with == SEED:
            return self.unsafe_string_format(stage.text, content=seed_text)
        if stage.fills_with == PREVIOUS_REPLY:
            return self.unsafe_string_format(stage.text, content=previous_reply or "")
        return stage.text

    def _round_trip(self, history: ChatMessageHistory, text: str, token: CancellationToken, stage_idx: int) -> str:
        token.raise_if_cancelled(f"{self.label} stage {stage_idx}")
        history.add_message(HumanMessage(content=text))

        reply = self.chat_llm.invoke(list(history.messages))

        token.raise_if_cancelled(f"{self.label} stage {stage_idx}")
        history.add_message(AIMessage(content=reply))
        return reply

    def run(self, family: PromptFamily, seed_text: str, token: Optional[CancellationToken] = None) -> str:
        token = token or CancellationToken()
        history = ChatMessageHistory()

        previous_reply: Optional[str] = None
        for idx, stage in enumerate(family):
            text = self._stage_text(stage, seed_text, previous_reply)
            previous_reply = self._round_trip(history, text, token, idx)
            if idx == 0:
                logger.info(f"[{self.label}] Initial Response:\n{previous_reply}")
            else:
                logger.info(f"[{self.label}] Response (stage {idx}):\n{previous_reply}")

        last = history.messages[-1]
        return str(last.content)
