from __future__ import annotations

import logging
from pathlib import Path

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from vortex_chat.agents.messages import extract_text
from vortex_chat.agents.prompts import TITLE_PROMPT
from vortex_chat.api.schemas.chat import REASONING_MODEL_ID, UserMessagePayload
from vortex_chat.core.settings import Settings

logger = logging.getLogger(__name__)

_MOCK_MESSAGE_DELIMITER = "\n\n--- message ---\n\n"
MAX_TITLE_CHARS = 80


def _load_mock_messages(messages_file: str) -> list[str]:
    path = Path(messages_file)
    raw_content = path.read_text(encoding="utf-8")
    parsed_messages = [chunk.strip() for chunk in raw_content.split(_MOCK_MESSAGE_DELIMITER)]
    messages = [message for message in parsed_messages if message]
    if not messages:
        raise ValueError(
            f"No mock messages found in {path}. Use delimiter {_MOCK_MESSAGE_DELIMITER!r} between messages."
        )
    return messages


class ChatModelFactory:
    """Builds language-model backends for a model selector."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def supports_tools(self) -> bool:
        return not self._settings.chat_use_mock

    def _model_name(self, selected_chat_model: str) -> str:
        if selected_chat_model == REASONING_MODEL_ID:
            return self._settings.reasoning_model
        if selected_chat_model == "title-model":
            return self._settings.title_model
        return self._settings.chat_model

    def build(self, selected_chat_model: str) -> BaseChatModel:
        if self._settings.chat_use_mock:
            fake_responses = _load_mock_messages(messages_file=self._settings.chat_mock_messages_file)
            logger.info("using FakeListChatModel", extra={"responses_count": len(fake_responses)})
            return FakeListChatModel(responses=fake_responses)

        model_name = self._model_name(selected_chat_model)
        logger.debug("using OpenAI-compatible model", extra={"model_name": model_name, "selector": selected_chat_model})
        options: dict[str, object] = {}
        if self._settings.model_provider_base_url:
            options["base_url"] = self._settings.model_provider_base_url
        if self._settings.model_provider_api_key:
            options["api_key"] = self._settings.model_provider_api_key
        if selected_chat_model != REASONING_MODEL_ID:
            # Reasoning models reject a custom temperature.
            options["temperature"] = self._settings.model_temperature
        return ChatOpenAI(
            model=model_name,
            streaming=True,
            **options,
        )


class TitleGenerator:
    """Generates a short chat title from the first user message."""

    def __init__(self, model_factory: ChatModelFactory) -> None:
        self._model_factory = model_factory

    async def generate(self, message: UserMessagePayload) -> str:
        fallback = message.content.strip()[:MAX_TITLE_CHARS]
        try:
            model = self._model_factory.build("title-model")
            response = await model.ainvoke(
                [
                    SystemMessage(content=TITLE_PROMPT.strip()),
                    HumanMessage(content=message.model_dump_json(include={"content", "parts"})),
                ]
            )
        except Exception:
            logger.exception("title generation failed; using message text")
            return fallback

        title = extract_text(response.content).strip().strip('"').replace(":", "")
        return title[:MAX_TITLE_CHARS] or fallback
