"""Services — FileService, ParsingService, LLM clients, response parsing."""

from prd_automation.services.file_service import FileService
from prd_automation.services.parsing_service import ParsingService
from prd_automation.services.llm_service import (
    GroqChatClient,
    LLMClient,
    MockChatClient,
    get_llm_client,
)

__all__ = [
    "FileService",
    "ParsingService",
    "GroqChatClient",
    "LLMClient",
    "MockChatClient",
    "get_llm_client",
]
