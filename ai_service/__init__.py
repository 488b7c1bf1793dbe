"""Typed service methods on top of a chat model.

A service is described by a table of `MethodSpec` entries. Each method renders
its prompt templates, appends a format instruction derived from its return
type, optionally checks the outbound text with a moderation model, calls the
chat model and parses the answer back into the declared type.

Example:
    from ai_service import MethodSpec, create_service
    from ai_service import types as t

    counter = create_service(
        chat_model,
        [
            MethodSpec(
                "count",
                returns=t.INT,
                user_message="Count the number of eggs mentioned in this sentence:\\n|||{{it}}|||",
                params=("sentence",),
            ),
        ],
    )
    eggs = await counter.count("I have ten eggs in my basket and three in my pocket.")

"""

from ai_service import types
from ai_service.dispatcher import Dispatcher, MethodSpec, Param
from ai_service.errors import (
    AIServiceError,
    ConfigurationError,
    ModerationError,
    Ok,
    Outcome,
    ParseError,
    unwrap,
)
from ai_service.instructions import format_instruction
from ai_service.memory import ChatMemory, MessageWindowChatMemory
from ai_service.models import (
    ChatRequest,
    ChatResponse,
    Message,
    Moderation,
    Result,
    Source,
    TokenUsage,
)
from ai_service.parsing import parse_response
from ai_service.request import RequestTransformer, user_message_transformer
from ai_service.service import Service, create_service
from ai_service.services import ChatModel, ModerationModel
from ai_service.templates import (
    ChainedResourceLoader,
    DirectoryResourceLoader,
    PackageResourceLoader,
    TemplateSpec,
    structured_prompt,
)

__all__ = [
    "AIServiceError",
    "ChainedResourceLoader",
    "ChatMemory",
    "ChatModel",
    "ChatRequest",
    "ChatResponse",
    "ConfigurationError",
    "DirectoryResourceLoader",
    "Dispatcher",
    "Message",
    "MessageWindowChatMemory",
    "MethodSpec",
    "Moderation",
    "ModerationError",
    "ModerationModel",
    "Ok",
    "Outcome",
    "PackageResourceLoader",
    "Param",
    "ParseError",
    "RequestTransformer",
    "Result",
    "Service",
    "Source",
    "TemplateSpec",
    "TokenUsage",
    "create_service",
    "format_instruction",
    "parse_response",
    "structured_prompt",
    "types",
    "unwrap",
    "user_message_transformer",
]
