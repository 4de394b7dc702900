"""
Dispatcher - Validates invocation requests and routes them to handlers.

Request flow:
    1. Look up the capability id in the registry for the request's kind.
       Unknown ids raise UnknownCapability before anything else happens.
    2. Validate tool/prompt arguments against the declared parameters:
       defaults are applied for omitted optional parameters, then required
       presence, primitive kind and enum membership are checked. Failures
       raise InvalidArguments naming the parameter; the handler never runs.
    3. Run the handler bound to the id.
    4. Wrap the handler's report in an InvocationResult. Collaborator
       failures (missing files, failed subprocesses) become an in-band text
       block; any other exception is a bug and propagates.

The dispatcher keeps no state between requests. It holds the immutable
settings and stateless collaborators only, so concurrent requests on the
same event loop are independent.

License: MIT
"""

import logging
import time
from typing import Mapping, Optional

from .config import Settings
from .content import ContentResolver
from .envelope import ContentBlock, InvocationRequest, InvocationResult, text_result
from .errors import CollaboratorError, InvalidArguments
from .process_runner import ProcessRunner
from .prompts import PROMPT_RENDERERS, PromptRenderer
from .registry import (
    CATALOGUE,
    CapabilityKind,
    ParameterKind,
    PromptDescriptor,
    Registry,
    ToolDescriptor,
)
from .tools import FAILURE_HINTS, TOOL_HANDLERS, HandlerContext, ToolHandler

logger = logging.getLogger(__name__)


# =============================================================================
# ARGUMENT VALIDATION
# =============================================================================

def validate_tool_arguments(descriptor: ToolDescriptor, arguments: Mapping) -> dict:
    """
    Check arguments against a tool's parameters and apply defaults.

    Returns:
        A new dict with every declared parameter that has a value

    Raises:
        InvalidArguments: Unknown name, missing required parameter, wrong
            primitive kind, or enum value outside the declared choices
    """
    declared = {p.name: p for p in descriptor.parameters}
    for name in arguments:
        if name not in declared:
            raise InvalidArguments(descriptor.id, name, "unexpected argument")

    validated = {}
    for param in descriptor.parameters:
        value = arguments.get(param.name)
        if value is None:
            if param.required:
                raise InvalidArguments(descriptor.id, param.name, "required argument missing")
            if param.default is not None:
                validated[param.name] = param.default
            continue

        if param.kind is ParameterKind.BOOLEAN:
            if not isinstance(value, bool):
                raise InvalidArguments(descriptor.id, param.name, f"expected boolean, got {type(value).__name__}")
        else:
            if not isinstance(value, str):
                raise InvalidArguments(descriptor.id, param.name, f"expected string, got {type(value).__name__}")
            if param.kind is ParameterKind.ENUM and value not in param.choices:
                raise InvalidArguments(
                    descriptor.id, param.name,
                    f"'{value}' is not one of {', '.join(param.choices)}",
                )
            if param.required and not value.strip():
                raise InvalidArguments(descriptor.id, param.name, "must not be empty")
        validated[param.name] = value
    return validated


def validate_prompt_arguments(descriptor: PromptDescriptor, arguments: Mapping) -> dict:
    """Prompt arguments are all strings; defaults fill omitted optional ones."""
    declared = {p.name for p in descriptor.parameters}
    for name in arguments:
        if name not in declared:
            raise InvalidArguments(descriptor.id, name, "unexpected argument")

    validated = {}
    for param in descriptor.parameters:
        value = arguments.get(param.name)
        if value is None or value == "":
            if param.required:
                raise InvalidArguments(descriptor.id, param.name, "required argument missing")
            validated[param.name] = param.default
            continue
        if not isinstance(value, str):
            raise InvalidArguments(descriptor.id, param.name, f"expected string, got {type(value).__name__}")
        validated[param.name] = value
    return validated


# =============================================================================
# DISPATCHER
# =============================================================================

class Dispatcher:
    """
    Routes invocation requests to resource, tool and prompt handlers.

    Attributes:
        registry: The capability catalogue (read-only)
        context: Collaborators handed to tool handlers
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Registry = CATALOGUE,
        runner: Optional[ProcessRunner] = None,
        resolver: Optional[ContentResolver] = None,
        tool_handlers: Mapping[str, ToolHandler] = TOOL_HANDLERS,
        prompt_renderers: Mapping[str, PromptRenderer] = PROMPT_RENDERERS,
    ):
        settings = settings or Settings()
        self.registry = registry
        self.context = HandlerContext(
            settings=settings,
            runner=runner or ProcessRunner(),
            resolver=resolver or ContentResolver(settings.project_root),
        )
        self._tool_handlers = dict(tool_handlers)
        self._prompt_renderers = dict(prompt_renderers)

        # Every declared capability must have code behind it
        unbound = [i for i in registry.ids(CapabilityKind.TOOL) if i not in self._tool_handlers]
        unbound += [i for i in registry.ids(CapabilityKind.PROMPT) if i not in self._prompt_renderers]
        if unbound:
            raise ValueError(f"Capabilities without handlers: {', '.join(unbound)}")

    @property
    def settings(self) -> Settings:
        return self.context.settings

    def list(self, kind: CapabilityKind) -> tuple:
        """All descriptors of one kind, in declaration order."""
        logger.debug("Listing %s capabilities", CapabilityKind(kind).value)
        return self.registry.list(kind)

    async def handle(self, request: InvocationRequest) -> InvocationResult:
        """
        Dispatch one request.

        Raises:
            UnknownCapability: The id isn't registered for the request's kind
            InvalidArguments: The arguments don't match the declared shape
        """
        descriptor = self.registry.describe(request.kind, request.capability_id)
        start_time = time.time()

        if request.kind is CapabilityKind.RESOURCE:
            blocks = await self.context.resolver.resolve(descriptor.id)
            result = InvocationResult(blocks=tuple(blocks))
        elif request.kind is CapabilityKind.TOOL:
            arguments = validate_tool_arguments(descriptor, request.arguments)
            result = await self._call_tool(descriptor, arguments)
        else:
            arguments = validate_prompt_arguments(descriptor, request.arguments)
            description, document = self._prompt_renderers[descriptor.id](arguments)
            result = text_result(document, description=description)

        logger.info(
            "%s %s handled in %.1fms",
            request.kind.value, descriptor.id, (time.time() - start_time) * 1000,
        )
        return result

    async def _call_tool(self, descriptor: ToolDescriptor, arguments: dict) -> InvocationResult:
        handler = self._tool_handlers[descriptor.id]
        try:
            report = await handler(self.context, arguments)
        except CollaboratorError as e:
            logger.warning("Tool %s failed: %s", descriptor.id, e)
            return InvocationResult(blocks=(self.failure_block(descriptor, e),))
        return text_result(report)

    @staticmethod
    def failure_block(descriptor: ToolDescriptor, error: CollaboratorError) -> ContentBlock:
        text = f"❌ {descriptor.title} failed: {error}"
        hint = FAILURE_HINTS.get(descriptor.id)
        if hint:
            text += f"\n\n{hint}"
        return ContentBlock(text)
