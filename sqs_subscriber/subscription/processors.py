"""Ready-made message processors."""

from __future__ import annotations

import inspect
import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, ClassVar

from pydantic import BaseModel, ValidationError

from sqs_subscriber.subscription.models import Failure, MessageEnvelope, ProcessingOutcome, Success


class FunctionProcessor:
    """Adapt a plain (sync or async) callable to the processor interface.

    Return values that are not a :class:`Success` or :class:`Failure` are wrapped
    in :class:`Success`.
    """

    def __init__(self, func: Callable[[MessageEnvelope], Any]) -> None:
        self.func = func

    async def process(self, envelope: MessageEnvelope) -> ProcessingOutcome:
        result = self.func(envelope)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, Success | Failure):
            return result
        return Success(result)


class JsonProcessor(ABC):
    """Processor for JSON message bodies validated against a pydantic model.

    Subclasses set ``schema`` and implement :meth:`process_json`. Bodies that are not
    valid JSON, or that do not match the schema, fail without reaching
    :meth:`process_json`; the failure detail lists what was wrong.
    """

    schema: ClassVar[type[BaseModel]]

    async def process(self, envelope: MessageEnvelope) -> ProcessingOutcome:
        body = envelope.body
        if isinstance(body, str | bytes):
            try:
                body = json.loads(body)
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                return Failure({"reason": "invalid-json", "detail": str(exc)})
        try:
            document = self.schema.model_validate(body)
        except ValidationError as exc:
            return Failure(
                {
                    "reason": "schema-validation",
                    "errors": [
                        {"location": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                        for error in exc.errors()
                    ],
                }
            )
        return await self.process_json(document, envelope)

    @abstractmethod
    async def process_json(self, document: Any, envelope: MessageEnvelope) -> ProcessingOutcome:
        """Process a validated document."""
