"""Message models carried through the broker.

Typed publications are addressed by the exact class of the message, so
``BroadcastMessage[str]`` and ``BroadcastMessage[SimpleContent]`` are two
independent topics.  Parametrised pydantic generics are cached, which keeps
``BroadcastMessage[str]`` the same class object between subscribe and publish.
"""

from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

TContent = TypeVar("TContent")


class MessageBase(BaseModel, Generic[TContent]):
    """Base class for typed messages that carry a single content object."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    content: TContent

    def get_content(self) -> TContent:
        return self.content


class BroadcastMessage(MessageBase[TContent], Generic[TContent]):
    """Ready-made message for content that needs no dedicated message class.

    ``BroadcastMessage[str]("Test")`` and ``BroadcastMessage[str](content="Test")``
    are equivalent.
    """

    def __init__(self, content: Any, **data: Any) -> None:
        super().__init__(content=content, **data)


class DeliveryFault(BaseModel):
    """Describes one subscriber that failed during a publication."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    subscription_id: str
    topic: Any
    stage: Literal["condition", "callback"]
    error_type: str
    message: str
    error: Optional[BaseException] = Field(default=None, exclude=True, repr=False)

    @classmethod
    def from_exception(cls, subscription_id: str, topic: Any, stage: str, exc: BaseException) -> "DeliveryFault":
        return cls(
            subscription_id=subscription_id,
            topic=topic,
            stage=stage,
            error_type=type(exc).__name__,
            message=str(exc),
            error=exc,
        )
