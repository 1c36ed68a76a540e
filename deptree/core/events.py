# deptree/core/events.py
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Type, Union

from deptree.core.data_structures import Tree, TokenId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClickEvent:
    clicked: TokenId
    target_label: str


@dataclass(frozen=True)
class DropEvent:
    dragged: TokenId
    hovered: Optional[TokenId]
    is_root: bool


@dataclass(frozen=True)
class TreeUpdatedEvent:
    tree: Tree


Event = Union[ClickEvent, DropEvent, TreeUpdatedEvent]

EVENT_TYPES = (ClickEvent, DropEvent, TreeUpdatedEvent)


class EventBus:
    """
    Закрытая шина уведомлений: ровно три типа событий с фиксированной структурой.
    Обработчики вызываются синхронно в порядке подписки.
    """

    def __init__(self):
        self._handlers: Dict[Type, List[Callable]] = {event_type: [] for event_type in EVENT_TYPES}

    def subscribe(self, event_type: Type, handler: Callable[[Event], None]):
        if event_type not in self._handlers:
            raise TypeError(f"Unknown event type: {event_type!r}")
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: Type, handler: Callable[[Event], None]):
        if event_type not in self._handlers:
            raise TypeError(f"Unknown event type: {event_type!r}")
        if handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)

    def publish(self, event: Event):
        event_type = type(event)
        if event_type not in self._handlers:
            raise TypeError(f"Unknown event: {event!r}")

        logger.debug(f"Publishing {event_type.__name__}")
        for handler in list(self._handlers[event_type]):
            handler(event)
