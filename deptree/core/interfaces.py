# deptree/core/interfaces.py
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class BBox:
    x: float
    y: float
    w: float
    h: float

    @property
    def x2(self) -> float:
        return self.x + self.w

    @property
    def y2(self) -> float:
        return self.y + self.h


@dataclass
class PointerEvent:
    """Событие указателя, у которого можно отменить действие платформы по умолчанию."""
    default_prevented: bool = False
    propagation_stopped: bool = False

    def prevent_default(self):
        self.default_prevented = True

    def stop_propagation(self):
        self.propagation_stopped = True


MoveHandler = Callable[[float, float], None]
StartHandler = Callable[[], None]
EndHandler = Callable[[Optional[PointerEvent]], None]


class SurfaceElement(ABC):
    """Графический примитив поверхности рисования (path, text, circle)."""

    @abstractmethod
    def bbox(self) -> BBox:
        pass

    @abstractmethod
    def attr(self, **attrs) -> "SurfaceElement":
        pass

    @abstractmethod
    def add_class(self, name: str) -> "SurfaceElement":
        pass

    @abstractmethod
    def remove_class(self, name: str) -> "SurfaceElement":
        pass

    @abstractmethod
    def has_class(self, name: str) -> bool:
        pass

    @abstractmethod
    def set_style(self, name: str, value: str) -> "SurfaceElement":
        pass

    @abstractmethod
    def transform(self, value: str) -> "SurfaceElement":
        pass

    @abstractmethod
    def clone(self) -> "SurfaceElement":
        pass

    @abstractmethod
    def remove(self):
        pass

    @abstractmethod
    def animate(self, attrs: dict, duration_ms: int, callback: Optional[Callable[[], None]] = None):
        """Анимация носит косметический характер: реализация может сразу применить attrs."""
        pass

    # --- Привязка обработчиков указателя ---

    @abstractmethod
    def on_click(self, handler: Callable[[], None]):
        pass

    @abstractmethod
    def on_drag(self, on_move: MoveHandler, on_start: StartHandler, on_end: EndHandler):
        pass

    @abstractmethod
    def on_hover(self, on_enter: Callable[[], None], on_leave: Callable[[], None]):
        pass


class DrawingSurface(ABC):
    """
    Внедряемая фабрика примитивов.
    Ядро никогда не обращается к физическому дисплею напрямую.
    """

    @abstractmethod
    def path(self, d: str) -> SurfaceElement:
        pass

    @abstractmethod
    def text(self, x: float, y: float, content: str) -> SurfaceElement:
        pass

    @abstractmethod
    def circle(self, cx: float, cy: float, r: float) -> SurfaceElement:
        pass

    @abstractmethod
    def clear(self):
        pass

    @abstractmethod
    def set_size(self, width: float, height: float):
        pass

    @abstractmethod
    def add_class(self, name: str):
        pass
