# deptree/interaction/controller.py
import logging
import time
from typing import Callable, Optional

from deptree.config import SPRING_BACK_MS, SVG_CONFIG, RenderOptions
from deptree.core.data_structures import TokenId
from deptree.core.events import ClickEvent, DropEvent, EventBus
from deptree.core.interfaces import DrawingSurface, PointerEvent, SurfaceElement
from deptree.layout.engine import RenderedToken
from deptree.layout.geometry import arc_path, arrowhead_path

logger = logging.getLogger(__name__)

# Смещение "призрака" относительно курсора
GHOST_OFFSET_X = 15
GHOST_OFFSET_Y = 30
# Высота вершины кривой предпросмотра над (или под) курсором
PREVIEW_ARC_OFFSET = 40

DRAG_LABEL = "FORM"
HOVER_CLASS = "glossy"


class InteractionError(RuntimeError):
    """Нарушен протокол перетаскивания (например, второе перетаскивание одновременно)."""


class InteractionSession:
    """
    Общее состояние перетаскивания для одного отрисованного дерева:
    какой токен тащат и над каким токеном сейчас курсор.
    """

    def __init__(self):
        self.dragged: Optional[TokenId] = None
        self.hovered: Optional[TokenId] = None
        self._hovered_element: Optional[SurfaceElement] = None

    @property
    def is_dragging(self) -> bool:
        return self.dragged is not None

    def begin(self, token_id: TokenId):
        if self.dragged is not None:
            raise InteractionError(f"Token {self.dragged} is already being dragged, cannot start {token_id}")
        self.dragged = token_id
        self.hovered = None
        self._hovered_element = None

    def hover(self, token_id: TokenId, element: SurfaceElement) -> bool:
        """Возвращает True, если наведение засчитано (идет перетаскивание другого токена)."""
        if self.dragged is None or token_id == self.dragged:
            return False
        element.add_class(HOVER_CLASS)
        self.hovered = token_id
        self._hovered_element = element
        return True

    def unhover(self, token_id: TokenId, element: SurfaceElement) -> bool:
        if self.dragged is None or token_id == self.dragged:
            return False
        element.remove_class(HOVER_CLASS)
        self.hovered = None
        self._hovered_element = None
        return True

    def end(self) -> Optional[TokenId]:
        """Завершает сессию; возвращает id токена, над которым отпустили (если был)."""
        hovered = self.hovered
        if self._hovered_element is not None:
            self._hovered_element.remove_class(HOVER_CLASS)
        self.dragged = None
        self.hovered = None
        self._hovered_element = None
        return hovered


class DragController:
    """
    Конечный автомат одного токена: Idle -> Dragging -> Idle.
    Короткое нажатие (меньше dragclickthreshold) - клик, иначе - сброс (drop).
    Дерево не изменяется: перенос вершины выполняет получатель DropEvent.
    """

    def __init__(
            self,
            rendered: RenderedToken,
            session: InteractionSession,
            surface: DrawingSurface,
            bus: EventBus,
            options: RenderOptions,
            clock: Callable[[], float] = time.monotonic,
    ):
        self.rendered = rendered
        self.session = session
        self.surface = surface
        self.bus = bus
        self.options = options
        self.clock = clock

        self.label = rendered.elements[DRAG_LABEL]
        self.drag_click_time: Optional[float] = None
        self.x_box_center = 0.0
        self.y_box_upper = 0.0

        self.ghost: Optional[SurfaceElement] = None
        self.curve: Optional[SurfaceElement] = None
        self.arrowhead: Optional[SurfaceElement] = None
        self.root_circle: Optional[SurfaceElement] = None

    @property
    def token_id(self) -> TokenId:
        return self.rendered.id

    @property
    def is_dragging(self) -> bool:
        return self.drag_click_time is not None

    def attach(self):
        self.label.on_drag(self.pointer_move, self.pointer_down, self.pointer_up)
        self.label.on_hover(self.pointer_enter, self.pointer_leave)

    # --- Idle -> Dragging ---

    def pointer_down(self):
        self.session.begin(self.token_id)
        self.drag_click_time = self.clock()

        # Копия метки, которая следует за курсором и удаляется после отпускания
        self.ghost = self.label.clone()
        self.ghost.attr(cursor="move")
        self.x_box_center = self.rendered.center_x
        self.y_box_upper = self.label.bbox().y

        # Пустой путь, который обновляется при движении
        self.curve = self.surface.path("").add_class("dragcurve")
        self.arrowhead = self.surface.path(
            arrowhead_path(self.x_box_center, self.y_box_upper)
        ).add_class("dragarrowhead")
        self._remove_root_circle()

    # --- Dragging ---

    def pointer_move(self, dx: float, dy: float):
        if not self.is_dragging:
            logger.debug(f"pointer_move on token {self.token_id} without pointer_down, ignored")
            return

        self.ghost.transform(f"translate({dx - GHOST_OFFSET_X},{dy - GHOST_OFFSET_Y})")
        self.ghost.add_class(HOVER_CLASS)

        xb = self.x_box_center
        yb = self.y_box_upper
        xa = xb + dx
        ya = yb + dy

        # Если курсор заметно ниже токенов, дуга рисуется под ними
        y_offset = -PREVIEW_ARC_OFFSET
        if dy > SVG_CONFIG["reverseArcThreshold"]:
            y_offset = PREVIEW_ARC_OFFSET
        y_top = max(0, ya + y_offset)

        self.curve.attr(d=arc_path(xb, xa, yb, ya, y_top))
        self.arrowhead.transform(f"translate({dx},{dy})")

        if self.in_root_zone(dx, dy):
            if self.root_circle is None:
                half = self.options.arc_height / 2
                self.root_circle = self.surface.circle(xb, 0, half).add_class("dragcurve")
        else:
            self._remove_root_circle()

    def in_root_zone(self, dx: float, dy: float) -> bool:
        half = self.options.arc_height / 2
        return self.y_box_upper + dy < half and abs(dx) < half

    # --- Dragging -> Idle ---

    def pointer_up(self, event: Optional[PointerEvent] = None):
        if not self.is_dragging:
            logger.debug(f"pointer_up on token {self.token_id} without pointer_down, ignored")
            return

        elapsed_ms = (self.clock() - self.drag_click_time) * 1000
        is_root = self.root_circle is not None
        hovered = self.session.end()

        try:
            if elapsed_ms < SVG_CONFIG["dragclickthreshold"]:
                self.bus.publish(ClickEvent(clicked=self.token_id, target_label=DRAG_LABEL))
            else:
                if event is not None:
                    event.prevent_default()
                    event.stop_propagation()
                self.bus.publish(DropEvent(dragged=self.token_id, hovered=hovered, is_root=is_root))
        finally:
            self._release()

    def cancel(self):
        """Прерывает перетаскивание без уведомлений (например, при перерисовке дерева)."""
        if not self.is_dragging:
            return
        logger.debug(f"Drag of token {self.token_id} cancelled")
        self.drag_click_time = None
        for element in (self.ghost, self.curve, self.arrowhead):
            if element is not None:
                element.remove()
        self.ghost = None
        self.curve = None
        self.arrowhead = None
        self._remove_root_circle()

    def _release(self):
        # Перерисовка во время уведомления уже отменила перетаскивание
        if not self.is_dragging:
            return
        self.drag_click_time = None

        ghost = self.ghost
        self.ghost = None
        ghost.animate({"transform": "translate(0,0)"}, SPRING_BACK_MS, ghost.remove)

        self.curve.remove()
        self.arrowhead.remove()
        self.curve = None
        self.arrowhead = None
        self._remove_root_circle()

    def _remove_root_circle(self):
        if self.root_circle is not None:
            self.root_circle.remove()
            self.root_circle = None

    # --- Наведение ---

    def pointer_enter(self):
        self.session.hover(self.token_id, self.label)

    def pointer_leave(self):
        self.session.unhover(self.token_id, self.label)


def attach_click(rendered: RenderedToken, label: str, element: SurfaceElement, bus: EventBus):
    """Клик по любой метке токена, кроме FORM (ее клики приходят через DragController)."""
    def on_click():
        bus.publish(ClickEvent(clicked=rendered.id, target_label=label))

    element.on_click(on_click)
