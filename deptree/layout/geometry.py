# deptree/layout/geometry.py
import logging
from dataclasses import dataclass
from typing import List, Optional

from deptree.config import SVG_CONFIG, RenderOptions
from deptree.core.data_structures import Head, TokenId
from deptree.core.interfaces import DrawingSurface
from deptree.layout.engine import RenderedToken, find_rendered

logger = logging.getLogger(__name__)

# Подпись корневой дуги: смещение вправо и фиксированная высота
ROOT_LABEL_DX = 20
ROOT_LABEL_Y = 30
# Расстояние от нижней границы меток до начала вторичных дуг
ENHANCED_TOP_MARGIN = 14
ENHANCED_LABEL_DY = 10
ENHANCED_PREFIX = "E:"


@dataclass
class Edge:
    source: TokenId
    target: Head
    path: str
    enhanced: bool = False
    deprel: str = ""


def format_number(value: float) -> str:
    # 10.0 -> "10", 10.25 -> "10.25"
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def arc_path(x_start: float, x_end: float, y_start: float, y_end: float, y_height: float) -> str:
    """
    Кубическая кривая от (x_start, y_start) до (x_end, y_end),
    обе контрольные точки на высоте y_height.
    """
    return (
        f"M{format_number(x_start)},{format_number(y_start)}"
        f" C{format_number(x_start)},{format_number(y_height)}"
        f" {format_number(x_end)},{format_number(y_height)}"
        f" {format_number(x_end)},{format_number(y_end)}"
    )


def root_arc_path(x: float, y: float) -> str:
    """Корневая связь - всегда вертикальный отрезок до y = 0."""
    return f"M{format_number(x)},{format_number(y)} L{format_number(x)},0"


def arrowhead_path(x: float, y: float) -> str:
    """
    Наконечник стрелки из двух дуг; (x, y) - острие, стрелка смотрит вверх.
    """
    size = SVG_CONFIG["arrowheadsize"]
    half = format_number(size / 2)
    left = f"{format_number(-size / 2)},{format_number(-size * 1.5)}"
    left_top = f"0,0 {left} {left}"
    right_top = f"{half},{half} {half},{half} {format_number(size)},0"
    return f"M{format_number(x)},{format_number(y)}c{left_top}c{right_top}z"


def apex_y(baseline: float, level: int, arc_height: float) -> float:
    return baseline - level * arc_height


def head_anchor_x(head_center_x: float, dependent_position: int, head_position: int) -> float:
    """Конец дуги у вершины смещается на gapX/2 в сторону зависимого."""
    gap = SVG_CONFIG["gapX"] / 2
    if dependent_position > head_position:
        return head_center_x + gap
    return head_center_x - gap


class ArcGeometryGenerator:
    """
    Строит дуги основных, корневых и вторичных (enhanced) связей.
    """

    def __init__(self, surface: DrawingSurface, options: RenderOptions):
        self.surface = surface
        self.options = options

    def draw_relations(self, rendered: List[RenderedToken]) -> List[Edge]:
        edges = []
        for rendered_token in rendered:
            head = rendered_token.token.head
            if head.is_unassigned:
                # У токена еще нет вершины: связь не рисуется
                continue

            head_rendered = None
            if head.is_token:
                head_rendered = find_rendered(rendered, head.token_id)
                if head_rendered is None:
                    logger.debug(f"Head {head.token_id} of token {rendered_token.id} is not rendered, skipping edge")
                    continue

            edges.append(self.draw_relation(rendered_token, head_rendered))
        return edges

    def draw_relation(self, rendered: RenderedToken, head_rendered: Optional[RenderedToken]) -> Edge:
        """
        head_rendered=None означает связь с корнем.
        """
        x_dep = rendered.center_x
        y_dep_upper = rendered.start_y - SVG_CONFIG["sizeFontY"]

        if head_rendered is None:
            path = root_arc_path(x_dep, y_dep_upper)
        else:
            x_head = head_anchor_x(head_rendered.center_x, rendered.position, head_rendered.position)
            y_top = apex_y(rendered.start_y, rendered.level, self.options.arc_height)
            path = arc_path(x_dep, x_head, y_dep_upper, y_dep_upper, y_top)

        arc = self.surface.path(path).add_class("curve")
        arrowhead = self.surface.path(arrowhead_path(x_dep, y_dep_upper)).add_class("arrowhead")

        box = arc.bbox()
        deprel_x = box.x + box.w / 2
        deprel_y = box.y - 5
        if head_rendered is None:
            deprel_x += ROOT_LABEL_DX
            deprel_y = ROOT_LABEL_Y

        deprel = self.surface.text(deprel_x, deprel_y, rendered.token.deprel).add_class("DEPREL")
        deprel.attr(x=deprel_x - deprel.bbox().w / 2)

        rendered.elements["DEPREL"] = deprel
        rendered.elements["arrowhead"] = arrowhead
        rendered.elements["arc"] = arc

        target = Head.root() if head_rendered is None else Head.to(head_rendered.id)
        return Edge(source=rendered.id, target=target, path=path, deprel=rendered.token.deprel)

    def draw_enhanced_relations(self, rendered: List[RenderedToken], watermark: float) -> List[Edge]:
        """
        Вторичные связи рисуются под строкой токенов, начиная с watermark
        (текущей максимальной высоты), чтобы не пересекать основные метки.
        """
        edges = []
        for rendered_token in rendered:
            token = rendered_token.token
            for dep_id, dep_deprel in token.deps.items():
                if token.head.is_token and token.head.token_id == dep_id:
                    # Уже нарисована как основная связь
                    continue
                dep_rendered = find_rendered(rendered, dep_id)
                if dep_rendered is None:
                    continue
                edges.append(self.draw_enhanced_relation(rendered_token, dep_rendered, dep_deprel, watermark))
        return edges

    def draw_enhanced_relation(
            self,
            rendered: RenderedToken,
            head_rendered: RenderedToken,
            deprel: str,
            watermark: float,
    ) -> Edge:
        y_dep_lower = watermark + ENHANCED_TOP_MARGIN
        y_arc_lower = y_dep_lower + self.options.arc_height

        x_dep = rendered.center_x
        x_head = head_anchor_x(head_rendered.center_x, rendered.position, head_rendered.position)
        path = arc_path(x_dep, x_head, y_dep_lower, y_dep_lower, y_arc_lower)

        arc = self.surface.path(path).add_class("curveenhanced")
        arrowhead = self.surface.path(arrowhead_path(x_dep, y_dep_lower)).add_class("arrowheadenhanced")
        # Стрелка снизу, поэтому разворачивается на 180 градусов
        arrowhead.transform("r180")

        box = arc.bbox()
        deprel_x = box.x + box.w / 2
        deprel_y = box.y2 + ENHANCED_LABEL_DY

        label = self.surface.text(deprel_x, deprel_y, f"{ENHANCED_PREFIX}{deprel}").add_class("DEPRELenhanced")
        label.attr(x=deprel_x - label.bbox().w / 2)

        key = f"{head_rendered.id}:{deprel}"
        rendered.elements[f"{key}.DEPREL"] = label
        rendered.elements[f"{key}.arrowhead"] = arrowhead
        rendered.elements[f"{key}.arc"] = arc

        return Edge(
            source=rendered.id,
            target=Head.to(head_rendered.id),
            path=path,
            enhanced=True,
            deprel=deprel,
        )

