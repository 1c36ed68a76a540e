# deptree/render/svg_surface.py
import copy
import logging
import math
import re
import unicodedata
import xml.etree.ElementTree as ET
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Tuple

from PIL import ImageFont

from deptree.core.interfaces import (
    BBox,
    DrawingSurface,
    EndHandler,
    MoveHandler,
    PointerEvent,
    StartHandler,
    SurfaceElement,
)
from deptree.layout.geometry import format_number

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"

FONT_SIZE = 14
# Шрифты для измерения текста, по порядку предпочтения (sans-serif, как в таблице стилей)
FONT_CANDIDATES = [
    "DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/Library/Fonts/Arial.ttf",
    "/System/Library/Fonts/Supplemental/Arial.ttf",
    "C:\\Windows\\Fonts\\arial.ttf",
]
# Средняя ширина символа относительно кегля, если Pillow не смог загрузить ни одного шрифта
CHAR_WIDTH_RATIO = 0.6
# Доля кегля над базовой линией текста
ASCENT_RATIO = 0.8

DEFAULT_STYLESHEET = """
text { font-family: sans-serif; font-size: 14px; }
.curve, .dragcurve { fill: none; stroke: black; stroke-width: 1; }
.curveenhanced { fill: none; stroke: gray; stroke-dasharray: 4 2; }
.arrowhead, .dragarrowhead { fill: white; stroke: black; }
.arrowheadenhanced { fill: white; stroke: gray; }
.DEPREL { fill: #501fc9; font-style: oblique; }
.DEPRELenhanced { fill: gray; font-style: oblique; }
.FORM { fill: black; }
.UPOS { fill: #7a7a7a; }
.LEMMA { fill: #3f7f00; }
.FEATS, .MISC { fill: #a0a0a0; font-size: 11px; }
.glossy { fill: #ff6000; }
.diff { fill: red; stroke: red; }
.interactive .FORM { cursor: pointer; }
""".strip()

PATH_TOKEN = re.compile(r"[MmLlCcZz]|[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


@lru_cache(maxsize=None)
def load_font(size: int) -> Optional["ImageFont.FreeTypeFont"]:
    """
    Первый доступный TrueType-шрифт из FONT_CANDIDATES, иначе встроенный шрифт Pillow.
    None - только если Pillow не загрузил вообще ничего.
    """
    for candidate in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue

    logger.debug(f"No TrueType font found among {FONT_CANDIDATES}, using Pillow default font")
    try:
        return ImageFont.load_default(size=size)
    except OSError as e:
        logger.warning(f"Pillow could not load any font, text widths are estimated: {e}")
        return None


def estimate_width(text: str, font_size: float = FONT_SIZE) -> float:
    """
    Оценка ширины строки без шрифта:
    широкие восточноазиатские символы - двойная ширина, комбинируемые диакритики - нулевая.
    """
    units = 0
    for ch in text:
        if unicodedata.combining(ch):
            continue
        units += 2 if unicodedata.east_asian_width(ch) in ("W", "F") else 1
    return units * font_size * CHAR_WIDTH_RATIO


def text_width(text: str, font_size: float = FONT_SIZE) -> float:
    """Ширина строки в пикселях по метрикам шрифта (Pillow)."""
    if not text:
        return 0.0
    font = load_font(max(1, int(round(font_size))))
    if font is None:
        return estimate_width(text, font_size)
    return float(font.getlength(text))


def _cubic_extrema(p0: float, p1: float, p2: float, p3: float) -> List[float]:
    """Значения кубической кривой в концах и в точках экстремума на (0, 1)."""
    a = -p0 + 3 * p1 - 3 * p2 + p3
    b = 2 * (p0 - 2 * p1 + p2)
    c = p1 - p0

    ts = []
    if abs(a) < 1e-12:
        if abs(b) > 1e-12:
            ts.append(-c / b)
    else:
        disc = b * b - 4 * a * c
        if disc >= 0:
            root = math.sqrt(disc)
            ts.extend([(-b + root) / (2 * a), (-b - root) / (2 * a)])

    values = [p0, p3]
    for t in ts:
        if 0 < t < 1:
            mt = 1 - t
            values.append(mt ** 3 * p0 + 3 * mt ** 2 * t * p1 + 3 * mt * t ** 2 * p2 + t ** 3 * p3)
    return values


def path_bbox(d: str) -> BBox:
    """
    Точный bbox пути из команд M/L/C (абсолютных и относительных) и Z.
    """
    tokens = PATH_TOKEN.findall(d)
    xs: List[float] = []
    ys: List[float] = []
    cur = (0.0, 0.0)
    start = cur
    command = None
    i = 0

    def take_point(relative: bool) -> Tuple[float, float]:
        nonlocal i
        x, y = float(tokens[i]), float(tokens[i + 1])
        i += 2
        if relative:
            return cur[0] + x, cur[1] + y
        return x, y

    while i < len(tokens):
        if tokens[i].isalpha():
            command = tokens[i]
            i += 1
            if command in "Zz":
                cur = start
                continue

        if command is None:
            raise ValueError(f"Path must start with a command: {d!r}")

        relative = command.islower()
        if command in "Mm":
            cur = take_point(relative)
            start = cur
            xs.append(cur[0])
            ys.append(cur[1])
            # Последующие пары после M трактуются как L
            command = "l" if relative else "L"
        elif command in "Ll":
            cur = take_point(relative)
            xs.append(cur[0])
            ys.append(cur[1])
        elif command in "Cc":
            c1 = take_point(relative)
            c2 = take_point(relative)
            end = take_point(relative)
            xs.extend(_cubic_extrema(cur[0], c1[0], c2[0], end[0]))
            ys.extend(_cubic_extrema(cur[1], c1[1], c2[1], end[1]))
            cur = end
        else:
            raise ValueError(f"Unsupported path command {command!r}")

    if not xs:
        return BBox(0, 0, 0, 0)
    return BBox(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


class SvgElement(SurfaceElement):
    """
    Обертка над узлом ElementTree. Хранит привязанные обработчики,
    чтобы хост-приложение (или тест) могло доставлять события через dispatch().
    """

    def __init__(self, surface: "SvgSurface", node: ET.Element):
        self.surface = surface
        self.node = node
        self.handlers: Dict[str, Callable] = {}
        self.removed = False

    # --- Геометрия ---

    def bbox(self) -> BBox:
        tag = self.node.tag
        if tag == "text":
            content = self.node.text or ""
            x = float(self.node.get("x", 0))
            y = float(self.node.get("y", 0))
            if not content:
                return BBox(x, y, 0, 0)
            return BBox(x, y - FONT_SIZE * ASCENT_RATIO, text_width(content), FONT_SIZE)
        if tag == "circle":
            cx, cy, r = (float(self.node.get(name, 0)) for name in ("cx", "cy", "r"))
            return BBox(cx - r, cy - r, 2 * r, 2 * r)
        if tag == "path":
            return path_bbox(self.node.get("d", ""))
        return BBox(0, 0, 0, 0)

    # --- Атрибуты и стили ---

    def attr(self, **attrs) -> "SvgElement":
        for name, value in attrs.items():
            self.node.set(name, _attr_value(value))
        return self

    def _classes(self) -> List[str]:
        return self.node.get("class", "").split()

    def add_class(self, name: str) -> "SvgElement":
        classes = self._classes()
        if name not in classes:
            classes.append(name)
        self.node.set("class", " ".join(classes))
        return self

    def remove_class(self, name: str) -> "SvgElement":
        classes = [c for c in self._classes() if c != name]
        if classes:
            self.node.set("class", " ".join(classes))
        elif "class" in self.node.attrib:
            del self.node.attrib["class"]
        return self

    def has_class(self, name: str) -> bool:
        return name in self._classes()

    def set_style(self, name: str, value: str) -> "SvgElement":
        styles = dict(
            part.split(":", 1) for part in self.node.get("style", "").split(";") if ":" in part
        )
        styles[name] = value
        self.node.set("style", ";".join(f"{k}:{v}" for k, v in styles.items()))
        return self

    def style(self, name: str) -> Optional[str]:
        for part in self.node.get("style", "").split(";"):
            if ":" in part:
                key, value = part.split(":", 1)
                if key == name:
                    return value
        return None

    def transform(self, value: str) -> "SvgElement":
        # Сокращение "r180" - поворот вокруг центра элемента
        match = re.fullmatch(r"r(-?\d+(?:\.\d+)?)", value)
        if match:
            box = self.bbox()
            center = f"{format_number(box.x + box.w / 2)} {format_number(box.y + box.h / 2)}"
            value = f"rotate({match.group(1)} {center})"
        self.node.set("transform", value)
        return self

    def clone(self) -> "SvgElement":
        node = copy.deepcopy(self.node)
        self.surface.root.append(node)
        element = SvgElement(self.surface, node)
        self.surface.elements.append(element)
        return element

    def remove(self):
        if self.removed:
            return
        self.removed = True
        if self.node in list(self.surface.root):
            self.surface.root.remove(self.node)

    def animate(self, attrs: dict, duration_ms: int, callback: Optional[Callable[[], None]] = None):
        # Статичный SVG: сразу применяем конечное состояние
        for name, value in attrs.items():
            if name == "transform":
                self.transform(value)
            else:
                self.node.set(name, _attr_value(value))
        if callback is not None:
            callback()

    # --- События ---

    def on_click(self, handler: Callable[[], None]):
        self.handlers["click"] = handler

    def on_drag(self, on_move: MoveHandler, on_start: StartHandler, on_end: EndHandler):
        self.handlers["dragmove"] = on_move
        self.handlers["dragstart"] = on_start
        self.handlers["dragend"] = on_end

    def on_hover(self, on_enter: Callable[[], None], on_leave: Callable[[], None]):
        self.handlers["mouseover"] = on_enter
        self.handlers["mouseout"] = on_leave

    def dispatch(self, kind: str, *args):
        """
        Доставка события указателя: click, dragstart, dragmove(dx, dy), dragend(event), mouseover, mouseout.
        """
        handler = self.handlers.get(kind)
        if handler is None:
            logger.debug(f"No handler for '{kind}' on <{self.node.tag}>")
            return
        if kind == "dragend" and not args:
            args = (PointerEvent(),)
        handler(*args)


def _attr_value(value) -> str:
    if isinstance(value, float):
        return format_number(value)
    return str(value)


class SvgSurface(DrawingSurface):
    """
    Поверхность рисования поверх xml.etree.ElementTree.
    """

    def __init__(self, stylesheet: str = DEFAULT_STYLESHEET):
        self.stylesheet = stylesheet
        self.root = ET.Element("g")
        self.width = 0.0
        self.height = 0.0
        self.classes: List[str] = []
        self.elements: List[SvgElement] = []

    def _add(self, tag: str, **attrs) -> SvgElement:
        node = ET.SubElement(self.root, tag, {name: _attr_value(value) for name, value in attrs.items()})
        element = SvgElement(self, node)
        self.elements.append(element)
        return element

    def path(self, d: str) -> SvgElement:
        return self._add("path", d=d)

    def text(self, x: float, y: float, content: str) -> SvgElement:
        element = self._add("text", x=x, y=y)
        element.node.text = content
        return element

    def circle(self, cx: float, cy: float, r: float) -> SvgElement:
        return self._add("circle", cx=cx, cy=cy, r=r)

    def clear(self):
        for node in list(self.root):
            self.root.remove(node)
        self.elements = []

    def set_size(self, width: float, height: float):
        self.width = width
        self.height = height

    def add_class(self, name: str):
        if name not in self.classes:
            self.classes.append(name)

    def live_elements(self) -> List[SvgElement]:
        return [element for element in self.elements if not element.removed]

    def find_by_class(self, name: str) -> List[SvgElement]:
        return [element for element in self.live_elements() if element.has_class(name)]

    def to_element(self) -> ET.Element:
        svg = ET.Element("svg", {
            "xmlns": SVG_NS,
            "width": _attr_value(float(self.width)),
            "height": _attr_value(float(self.height)),
        })
        if self.classes:
            svg.set("class", " ".join(self.classes))
        style = ET.SubElement(svg, "style")
        style.text = self.stylesheet
        for node in self.root:
            svg.append(copy.deepcopy(node))
        return svg

    def to_string(self) -> str:
        return ET.tostring(self.to_element(), encoding="unicode")
