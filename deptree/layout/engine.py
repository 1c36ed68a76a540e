# deptree/layout/engine.py
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from deptree.config import (
    CANVAS_RIGHT_PADDING,
    FALLBACK_CANVAS_HEIGHT,
    MIN_LEVEL_ROWS,
    SVG_CONFIG,
    RenderOptions,
)
from deptree.core.data_structures import Token, TokenId, Tree
from deptree.core.interfaces import DrawingSurface, SurfaceElement

logger = logging.getLogger(__name__)


@dataclass
class RenderedToken:
    """
    Токен с вычисленной геометрией. Живет только в пределах одного прохода отрисовки.
    """
    token: Token
    position: int
    start_x: float = 0.0
    start_y: float = 0.0
    width: float = 0.0
    center_x: float = 0.0
    level: int = 0
    elements: Dict[str, SurfaceElement] = field(default_factory=dict)

    @property
    def id(self) -> TokenId:
        return self.token.id


def baseline_y(levels: List[int], arc_height: float) -> float:
    """Верхняя линия текста: над ней резервируется место под самую высокую дугу."""
    max_level = max(levels + [MIN_LEVEL_ROWS])
    return SVG_CONFIG["startTextY"] + max_level * arc_height


class LayoutEngine:
    """
    Размещает токены: ширина колонки, смещение по X, метки признаков в столбик.
    """

    def __init__(self, surface: DrawingSurface, options: RenderOptions):
        self.surface = surface
        self.options = options

    def layout(self, order: List[TokenId], tree: Tree, levels: List[int]) -> List[RenderedToken]:
        offset_y = baseline_y(levels, self.options.arc_height)
        first_x = self._first_pinned_x(order)

        rendered: List[RenderedToken] = []
        running_x = 0.0
        for position, token_id in enumerate(order):
            token = tree.get(token_id)
            if token is None:
                logger.warning(f"Token {token_id} is missing from the tree, skipping")
                continue

            pin = self.options.preset_locations.get(token_id)
            start_x = pin.x - first_x if pin is not None else running_x

            rendered_token = RenderedToken(token=token, position=position)
            self.place_token(rendered_token, start_x, offset_y)
            rendered_token.level = levels[position]

            rendered.append(rendered_token)
            running_x += rendered_token.width

        return rendered

    def _first_pinned_x(self, order: List[TokenId]) -> float:
        # Закрепленные позиции отсчитываются от первого закрепленного токена
        for token_id in order:
            pin = self.options.preset_locations.get(token_id)
            if pin is not None:
                return pin.x
        return 0.0

    def place_token(self, rendered: RenderedToken, start_x: float, start_y: float):
        rendered.start_x = start_x
        rendered.start_y = start_y or SVG_CONFIG["startTextY"]
        running_y = rendered.start_y

        max_feature_width = 0.0
        for feature in self.options.shown_features:
            feature_text = rendered.token.feature(feature)
            family = feature.split(".")[0]

            element = self.surface.text(rendered.start_x, running_y, feature_text)
            element.add_class(family)
            rendered.elements[feature] = element

            max_feature_width = max(max_feature_width, element.bbox().w)

            # Отсутствующие FEATS/MISC не занимают строку
            if not (family in ("FEATS", "MISC") and feature_text == ""):
                running_y += self.options.features_horizontal_spacing

        rendered.width = max_feature_width + self.options.token_spacing
        rendered.center_x = rendered.start_x + rendered.width / 2

        self.center_features(rendered)

    def center_features(self, rendered: RenderedToken):
        # |hello    |my    |friend    | => |  hello  |  my  |  friend  |
        for feature in self.options.shown_features:
            element = rendered.elements[feature]
            element.attr(x=rendered.center_x - element.bbox().w / 2)

    @staticmethod
    def current_max_height(rendered: List[RenderedToken]) -> float:
        max_height = 0.0
        for rendered_token in rendered:
            for element in rendered_token.elements.values():
                max_height = max(max_height, element.bbox().y2)
        return max_height

    def canvas_size(self, rendered: List[RenderedToken]) -> Tuple[float, float]:
        total_width = max((r.start_x + r.width for r in rendered), default=0.0)
        total_height = self.current_max_height(rendered)
        return total_width + CANVAS_RIGHT_PADDING, total_height or FALLBACK_CANVAS_HEIGHT


def find_rendered(rendered: List[RenderedToken], token_id: Optional[TokenId]) -> Optional[RenderedToken]:
    for rendered_token in rendered:
        if rendered_token.id == token_id:
            return rendered_token
    return None
