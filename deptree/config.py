# deptree/config.py
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Определение базовых путей относительно корня проекта
BASE_DIR = Path(__file__).resolve().parent.parent
CONFIG_DIR = BASE_DIR / "config"
DEFAULT_OPTIONS_PATH = CONFIG_DIR / "render.yaml"

# Геометрические константы отрисовки (в пикселях)
SVG_CONFIG = {
    "startTextY": 10,
    "dragclickthreshold": 400,  # ms
    "arrowheadsize": 5,
    "gapX": 18,
    "sizeFontY": 18,
    "reverseArcThreshold": 20,  # насколько ниже токена нужно опустить курсор, чтобы дуга перевернулась
}

# Запасная высота холста, пока ничего не отрисовано
FALLBACK_CANVAS_HEIGHT = 1000
# Отступ справа от последнего токена
CANVAS_RIGHT_PADDING = 15
# Минимальный учитываемый уровень дуги при расчете базовой линии
MIN_LEVEL_ROWS = 2
# Длительность анимации возврата "призрака" после перетаскивания
SPRING_BACK_MS = 300


class Box(BaseModel):
    """Прямоугольник: позиция и размеры (используется для закрепленных позиций токенов)."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class ModifiedEdge(BaseModel):
    src: str
    edge: str
    tar: str


class ModifiedNode(BaseModel):
    id: str
    features: List[str] = Field(default_factory=list)


class Packages(BaseModel):
    """Результат грамматического запроса: измененные узлы и дуги."""
    modified_edges: List[ModifiedEdge] = Field(default_factory=list)
    modified_nodes: List[ModifiedNode] = Field(default_factory=list)


class RenderOptions(BaseModel):
    """
    Параметры отрисовки одного предложения.
    Значения по умолчанию совпадают с config/render.yaml.
    """
    draw_enhanced_tokens: bool = False
    draw_group_tokens: bool = False
    shown_features: List[str] = Field(default_factory=list)
    interactive: bool = False
    matches: List[str] = Field(default_factory=list)
    packages: Optional[Packages] = None
    token_spacing: float = 40
    features_horizontal_spacing: float = 20
    arc_height: float = 60
    # Позиции токенов с прошлого рендера: id -> Box
    preset_locations: Dict[str, Box] = Field(default_factory=dict)


def load_options(path: Optional[Union[str, Path]] = None) -> RenderOptions:
    """
    Загружает RenderOptions из YAML.
    Без аргумента читает config/render.yaml (если он существует).
    """
    config_path = Path(path) if path else DEFAULT_OPTIONS_PATH

    if not config_path.exists():
        if path:
            raise FileNotFoundError(f"Config file not found: {config_path}")
        logger.debug(f"Файл {config_path} не найден, используются значения по умолчанию")
        return RenderOptions()

    with open(config_path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    logger.info(f"Загружены параметры отрисовки из {config_path.name}")
    return RenderOptions(**raw.get("render", raw))
