# deptree/render/sentence_svg.py
import logging
import time
from typing import Callable, Dict, List, Optional

from deptree.config import Box, RenderOptions
from deptree.core.data_structures import Token, TokenId, Tree
from deptree.core.events import EventBus, TreeUpdatedEvent
from deptree.core.interfaces import DrawingSurface
from deptree.evaluation.diff import AccuracyStats, DiffEngine, FieldDiff
from deptree.ingestion.conllu_codec import sentence_conll_to_tree, sentence_tree_to_conll
from deptree.ingestion.validators import TreeValidator
from deptree.interaction.controller import DRAG_LABEL, DragController, InteractionSession, attach_click
from deptree.layout.engine import LayoutEngine, RenderedToken, find_rendered
from deptree.layout.geometry import ArcGeometryGenerator, Edge
from deptree.layout.levels import compute_levels, head_positions_for
from deptree.layout.sequencer import order_tokens

logger = logging.getLogger(__name__)

DIFF_CLASS = "diff"
MATCH_COLOR = "red"

# Имена признаков в пакетах грамматического поиска -> метки токена
PACKAGE_FEATURES = {
    "upos": "UPOS",
    "form": "FORM",
    "lemma": "LEMMA",
    "deprel": "DEPREL",
}


class SentenceSVG:
    """
    Отрисовка одного предложения: порядок токенов -> уровни дуг -> раскладка -> дуги,
    затем обработчики взаимодействия и сравнение с эталонным деревом.
    """

    def __init__(
            self,
            surface: DrawingSurface,
            bus: EventBus,
            tree: Tree,
            options: Optional[RenderOptions] = None,
            clock: Callable[[], float] = time.monotonic,
    ):
        self.surface = surface
        self.bus = bus
        self.tree = tree
        self.options = (options or RenderOptions()).model_copy(deep=True)
        self.clock = clock

        self.reference_tree = Tree()
        self.session = InteractionSession()
        self.diff_engine = DiffEngine()

        self.order: List[TokenId] = []
        self.levels: List[int] = []
        self.rendered: List[RenderedToken] = []
        self.edges: List[Edge] = []
        self.diffs: List[FieldDiff] = []
        self.controllers: Dict[TokenId, DragController] = {}
        self.total_width = 0.0
        self.total_height = 0.0
        self.render_count = 0

        self._rendering = False
        self._pending = False

        if not self.options.shown_features:
            self.options.shown_features = tree.all_features()

        # FORM всегда первой строкой
        self.options.shown_features = ["FORM"] + [f for f in self.options.shown_features if f != "FORM"]

        self.layout_engine = LayoutEngine(surface, self.options)
        self.geometry = ArcGeometryGenerator(surface, self.options)

        bus.subscribe(TreeUpdatedEvent, self._on_tree_updated)
        self.draw_tree()

    # --- Полная перерисовка ---

    def draw_tree(self):
        """
        Перерисовки строго последовательны: запрос во время отрисовки откладывается
        и выполняется сразу после нее.
        """
        if self._rendering:
            logger.debug("Render in progress, re-render deferred")
            self._pending = True
            return

        self._rendering = True
        try:
            self._draw()
            while self._pending:
                self._pending = False
                self._draw()
        finally:
            self._rendering = False

    def _draw(self):
        self.clear_tree()

        validation = TreeValidator.validate(self.tree, strict=False)
        if not validation.is_valid:
            sent_id = self.tree.meta.get("sent_id", "UNKNOWN")
            logger.warning(f"Rendering invalid tree {sent_id}: {validation.errors}")

        self.populate_order_of_tokens()
        self.populate_levels()
        self.rendered = self.layout_engine.layout(self.order, self.tree, self.levels)
        self.edges = self.geometry.draw_relations(self.rendered)
        self.edges += self.geometry.draw_enhanced_relations(
            self.rendered, self.layout_engine.current_max_height(self.rendered)
        )
        self.adapt_canvas()
        self.show_highlights()

        if self.options.matches:
            self.show_matches()

        if self.options.packages is not None:
            self.show_packages()

        if self.options.interactive:
            self.surface.add_class("interactive")
            self.attach_draggers()
            self.attach_events()

        self.show_diffs()
        self.render_count += 1

    def refresh(self):
        self.draw_tree()

    def clear_tree(self):
        # Незавершенное перетаскивание не переживает перерисовку
        for controller in self.controllers.values():
            controller.cancel()
        self.session.end()
        self.surface.clear()
        self.rendered = []
        self.edges = []
        self.diffs = []
        self.levels = []
        self.order = []
        self.controllers = {}

    def populate_order_of_tokens(self):
        tokens = self.tree.tokens_in_order(
            include_empty=self.options.draw_enhanced_tokens,
            include_groups=self.options.draw_group_tokens,
        )
        self.order = order_tokens(tokens, self.tree.is_rtl())

    def populate_levels(self):
        self.levels = compute_levels(head_positions_for(self.order, self.tree))

    def adapt_canvas(self):
        self.total_width, self.total_height = self.layout_engine.canvas_size(self.rendered)
        self.surface.set_size(self.total_width, self.total_height)

    # --- Подсветка ---

    def show_highlights(self):
        for rendered in self.rendered:
            color = rendered.token.misc.get("highlight")
            if color:
                rendered.elements["FORM"].set_style("fill", color)

    def show_matches(self):
        for rendered in self.rendered:
            if rendered.id in self.options.matches:
                rendered.elements["FORM"].set_style("fill", MATCH_COLOR)

    def show_packages(self):
        packages = self.options.packages
        for node in packages.modified_nodes:
            rendered = find_rendered(self.rendered, node.id)
            if rendered is None:
                continue
            for feature in node.features:
                label = PACKAGE_FEATURES.get(feature)
                candidates = [label] if label else [f"FEATS.{feature}", f"MISC.{feature}"]
                for candidate in candidates:
                    element = rendered.elements.get(candidate)
                    if element is not None:
                        element.set_style("fill", MATCH_COLOR)
                        break

        for edge in packages.modified_edges:
            rendered = find_rendered(self.rendered, edge.tar)
            if rendered is None:
                continue
            for name in ("arc", "arrowhead"):
                element = rendered.elements.get(name)
                if element is not None:
                    element.set_style("stroke", MATCH_COLOR)

    # --- Взаимодействие ---

    def attach_draggers(self):
        for rendered in self.rendered:
            controller = DragController(
                rendered, self.session, self.surface, self.bus, self.options, clock=self.clock
            )
            controller.attach()
            self.controllers[rendered.id] = controller

    def attach_events(self):
        for rendered in self.rendered:
            for label, element in rendered.elements.items():
                if label == DRAG_LABEL:
                    continue
                attach_click(rendered, label, element, self.bus)

    def _on_tree_updated(self, event: TreeUpdatedEvent):
        self.update(event.tree)

    def update(self, tree: Tree):
        self.tree = tree
        self.refresh()

    def update_token(self, token: Token):
        self.tree.nodes[token.id] = token

    # --- Сравнение с эталоном ---

    def plug_diff_tree(self, reference: Optional[Tree]):
        if reference is None:
            return
        self.reference_tree = reference
        self.draw_tree()

    def unplug_diff_tree(self):
        self.reference_tree = Tree()
        self.draw_tree()

    def show_diffs(self):
        self.diffs = self.diff_engine.find_diffs(self.tree, self.reference_tree, self.order)
        for diff in self.diffs:
            rendered = find_rendered(self.rendered, diff.token_id)
            names = ("arc", "arrowhead") if diff.field == "HEAD" else (diff.field,)
            for name in names:
                element = rendered.elements.get(name)
                if element is not None:
                    element.add_class(DIFF_CLASS)

    def get_diff_stats(self, reference_conll: str) -> AccuracyStats:
        reference = sentence_conll_to_tree(reference_conll)
        return self.diff_engine.accuracy(self.tree, reference)

    # --- Экспорт ---

    def export_conll(self) -> str:
        return sentence_tree_to_conll(self.tree)

    def token_locations(self) -> Dict[TokenId, Box]:
        """Текущие позиции токенов; можно передать в preset_locations следующего рендера."""
        return {
            rendered.id: Box(x=rendered.start_x, y=rendered.start_y, width=rendered.width)
            for rendered in self.rendered
        }
