from .config import RenderOptions, load_options
from .core.data_structures import Head, Token, Tree
from .core.events import ClickEvent, DropEvent, EventBus, TreeUpdatedEvent
from .ingestion.conllu_codec import sentence_conll_to_tree, sentence_tree_to_conll
from .render.sentence_svg import SentenceSVG
from .render.svg_surface import SvgSurface

__version__ = "0.1.0"
