# deptree/cli.py
import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from tqdm import tqdm

from deptree.config import load_options
from deptree.core.events import EventBus
from deptree.evaluation.diff import TRACKED_FIELDS, AccuracyStats, DiffEngine
from deptree.ingestion.conllu_codec import CodecError, iter_trees
from deptree.ingestion.validators import TreeValidator
from deptree.render.sentence_svg import SentenceSVG
from deptree.render.svg_surface import SvgSurface

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

console = Console()


def render_corpus(input_path: Path, output_dir: Path, config_path: Optional[Path] = None,
                  force_rtl: bool = False) -> int:
    """Один SVG на предложение. Возвращает количество записанных файлов."""
    options = load_options(config_path)
    output_dir.mkdir(parents=True, exist_ok=True)

    written = 0
    with open(input_path, "r", encoding="utf-8") as f:
        for index, tree in enumerate(tqdm(iter_trees(f), desc="Rendering")):
            sent_id = tree.meta.get("sent_id") or str(index + 1)

            validation = TreeValidator.validate(tree, strict=False)
            if not validation.is_valid:
                logger.warning(f"Skipping sentence {sent_id}: {'; '.join(validation.errors)}")
                continue

            if force_rtl:
                tree.meta["rtl"] = "yes"

            surface = SvgSurface()
            SentenceSVG(surface, EventBus(), tree, options)

            out_file = output_dir / f"{_safe_name(sent_id)}.svg"
            out_file.write_text(surface.to_string(), encoding="utf-8")
            written += 1

    logger.info(f"Saved {written} SVG files to {output_dir}")
    return written


def _safe_name(sent_id: str) -> str:
    return "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in sent_id)


def validate_corpus(input_path: Path, strict: bool = False) -> Dict[str, Any]:
    """Статистика валидации всех предложений файла."""
    with open(input_path, "r", encoding="utf-8") as f:
        trees = list(tqdm(iter_trees(f), desc="Validating"))
    return TreeValidator.validate_batch(trees, strict)


def print_validation(stats: Dict[str, Any]):
    console.print(f"📊 Предложений: {stats['total']}, корректных: [green]{stats['valid']}[/green], "
                  f"с ошибками: [red]{stats['invalid']}[/red]")
    if not stats["errors"]:
        return

    table = Table(title="Ошибки валидации")
    table.add_column("sent_id", style="cyan")
    table.add_column("Проблемы", style="red")
    for entry in stats["errors"]:
        table.add_row(escape(entry["id"]), escape("\n".join(entry["issues"])))
    console.print(table)


def corpus_stats(gold_path: Path, pred_path: Path) -> AccuracyStats:
    """
    Точность HEAD/DEPREL/UPOS предсказанной разметки относительно эталона.
    Предложения сопоставляются по порядку следования в файлах.
    """
    collected: List[AccuracyStats] = []
    skipped = 0

    with open(gold_path, "r", encoding="utf-8") as f_gold, open(pred_path, "r", encoding="utf-8") as f_pred:
        for index, (gold, pred) in enumerate(tqdm(zip(iter_trees(f_gold), iter_trees(f_pred)), desc="Comparing")):
            if not DiffEngine.is_comparable(pred, gold):
                logger.warning(f"Sentence #{index + 1}: token counts differ, skipped")
                skipped += 1
                continue
            collected.append(DiffEngine.accuracy(pred, gold))

    if skipped:
        logger.info(f"Skipped {skipped} sentences")
    return DiffEngine.aggregate(collected)


def print_stats(stats: AccuracyStats):
    table = Table(title="📈 Accuracy")
    table.add_column("Поле", style="cyan")
    table.add_column("Верно", style="green")
    table.add_column("Всего")
    table.add_column("Точность", style="green")

    for name in TRACKED_FIELDS:
        ratio = stats.ratio(name)
        table.add_row(name, str(stats.corrects[name]), str(stats.totals[name]), f"{ratio:.4f} ({ratio * 100:.2f}%)")

    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="deptree", description="Dependency tree SVG renderer")
    subparsers = parser.add_subparsers(dest="command", required=True)

    render = subparsers.add_parser("render", help="Render every sentence of a CoNLL-U file to SVG")
    render.add_argument("input", type=Path, help="Input .conllu file")
    render.add_argument("-o", "--output_dir", type=Path, required=True, help="Directory for SVG files")
    render.add_argument("--config", type=Path, default=None, help="YAML with render options")
    render.add_argument("--rtl", action="store_true", help="Render all sentences right-to-left")

    stats = subparsers.add_parser("stats", help="HEAD/DEPREL/UPOS accuracy against a reference file")
    stats.add_argument("gold", type=Path, help="Reference .conllu file")
    stats.add_argument("pred", type=Path, help="Compared .conllu file")

    validate = subparsers.add_parser("validate", help="Check HEAD/DEPS references, roots and cycles")
    validate.add_argument("input", type=Path, help="Input .conllu file")
    validate.add_argument("--strict", action="store_true", help="Require exactly one root per sentence")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        if args.command == "render":
            render_corpus(args.input, args.output_dir, args.config, args.rtl)
        elif args.command == "validate":
            stats = validate_corpus(args.input, args.strict)
            print_validation(stats)
            if stats["invalid"]:
                return 1
        else:
            print_stats(corpus_stats(args.gold, args.pred))
    except (CodecError, FileNotFoundError) as e:
        console.print(f"❌ [red]{e}[/red]")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
