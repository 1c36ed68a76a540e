# deptree/evaluation/diff.py
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from deptree.core.data_structures import PLACEHOLDER, Token, TokenId, Tree

logger = logging.getLogger(__name__)

TRACKED_FIELDS = ("HEAD", "DEPREL", "UPOS")


@dataclass(frozen=True)
class FieldDiff:
    token_id: TokenId
    field: str
    current: str
    reference: str


@dataclass
class AccuracyStats:
    corrects: Dict[str, int] = field(default_factory=lambda: {name: 0 for name in TRACKED_FIELDS})
    totals: Dict[str, int] = field(default_factory=lambda: {name: 0 for name in TRACKED_FIELDS})

    def ratio(self, name: str) -> float:
        total = self.totals[name]
        return self.corrects[name] / total if total > 0 else 0.0

    def __add__(self, other: "AccuracyStats") -> "AccuracyStats":
        return AccuracyStats(
            corrects={name: self.corrects[name] + other.corrects[name] for name in TRACKED_FIELDS},
            totals={name: self.totals[name] + other.totals[name] for name in TRACKED_FIELDS},
        )


def _is_set(value: Optional[str]) -> bool:
    return bool(value) and value != PLACEHOLDER


def _field_value(token: Token, name: str):
    if name == "HEAD":
        return token.head
    if name == "DEPREL":
        return token.deprel
    return token.upos


def _is_defined(token: Token, name: str) -> bool:
    if name == "HEAD":
        return not token.head.is_unassigned
    return _is_set(_field_value(token, name))


class DiffEngine:
    """
    Сравнивает текущее дерево с эталонным (например, разметкой преподавателя).
    """

    @staticmethod
    def is_comparable(current: Tree, reference: Tree) -> bool:
        if current.is_empty() or reference.is_empty():
            return False
        # Группы (1-2) и пустые узлы (8.1) тоже учитываются
        return len(current.nodes) == len(reference.nodes)

    def find_diffs(self, current: Tree, reference: Tree, order: Iterable[TokenId]) -> List[FieldDiff]:
        """
        Поля HEAD/DEPREL/UPOS, где текущее значение расходится с эталоном.
        Несопоставимые деревья (пустые или разной длины) - пустой результат, без исключений.
        """
        if not self.is_comparable(current, reference):
            logger.debug("Reference tree is empty or has a different token count, diff skipped")
            return []

        diffs = []
        for token_id in order:
            this_token = current.get(token_id)
            other_token = reference.get(token_id)
            if this_token is None or other_token is None or this_token.form != other_token.form:
                logger.debug(f"Token id {token_id} doesn't match between trees")
                continue

            for name in TRACKED_FIELDS:
                # Незаполненное текущее значение расхождением не считается
                if not _is_defined(this_token, name):
                    continue
                current_value = _field_value(this_token, name)
                reference_value = _field_value(other_token, name)
                if current_value != reference_value:
                    diffs.append(FieldDiff(token_id, name, str(current_value), str(reference_value)))

        return diffs

    @staticmethod
    def accuracy(current: Tree, reference: Tree) -> AccuracyStats:
        """
        total - определенные значения в эталоне, correct - совпавшие с текущим деревом.
        """
        stats = AccuracyStats()

        for reference_token in reference.tokens_in_order():
            current_token = current.get(reference_token.id)
            for name in TRACKED_FIELDS:
                if not _is_defined(reference_token, name):
                    continue
                stats.totals[name] += 1
                if current_token is None:
                    continue
                if _field_value(current_token, name) == _field_value(reference_token, name):
                    stats.corrects[name] += 1

        return stats

    @staticmethod
    def aggregate(stats_list: Iterable[AccuracyStats]) -> AccuracyStats:
        total = AccuracyStats()
        for stats in stats_list:
            total = total + stats
        return total
