# deptree/ingestion/validators.py
import logging
from typing import Any, Dict, List

import networkx as nx

from deptree.core.data_structures import Tree

logger = logging.getLogger(__name__)


class ValidationResult:
    """DTO для результатов валидации."""

    def __init__(self, is_valid: bool, errors: List[str]):
        self.is_valid = is_valid
        self.errors = errors


class TreeValidator:
    """
    Проверяет дерево до отрисовки: ссылки HEAD/DEPS, количество корней, отсутствие циклов.
    Ядро отрисовки не обрабатывает некорректные графы, поэтому проверка выполняется заранее.
    """

    @staticmethod
    def validate(tree: Tree, strict: bool = True) -> ValidationResult:
        errors = []
        graph = nx.DiGraph()
        roots = 0

        for token in tree.tokens_in_order(include_empty=True):
            graph.add_node(token.id)

            if not token.form:
                errors.append(f"Token {token.id}: Пустое поле FORM")

            head = token.head
            if head.is_root:
                roots += 1
            elif head.is_token:
                if tree.get(head.token_id) is None:
                    errors.append(f"Token {token.id}: HEAD {head.token_id} ссылается на несуществующий ID")
                else:
                    graph.add_edge(head.token_id, token.id)

            for dep_id in token.deps:
                if dep_id != "0" and tree.get(dep_id) is None:
                    errors.append(f"Token {token.id}: DEPS {dep_id} ссылается на несуществующий ID")

        # В корректном дереве ровно один корень
        if roots != 1 and tree.word_count() > 0:
            if strict:
                errors.append(f"ERROR: Найдено {roots} корней (ожидается 1)")
            else:
                logger.debug(f"Lenient mode: {roots} roots tolerated")

        try:
            cycle = nx.find_cycle(graph)
            errors.append(f"ERROR: Цикл в графе зависимостей: {cycle}")
        except nx.NetworkXNoCycle:
            pass

        return ValidationResult(len(errors) == 0, errors)

    @staticmethod
    def validate_batch(trees: List[Tree], strict: bool = True) -> Dict[str, Any]:
        """Агрегированная статистика валидации набора предложений."""
        stats = {
            "total": len(trees),
            "valid": 0,
            "invalid": 0,
            "errors": []
        }

        for index, tree in enumerate(trees):
            res = TreeValidator.validate(tree, strict)
            if res.is_valid:
                stats["valid"] += 1
            else:
                stats["invalid"] += 1
                sent_id = tree.meta.get("sent_id") or str(index + 1)
                stats["errors"].append({"id": sent_id, "issues": res.errors})

        return stats
