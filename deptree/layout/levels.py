# deptree/layout/levels.py
import logging
from typing import Dict, List, Optional

from deptree.core.data_structures import TokenId, Tree

logger = logging.getLogger(__name__)

# Вершина вне отрисовки: корень, не назначенная вершина или неотрисованный токен
ROOT_POSITION = None
# Уровень еще не вычислен
UNSET = None


def head_positions_for(order: List[TokenId], tree: Tree) -> List[Optional[int]]:
    """
    Для каждой позиции отрисовки - позиция ее вершины в том же порядке (или ROOT_POSITION).
    """
    position_of: Dict[TokenId, int] = {token_id: i for i, token_id in enumerate(order)}

    head_positions = []
    for token_id in order:
        token = tree.get(token_id)
        if token is None or not token.head.is_token:
            head_positions.append(ROOT_POSITION)
            continue

        position = position_of.get(token.head.token_id)
        if position is None:
            logger.debug(f"Head {token.head.token_id} of token {token_id} is not rendered")
        head_positions.append(position)

    return head_positions


def compute_levels(head_positions: List[Optional[int]]) -> List[int]:
    """
    Уровень вложенности каждой дуги, чтобы дуги не накладывались друг на друга.
    Чем больше уровень, тем выше вершина дуги.
    """
    levels: List[Optional[int]] = [UNSET] * len(head_positions)
    for index in range(len(head_positions)):
        _get_level(levels, head_positions, index, 0, len(head_positions))

    # После обхода все позиции заполнены: корневые получают 0 в первой ветке _get_level
    return [level if level is not None else 0 for level in levels]


def _get_level(
        levels: List[Optional[int]],
        head_positions: List[Optional[int]],
        index: int,
        start: int,
        end: int,
) -> int:
    if levels[index] is not UNSET:
        return levels[index]

    head = head_positions[index]
    if head is ROOT_POSITION or head < start or end < head:
        if head is ROOT_POSITION:
            levels[index] = 0
        # Вершина за пределами окна: внутри окна дуга не мешает
        return 0

    inf = min(index, head)
    sup = max(index, head)
    if sup - inf == 1:
        levels[index] = 1
        return 1

    sub_levels = []
    for k in range(inf, sup + 1):
        k_head = head_positions[k]
        if k == index or (k_head is not None and head_positions[k_head] == k):
            sub_levels.append(0)
        elif k_head is not None and inf < k_head < sup:
            # Вершина k строго внутри окна, поэтому окно k строго меньше [inf, sup]
            assert sup - inf > max(k, k_head) - min(k, k_head), "level window must shrink"
            sub_levels.append(_get_level(levels, head_positions, k, inf, sup))

    level = max(sub_levels) + 1
    levels[index] = level
    return level
