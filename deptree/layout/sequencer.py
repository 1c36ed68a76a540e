# deptree/layout/sequencer.py
from collections import deque
from typing import Deque, Iterable, List, Optional, Tuple

from deptree.core.data_structures import Token, TokenId


def order_token_ids(items: Iterable[Tuple[TokenId, Optional[str]]], sentence_rtl: bool) -> List[TokenId]:
    """
    Порядок отрисовки слева направо с учетом направления письма.

    items: пары (id, переопределение rtl из MISC: 'yes' / 'no' / None) в логическом порядке.
    Рисовать можно только слева, поэтому подряд идущие токены с противоположным
    направлением собираются в стек и переворачиваются.
    """
    stack: Deque[TokenId] = deque()
    # Готовые отрезки в порядке сброса; в режиме RTL они выводятся в обратном порядке
    chunks: List[List[TokenId]] = []

    for token_id, rtl in items:
        if sentence_rtl:
            # Все предложение в режиме RTL
            stack.append(token_id)
            if rtl != "no":
                # Токен не LTR: следующий токен окажется слева от него
                chunks.append(list(stack))
                stack.clear()
        else:
            # Обычный режим LTR
            stack.appendleft(token_id)
            if rtl != "yes":
                # Токен не RTL: следующий токен окажется справа от него
                chunks.append(list(stack))
                stack.clear()

    if stack:
        chunks.append(list(stack))

    if sentence_rtl:
        chunks.reverse()
    return [token_id for chunk in chunks for token_id in chunk]


def order_tokens(tokens: Iterable[Token], sentence_rtl: bool) -> List[TokenId]:
    return order_token_ids(((token.id, token.rtl) for token in tokens), sentence_rtl)
